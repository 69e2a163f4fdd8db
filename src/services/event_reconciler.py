"""
Fold FlexMatch lifecycle events into the ticket table.

Events arrive at-least-once and out of order. Each ticket in an event is
checked against its stored status with `is_stale`; accepted events overwrite
the stored record through TicketStore.create_or_update.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from config.settings import Settings
from models.events import EventTicket, MatchmakingEventDetail
from models.ticket import MatchmakingStatus, MatchmakingTicket
from services.ticket_store import TicketStore
from utils.error_handling import AppError, BadRequestError, CollisionError, NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)


def is_stale(incoming: MatchmakingStatus, current: Optional[MatchmakingStatus]) -> bool:
    """
    Return True when an incoming status must not replace the stored one.

    Searching never supersedes recorded state, and PotentialMatchCreated never
    overwrites a terminal status. Terminal statuses always apply, so two
    terminal events for one ticket resolve last-write-wins.
    """
    if incoming == MatchmakingStatus.SEARCHING:
        return current is not None
    if incoming == MatchmakingStatus.POTENTIAL_MATCH_CREATED:
        return current is not None and current.is_terminal
    return False


def _ticket_label(raw: Any, index: int) -> str:
    """Identify a raw event ticket in results and logs, even when it has no id."""
    if isinstance(raw, Mapping) and isinstance(raw.get("ticketId"), str) and raw["ticketId"]:
        return raw["ticketId"]
    return f"tickets[{index}]"


@dataclass
class FoldResult:
    """Outcome of folding one event."""

    event_type: str
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    ignored: bool = False


class EventReconciler:
    """Apply matchmaking events to stored tickets."""

    def __init__(
        self,
        store: TicketStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = settings or Settings.from_environment()
        self.store = store
        self.ttl_seconds = settings.ticket_ttl_seconds
        self.clock = clock

    def reconcile(self, detail: Mapping[str, Any]) -> FoldResult:
        """Fold one event detail. Table outages propagate; per-ticket errors do not."""
        try:
            event = MatchmakingEventDetail.model_validate(detail)
        except ValidationError as exc:
            logger.warning("Malformed matchmaking event skipped", extra={"error": str(exc)})
            return FoldResult(event_type=str(detail.get("type", "")), ignored=True)

        result = FoldResult(event_type=event.type)
        status = MatchmakingStatus.parse(event.type)
        if status is None:
            logger.info("Ignoring matchmaking event type", extra={"event_type": event.type})
            result.ignored = True
            return result

        expires_at = int(self.clock()) + self.ttl_seconds

        for index, raw_ticket in enumerate(event.tickets):
            label = _ticket_label(raw_ticket, index)
            try:
                event_ticket = EventTicket.model_validate(raw_ticket)
                written = self._fold_ticket(event, status, event_ticket, expires_at)
            except (AppError, ValidationError) as exc:
                logger.warning(
                    "Failed to fold matchmaking ticket",
                    extra={
                        "ticket_id": label,
                        "event_type": event.type,
                        "error": str(exc),
                    },
                )
                result.failed.append(label)
                continue

            if written:
                result.written.append(label)
            else:
                result.skipped.append(label)

        logger.info(
            "Matchmaking event folded",
            extra={
                "event_type": event.type,
                "written": len(result.written),
                "skipped": len(result.skipped),
                "failed": len(result.failed),
            },
        )
        return result

    def reconcile_all(self, details: Iterable[Mapping[str, Any]]) -> List[FoldResult]:
        """Fold events in delivery order; the first table outage aborts the rest."""
        return [self.reconcile(detail) for detail in details]

    def _fold_ticket(
        self,
        event: MatchmakingEventDetail,
        status: MatchmakingStatus,
        event_ticket: EventTicket,
        expires_at: int,
    ) -> bool:
        merged = self.build_ticket(event, status, event_ticket, expires_at)
        try:
            return self._apply(merged)
        except (CollisionError, NotFoundError):
            # Another writer changed the record between our read and write.
            logger.info(
                "Concurrent write on matchmaking ticket, re-reading",
                extra={"ticket_id": merged.ticketId},
            )
            return self._apply(merged)

    def _apply(self, merged: MatchmakingTicket) -> bool:
        current = self.store.get_optional(merged.ticketId)
        # A stored record that fails the schema may carry an unknown status.
        current_status = MatchmakingStatus.parse(current.matchmakingStatus) if current else None
        if is_stale(merged.matchmakingStatus, current_status):
            logger.debug(
                "Stale matchmaking event ignored",
                extra={
                    "ticket_id": merged.ticketId,
                    "incoming": merged.matchmakingStatus.value,
                    "current": current_status.value if current_status else None,
                },
            )
            return False
        self.store.create_or_update(merged, current)
        return True

    def build_ticket(
        self,
        event: MatchmakingEventDetail,
        status: MatchmakingStatus,
        event_ticket: EventTicket,
        expires_at: int,
    ) -> MatchmakingTicket:
        """Merge an accepted event into the record to store."""
        fields = {
            "ticketId": event_ticket.ticketId,
            "matchmakingStatus": status,
            "playerSessionId": event_ticket.player_session_id,
            "ttl": expires_at,
        }
        if status == MatchmakingStatus.SUCCEEDED:
            info = event.gameSessionInfo
            if info is None:
                raise BadRequestError("gameSessionInfo is required for MatchmakingSucceeded")
            fields.update(ip=info.ipAddress, port=str(info.port), dnsName=info.dnsName)
        return self.store.validate(fields)
