"""
Matchmaking ticket store.

The only component that reads or writes the ticket table. Every mutation is a
single conditional write keyed on ticketId; DynamoDB's condition check is the
only concurrency control, so losing writers surface as CollisionError (create)
or NotFoundError (update/delete).
"""

from __future__ import annotations

import json
import uuid
from typing import Any, List, Mapping, Optional, Union

import boto3

from config.settings import Settings
from models.ticket import MatchmakingTicket
from repositories.dynamodb_repo import ConditionalCheckFailed, DynamoDbRepository
from utils.error_handling import BadRequestError, CollisionError, NotFoundError
from utils.logging_config import get_logger
from utils.validators import validate_ticket

logger = get_logger(__name__)

TicketInput = Union[MatchmakingTicket, Mapping[str, Any]]

KEY_NAME = "ticketId"

# Reused across warm Lambda invocations.
_dynamodb = None


def get_dynamodb():
    """Get or create DynamoDB resource."""
    global _dynamodb
    if _dynamodb is None:
        _dynamodb = boto3.resource("dynamodb")
    return _dynamodb


def _as_dict(ticket: TicketInput) -> dict:
    if isinstance(ticket, MatchmakingTicket):
        return ticket.model_dump(exclude_none=True)
    return dict(ticket)


class TicketStore:
    """Reads, validates and conditionally writes matchmaking tickets."""

    def __init__(self, settings: Optional[Settings] = None, table=None):
        settings = settings or Settings.from_environment()
        if table is None:
            table = get_dynamodb().Table(settings.ticket_table_name)
        self.table_name = settings.ticket_table_name
        self.max_retries = settings.create_max_retries
        self.repository = DynamoDbRepository(table, KEY_NAME)

    def get(self, ticket_id: str) -> MatchmakingTicket:
        """Return the stored ticket or raise NotFoundError."""
        ticket = self.get_optional(ticket_id)
        if ticket is None:
            logger.info("Matchmaking ticket not found", extra={"ticket_id": ticket_id})
            raise NotFoundError(f"Matchmaking ticket with id '{ticket_id}' not found")
        return ticket

    def get_optional(self, ticket_id: str) -> Optional[MatchmakingTicket]:
        """
        Return the stored ticket, or None when there is no prior state.

        A stored record that no longer fits the schema is still returned,
        unvalidated, so callers treat it as existing and can overwrite it.
        """
        item = self.repository.get(ticket_id)
        if item is None:
            return None
        ticket = self._load(item)
        if ticket is None:
            known = {k: v for k, v in item.items() if k in MatchmakingTicket.model_fields}
            return MatchmakingTicket.model_construct(**known)
        return ticket

    def list(self) -> List[MatchmakingTicket]:
        """Return every valid stored ticket (full scan); invalid rows are logged and skipped."""
        tickets = (self._load(item) for item in self.repository.scan_all())
        return [ticket for ticket in tickets if ticket is not None]

    def _load(self, item: Mapping[str, Any]) -> Optional[MatchmakingTicket]:
        try:
            return self.validate(item)
        except BadRequestError as exc:
            logger.warning(
                "Stored matchmaking ticket does not match schema",
                extra={"ticket_id": item.get(KEY_NAME), "error": str(exc)},
            )
            return None

    def create(
        self,
        ticket_input: TicketInput,
        max_retries: Optional[int] = None,
        keep_ttl: bool = False,
    ) -> MatchmakingTicket:
        """
        Create a new ticket with a conditional put on attribute_not_exists(ticketId).

        When ticket_input carries no ticketId, a uuid4 is generated for each
        attempt, so a collision is retried under a new id. A caller-supplied id
        is retried unchanged, which only helps if the earlier failure was
        transient. ttl is reset to 0 unless keep_ttl is set.
        """
        retries = self.max_retries if max_retries is None else max_retries
        base = _as_dict(ticket_input)
        generate_id = not base.get(KEY_NAME)

        attempt = 0
        while True:
            fields = dict(base)
            if generate_id:
                fields[KEY_NAME] = str(uuid.uuid4())
            if not keep_ttl:
                fields["ttl"] = 0
            ticket = self.validate(fields)

            try:
                self.repository.put_new(ticket.to_item())
                logger.info(
                    "Matchmaking ticket created",
                    extra={
                        "ticket_id": ticket.ticketId,
                        "status": ticket.matchmakingStatus.value,
                        "attempt": attempt,
                    },
                )
                return ticket
            except ConditionalCheckFailed as exc:
                if attempt >= retries:
                    raise CollisionError(ticket.ticketId) from exc
                attempt += 1
                logger.warning(
                    "Matchmaking ticket id already exists, retrying",
                    extra={
                        "ticket_id": ticket.ticketId,
                        "attempt": attempt,
                        "regenerate_id": generate_id,
                    },
                )

    def update(
        self,
        ticket_input: TicketInput,
        prior_ticket: Optional[MatchmakingTicket] = None,
    ) -> MatchmakingTicket:
        """
        Overwrite an existing ticket with a conditional put on attribute_exists(ticketId).

        prior_ticket lets callers that already read the record skip the
        existence lookup; the condition expression still guards the write.
        """
        ticket = self.validate(ticket_input)
        if prior_ticket is None:
            self.get(ticket.ticketId)

        try:
            self.repository.put_existing(ticket.to_item())
        except ConditionalCheckFailed as exc:
            raise NotFoundError(
                f"Matchmaking ticket with ticket id '{ticket.ticketId}' not found"
            ) from exc

        logger.info(
            "Matchmaking ticket updated",
            extra={"ticket_id": ticket.ticketId, "status": ticket.matchmakingStatus.value},
        )
        return ticket

    def create_or_update(
        self,
        ticket_input: TicketInput,
        prior_ticket: Optional[MatchmakingTicket] = None,
    ) -> MatchmakingTicket:
        """
        Update when the caller already found prior state, otherwise create keeping ttl.

        The create is not retried: the id comes from the caller, so a collision
        means another writer got there first and the caller must re-read.
        """
        if prior_ticket is not None:
            return self.update(ticket_input, prior_ticket)
        return self.create(ticket_input, max_retries=0, keep_ttl=True)

    def delete(self, ticket_id: str) -> None:
        """Delete an existing ticket or raise NotFoundError."""
        try:
            self.repository.delete_existing(ticket_id)
        except ConditionalCheckFailed as exc:
            raise NotFoundError(
                f"Matchmaking ticket with ticket id '{ticket_id}' not found"
            ) from exc
        logger.info("Matchmaking ticket deleted", extra={"ticket_id": ticket_id})

    def validate(self, ticket_input: TicketInput) -> MatchmakingTicket:
        """Validate against the ticket schema; raises BadRequestError."""
        return validate_ticket(ticket_input)

    def parse(self, body: str) -> MatchmakingTicket:
        """Parse a JSON body into a validated ticket."""
        try:
            payload = json.loads(body)
        except (TypeError, ValueError) as exc:
            raise BadRequestError("Invalid JSON") from exc
        if not isinstance(payload, dict):
            raise BadRequestError("Ticket body must be a JSON object")
        return self.validate(payload)
