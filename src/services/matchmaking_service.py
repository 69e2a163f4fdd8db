"""
Matchmaking request service.

Client-facing creation path: asks FlexMatch to start matchmaking for a player
and records the initial Searching ticket. Later lifecycle events for the same
ticket id are folded in by the EventReconciler.
"""

from __future__ import annotations

import uuid
from typing import Any, Mapping, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config.settings import Settings
from models.ticket import MatchmakingStatus, MatchmakingTicket
from services.ticket_store import TicketStore
from utils.error_handling import BadRequestError, CollisionError, MatchmakingRequestError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class MatchmakingService:
    """Start FlexMatch matchmaking and track the resulting ticket."""

    def __init__(
        self,
        store: TicketStore,
        settings: Optional[Settings] = None,
        gamelift_client=None,
    ):
        settings = settings or Settings.from_environment()
        self.store = store
        self.configuration_name = settings.matchmaking_configuration_name
        if gamelift_client is None:
            gamelift_client = boto3.client("gamelift", region_name=settings.aws_region)
        self.gamelift = gamelift_client

    def create_ticket(self, ticket_input: Mapping[str, Any]) -> MatchmakingTicket:
        """Store a ticket from a partial input; the store generates the id when absent."""
        fields = dict(ticket_input)
        fields.setdefault("matchmakingStatus", MatchmakingStatus.SEARCHING)
        return self.store.create(fields)

    def request_matchmaking(
        self, player_id: str, player_session_id: Optional[str] = None
    ) -> MatchmakingTicket:
        """Start matchmaking for one player and return the tracked ticket."""
        if not player_id:
            raise BadRequestError("currentPlayerId is required")

        ticket_id = str(uuid.uuid4())
        try:
            response = self.gamelift.start_matchmaking(
                TicketId=ticket_id,
                ConfigurationName=self.configuration_name,
                Players=[{"PlayerId": player_id}],
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error(
                "StartMatchmaking failed",
                extra={"player_id": player_id, "error": str(exc)},
            )
            raise MatchmakingRequestError() from exc

        ticket_id = response.get("MatchmakingTicket", {}).get("TicketId") or ticket_id
        try:
            return self.store.create(
                {
                    "ticketId": ticket_id,
                    "matchmakingStatus": MatchmakingStatus.SEARCHING,
                    "playerSessionId": player_session_id,
                },
                max_retries=0,
            )
        except CollisionError:
            # A lifecycle event for this ticket was folded first; it is newer.
            logger.info(
                "Matchmaking ticket already recorded by an event",
                extra={"ticket_id": ticket_id},
            )
            return self.store.get(ticket_id)
