"""Handler to request a new matchmaking ticket for the calling player."""

from typing import Optional

from utils.error_handling import AppError, to_response
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded service to avoid import-time AWS clients
_matchmaking_service: Optional["MatchmakingService"] = None


def _get_matchmaking_service():
    """Lazy-load MatchmakingService."""
    global _matchmaking_service
    if _matchmaking_service is None:
        from config.settings import Settings
        from services.matchmaking_service import MatchmakingService
        from services.ticket_store import TicketStore

        settings = Settings.from_environment()
        _matchmaking_service = MatchmakingService(TicketStore(settings), settings)
    return _matchmaking_service


def lambda_handler(event, context):
    """Start matchmaking for event["currentPlayerId"] and return the tracked ticket."""
    player_id = event.get("currentPlayerId")
    try:
        ticket = _get_matchmaking_service().request_matchmaking(
            player_id, player_session_id=event.get("playerSessionId")
        )
    except AppError as exc:
        logger.warning(
            "Matchmaking request rejected",
            extra={"player_id": player_id, "error": str(exc)},
        )
        return to_response(exc)

    logger.info(
        "Matchmaking requested",
        extra={"player_id": player_id, "ticket_id": ticket.ticketId},
    )
    return {
        "statusCode": 200,
        "headers": {"Content-Type": "application/json"},
        "body": ticket.model_dump_json(exclude_none=True),
    }
