"""Pydantic models for tickets and matchmaking events."""

from models.events import (  # noqa: F401
    EventPlayer,
    EventTicket,
    GameSessionInfo,
    MatchmakingEventDetail,
)
from models.ticket import (  # noqa: F401
    CONNECTION_FIELDS,
    TERMINAL_STATUSES,
    MatchmakingStatus,
    MatchmakingTicket,
)
