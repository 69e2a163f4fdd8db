"""FlexMatch matchmaking event payloads."""

from __future__ import annotations

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EventPlayer(BaseModel):
    """Player entry inside an event ticket."""

    model_config = ConfigDict(extra="ignore")

    playerId: Optional[str] = None
    playerSessionId: Optional[str] = None


class EventTicket(BaseModel):
    """Ticket affected by a matchmaking event."""

    model_config = ConfigDict(extra="ignore")

    ticketId: str = Field(min_length=1)
    players: List[EventPlayer] = Field(default_factory=list)

    @property
    def player_session_id(self) -> Optional[str]:
        # Each ticket carries a single player in our matchmaking configuration.
        return self.players[0].playerSessionId if self.players else None


class GameSessionInfo(BaseModel):
    """Connection details published with MatchmakingSucceeded."""

    model_config = ConfigDict(extra="ignore")

    ipAddress: str
    port: Union[int, str]
    dnsName: str


class MatchmakingEventDetail(BaseModel):
    """The `detail` section of a FlexMatch event notification."""

    model_config = ConfigDict(extra="ignore")

    type: str
    # Parsed one by one so a malformed ticket only fails itself.
    tickets: List[Any] = Field(default_factory=list)
    gameSessionInfo: Optional[GameSessionInfo] = None
