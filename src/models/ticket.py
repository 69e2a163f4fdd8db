"""Matchmaking ticket models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MatchmakingStatus(str, Enum):
    """Lifecycle stages of a FlexMatch ticket."""

    SEARCHING = "Searching"
    POTENTIAL_MATCH_CREATED = "PotentialMatchCreated"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"
    CANCELLED = "Cancelled"

    @classmethod
    def _missing_(cls, value):
        # FlexMatch event types carry a "Matchmaking" prefix.
        if isinstance(value, str) and value.startswith("Matchmaking"):
            stripped = value[len("Matchmaking"):]
            for member in cls:
                if member.value == stripped:
                    return member
        return None

    @classmethod
    def parse(cls, value: str) -> Optional["MatchmakingStatus"]:
        """Return the status named by value, or None for event types we do not track."""
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        MatchmakingStatus.SUCCEEDED,
        MatchmakingStatus.FAILED,
        MatchmakingStatus.TIMED_OUT,
        MatchmakingStatus.CANCELLED,
    }
)

CONNECTION_FIELDS = ("ip", "port", "dnsName")


class MatchmakingTicket(BaseModel):
    """Stored state of one matchmaking attempt."""

    model_config = ConfigDict(extra="forbid")

    ticketId: str = Field(min_length=1)
    matchmakingStatus: MatchmakingStatus
    playerSessionId: Optional[str] = None
    ip: Optional[str] = None
    port: Optional[str] = None
    dnsName: Optional[str] = None
    ttl: int = Field(default=0, ge=0)

    @field_validator("matchmakingStatus", mode="before")
    @classmethod
    def accept_event_type_names(cls, value):
        """Map FlexMatch event type names onto the status they announce."""
        if isinstance(value, str):
            return MatchmakingStatus.parse(value) or value
        return value

    @field_validator("ttl", mode="before")
    @classmethod
    def truncate_fractional_ttl(cls, value):
        """Older writers stored ttl as fractional epoch seconds."""
        if isinstance(value, float):
            return int(value)
        return value

    @model_validator(mode="after")
    def check_connection_info(self) -> "MatchmakingTicket":
        """Connection info is present exactly when matchmaking succeeded."""
        present = [name for name in CONNECTION_FIELDS if getattr(self, name) is not None]
        if self.matchmakingStatus == MatchmakingStatus.SUCCEEDED:
            missing = [name for name in CONNECTION_FIELDS if name not in present]
            if missing:
                raise ValueError(
                    f"{', '.join(missing)} required when matchmakingStatus is Succeeded"
                )
        elif present:
            raise ValueError(
                f"{', '.join(present)} only allowed when matchmakingStatus is Succeeded"
            )
        return self

    def to_item(self) -> dict:
        """Serialize for a DynamoDB put, omitting unset optional attributes."""
        return self.model_dump(mode="json", exclude_none=True)
