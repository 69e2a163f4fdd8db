"""
Environment-specific configuration settings.

Values come from the Lambda environment; defaults suit local runs and tests.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Runtime settings for the matchmaking ticket functions."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"

    # Ticket table
    ticket_table_name: str = "MatchmakingTicket"
    ticket_ttl_seconds: int = 3600  # Expire reconciled tickets one hour after the last event
    create_max_retries: int = 2

    # FlexMatch
    matchmaking_configuration_name: str = ""

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            environment=os.environ.get("ENVIRONMENT", cls.environment),
            aws_region=os.environ.get("AWS_REGION", cls.aws_region),
            ticket_table_name=os.environ.get(
                "MATCHMAKING_TICKET_TABLE_NAME", cls.ticket_table_name
            ),
            ticket_ttl_seconds=int(
                os.environ.get("TICKET_TTL_SECONDS", cls.ticket_ttl_seconds)
            ),
            create_max_retries=int(
                os.environ.get("TICKET_CREATE_MAX_RETRIES", cls.create_max_retries)
            ),
            matchmaking_configuration_name=os.environ.get(
                "MATCHMAKING_CONFIGURATION_NAME", cls.matchmaking_configuration_name
            ),
        )
