"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(AppError):
    """Raised when a requested ticket is missing."""

    def __init__(self, message: str = "Matchmaking ticket not found"):
        super().__init__(message, status_code=404)


class BadRequestError(AppError):
    """Raised when a ticket fails schema validation."""

    def __init__(self, message: str = "Validation error"):
        super().__init__(message, status_code=400)


class CollisionError(AppError):
    """Raised when a create finds a ticket with the same id already stored."""

    def __init__(self, ticket_id: str):
        super().__init__(
            f"Matchmaking ticket with ticket id '{ticket_id}' already exists",
            status_code=409,
        )
        self.ticket_id = ticket_id


class MatchmakingRequestError(AppError):
    """Raised when FlexMatch refuses or fails a matchmaking request."""

    def __init__(self, message: str = "Unable to do matchmaking"):
        super().__init__(message, status_code=502)


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    return {
        "statusCode": error.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps({"message": str(error), "status": "error"}),
    }
