"""Ticket schema validation."""

from typing import Any, Mapping, Union

from pydantic import TypeAdapter, ValidationError

from models.ticket import MatchmakingTicket
from utils.error_handling import BadRequestError

# Built once per container; reused by every invocation.
_ticket_adapter = TypeAdapter(MatchmakingTicket)


def first_error_message(exc: ValidationError) -> str:
    """Render the first pydantic error as `field: message`."""
    errors = exc.errors()
    if not errors:
        return "Validation error"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Validation error")
    return f"{location}: {message}" if location else message


def validate_ticket(ticket: Union[MatchmakingTicket, Mapping[str, Any]]) -> MatchmakingTicket:
    """Validate a ticket or raw mapping, raising BadRequestError on the first violation."""
    if isinstance(ticket, MatchmakingTicket):
        # Re-run validators; model_copy/attribute assignment bypass them.
        ticket = ticket.model_dump()
    try:
        return _ticket_adapter.validate_python(dict(ticket))
    except ValidationError as exc:
        raise BadRequestError(first_error_message(exc)) from exc
