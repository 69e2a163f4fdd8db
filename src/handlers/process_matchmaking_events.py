"""
Matchmaking event handler.

Subscribed to the FlexMatch notification topic. Each SNS record carries one
event document whose `detail` is folded into the ticket table. Table outages
fail the whole invocation so SNS redelivers; everything else is per ticket.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded to avoid creating boto3 resources at import time
_reconciler: Optional["EventReconciler"] = None


def _get_reconciler():
    """Lazy-load EventReconciler."""
    global _reconciler
    if _reconciler is None:
        from config.settings import Settings
        from services.event_reconciler import EventReconciler
        from services.ticket_store import TicketStore

        settings = Settings.from_environment()
        _reconciler = EventReconciler(TicketStore(settings), settings)
    return _reconciler


def _extract_detail(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Pull the event detail out of an SNS record, or None if unreadable."""
    raw = record.get("Sns", {}).get("Message")
    try:
        message = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        logger.warning("SNS message is not valid JSON")
        return None
    if not isinstance(message, dict):
        logger.warning("SNS message is not a JSON object")
        return None
    detail = message.get("detail", message)
    return detail if isinstance(detail, dict) else None


def lambda_handler(event, context):
    """Process matchmaking events delivered by SNS."""
    reconciler = _get_reconciler()
    summary = {"events": 0, "written": 0, "skipped": 0, "failed": 0, "ignored": 0}

    details = []
    for record in event.get("Records", []):
        detail = _extract_detail(record)
        if detail is None:
            summary["ignored"] += 1
            continue
        logger.info("Matchmaking event received", extra={"event_type": detail.get("type")})
        details.append(detail)

    try:
        results = reconciler.reconcile_all(details)
    except Exception:
        logger.exception(
            "Matchmaking event processing aborted",
            extra={"events": len(details)},
        )
        raise

    for result in results:
        summary["events"] += 1
        summary["written"] += len(result.written)
        summary["skipped"] += len(result.skipped)
        summary["failed"] += len(result.failed)
        summary["ignored"] += int(result.ignored)

    return {"status": "Success", **summary}
