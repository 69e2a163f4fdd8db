"""
Tests for the SNS matchmaking event handler.
"""
import json

import pytest
from botocore.exceptions import ClientError

from handlers import process_matchmaking_events
from models.ticket import MatchmakingStatus


@pytest.fixture(autouse=True)
def wired_reconciler(monkeypatch, reconciler):
    """Point the lazy-loaded reconciler at the in-memory table."""
    monkeypatch.setattr(process_matchmaking_events, "_reconciler", reconciler)
    yield reconciler


def _sns_event(*details):
    return {
        "Records": [
            {
                "EventSource": "aws:sns",
                "Sns": {
                    "Message": json.dumps(
                        {
                            "version": "0",
                            "source": "aws.gamelift",
                            "detail-type": "GameLift Matchmaking Event",
                            "detail": detail,
                        }
                    )
                },
            }
            for detail in details
        ]
    }


def test_processes_every_record(ticket_store):
    event = _sns_event(
        {
            "type": "MatchmakingSearching",
            "tickets": [{"ticketId": "T1", "players": [{"playerSessionId": "P1"}]}],
        },
        {
            "type": "MatchmakingSucceeded",
            "tickets": [{"ticketId": "T1", "players": [{"playerSessionId": "P1"}]}],
            "gameSessionInfo": {"ipAddress": "10.0.0.1", "port": 7777, "dnsName": "srv.example"},
        },
    )

    resp = process_matchmaking_events.lambda_handler(event, None)

    assert resp["status"] == "Success"
    assert resp["events"] == 2
    assert resp["written"] == 2
    stored = ticket_store.get("T1")
    assert stored.matchmakingStatus == MatchmakingStatus.SUCCEEDED
    assert stored.port == "7777"


def test_unreadable_message_is_skipped(ticket_store):
    event = {"Records": [{"Sns": {"Message": "{not json"}}]}

    resp = process_matchmaking_events.lambda_handler(event, None)

    assert resp["ignored"] == 1
    assert ticket_store.list() == []


def test_unknown_event_type_counts_as_ignored(ticket_store):
    resp = process_matchmaking_events.lambda_handler(
        _sns_event({"type": "AcceptMatchCompleted", "tickets": [{"ticketId": "T1"}]}), None
    )

    assert resp["ignored"] == 1
    assert resp["written"] == 0


def test_table_outage_fails_invocation(ticket_table, monkeypatch):
    def unavailable(Key):
        raise ClientError({"Error": {"Code": "InternalServerError", "Message": "boom"}}, "GetItem")

    monkeypatch.setattr(ticket_table, "get_item", unavailable)

    with pytest.raises(ClientError):
        process_matchmaking_events.lambda_handler(
            _sns_event({"type": "MatchmakingFailed", "tickets": [{"ticketId": "T1"}]}), None
        )


def test_malformed_ticket_is_counted_as_failed(ticket_store):
    event = _sns_event(
        {
            "type": "MatchmakingCancelled",
            "tickets": [
                {"ticketId": "T1", "players": [{"playerSessionId": "P1"}]},
                {"players": [{"playerSessionId": "P2"}]},
                {"ticketId": "T3", "players": [{"playerSessionId": "P3"}]},
            ],
        }
    )

    resp = process_matchmaking_events.lambda_handler(event, None)

    assert resp["written"] == 2
    assert resp["failed"] == 1
    assert resp["ignored"] == 0
    assert {t.ticketId for t in ticket_store.list()} == {"T1", "T3"}
