"""Tests for structured logging helpers."""

from deploy_agent.utils.logging import _redact_sensitive


def test_redacts_token_and_authorization():
    event = _redact_sensitive(None, None, {"event": "Registering unit", "token": "abc", "Authorization": "bearer abc"})

    assert event["token"] == "[REDACTED]"
    assert event["Authorization"] == "[REDACTED]"
    assert event["event"] == "Registering unit"


def test_keeps_other_fields():
    event = _redact_sensitive(None, None, {"event": "Command finished", "command": "ls", "exit_code": 0})

    assert event == {"event": "Command finished", "command": "ls", "exit_code": 0}
