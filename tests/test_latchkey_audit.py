#!/usr/bin/env python3
"""Tests for the JSONL audit trail."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from latchkey.audit import AuditLog


def test_record_writes_jsonl(tmp_path):
    path = tmp_path / "logs" / "events.jsonl"
    log = AuditLog(path)

    log.record("login_success", method="password", user_id="abc12345")

    lines = path.read_text().strip().splitlines()
    assert len(lines) == 1

    payload = json.loads(lines[0])
    assert payload["event_type"] == "login_success"
    assert payload["method"] == "password"
    assert payload["user_id"] == "abc12345"
    assert "timestamp" in payload


def test_sensitive_fields_dropped(tmp_path):
    path = tmp_path / "events.jsonl"
    AuditLog(path).record("login_success", token="T0K3N", secret="s", password="p", username="alice")

    payload = json.loads(path.read_text())
    assert payload["username"] == "alice"
    assert not {"token", "secret", "password"} & set(payload)


def test_disabled_log_is_noop(tmp_path):
    log = AuditLog(None)
    log.record("login_success")
    assert log.query() == []


def test_unwritable_path_does_not_raise(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file")
    AuditLog(blocker / "events.jsonl").record("login_failed")


def test_query_filters_and_limits(tmp_path):
    path = tmp_path / "events.jsonl"
    log = AuditLog(path)
    for i in range(5):
        log.record("login_failed", attempt=i)
        log.record("login_success", attempt=i)
    with path.open("a") as f:
        f.write("{corrupt\n\n")

    failed = log.query(event_type="login_failed", limit=2)
    assert [e["attempt"] for e in failed] == [3, 4]
    assert len(log.query()) == 10
    assert log.query(limit=0) == []


def test_query_missing_file(tmp_path):
    assert AuditLog(tmp_path / "none.jsonl").query() == []
