#!/usr/bin/env python3
"""Unit tests for the User record."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from latchkey.auth.user import EMPTY_USER, User


def test_empty_user_is_empty():
    assert EMPTY_USER.is_empty
    assert User().is_empty
    assert User() == EMPTY_USER


def test_any_field_makes_user_non_empty():
    assert not User(id=1).is_empty
    assert not User(username="alice").is_empty
    assert not User(email="a@example.com").is_empty
    assert not User(secret="c1ph3r").is_empty


def test_scrubbed_removes_secret_only():
    user = User(id=1, username="alice", email="alice@example.com", secret="c1ph3r")
    scrubbed = user.scrubbed()
    assert scrubbed.secret == ""
    assert (scrubbed.id, scrubbed.username, scrubbed.email) == (1, "alice", "alice@example.com")
    assert user.secret == "c1ph3r"


def test_repr_hides_secret():
    user = User(id=1, username="alice", secret="c1ph3r")
    assert "c1ph3r" not in repr(user)
    assert "alice" in repr(user)
