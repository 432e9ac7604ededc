#!/usr/bin/env python3
"""Unit tests for the SQLite user store."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from latchkey.auth.errors import InvalidArgument, StoreUnavailable
from latchkey.auth.store import BaseUserStore, SearchOptions, UserStore
from latchkey.auth.user import EMPTY_USER


@pytest.fixture
def store(tmp_path):
    s = UserStore(db_path=str(tmp_path / "nested" / "users.db"))
    yield s
    s.close()


@pytest.fixture
def populated(store):
    store.insert("alice", "alice@example.com", "c-alice")
    store.insert("bob", "bob@example.com", "c-bob")
    store.insert("carol", "", "c-carol")
    store.insert("al_100%", "odd@example.com", "c-odd")
    return store


class TestUserStoreBasics:
    def test_is_base_store(self):
        assert issubclass(UserStore, BaseUserStore)

    def test_creates_parent_dirs(self, tmp_path, store):
        assert (tmp_path / "nested" / "users.db").exists()

    def test_insert_returns_increasing_ids(self, store):
        first = store.insert("alice", "alice@example.com", "c1")
        second = store.insert("bob", "", "c2")
        assert first > 0
        assert second > first

    def test_find_by_id(self, store):
        user_id = store.insert("alice", "alice@example.com", "c1")
        user = store.find_by_id(user_id)
        assert user.id == user_id
        assert user.username == "alice"
        assert user.email == "alice@example.com"
        assert user.secret == "c1"

    def test_find_by_id_missing(self, store):
        assert store.find_by_id(999) is EMPTY_USER

    @pytest.mark.parametrize("identifier", ["1", None, True])
    def test_find_by_id_non_int(self, store, identifier):
        store.insert("alice", "", "c1")
        assert store.find_by_id(identifier) is EMPTY_USER

    @pytest.mark.parametrize("identifier", [0, -1, 2**63, 2**70])
    def test_find_by_id_outside_row_range(self, store, identifier):
        store.insert("alice", "", "c1")
        assert store.find_by_id(identifier) is EMPTY_USER

    def test_insert_rejects_unencodable_text(self, store):
        with pytest.raises(InvalidArgument):
            store.insert("ali\udcffce", "", "c1")
        with pytest.raises(InvalidArgument):
            store.insert("alice", "a\udcff@example.com", "c1")
        assert store.list_users() == []

    def test_memory_database(self):
        with UserStore(db_path=":memory:") as s:
            user_id = s.insert("alice", "", "c1")
            assert s.find_by_id(user_id).username == "alice"

    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "users.db")
        with UserStore(db_path=path) as s:
            user_id = s.insert("alice", "", "c1")
        with UserStore(db_path=path) as s:
            assert s.find_by_id(user_id).secret == "c1"


class TestLookup:
    def test_by_username(self, populated):
        assert populated.find_by_username_or_email("bob").email == "bob@example.com"

    def test_by_email(self, populated):
        assert populated.find_by_username_or_email("alice@example.com").username == "alice"

    def test_missing(self, populated):
        assert populated.find_by_username_or_email("nobody") is EMPTY_USER

    def test_empty_text_never_matches_blank_email(self, populated):
        assert populated.find_by_username_or_email("") is EMPTY_USER

    def test_unencodable_text_never_matches(self, populated):
        assert populated.find_by_username_or_email("ali\udcffce") is EMPTY_USER

    def test_duplicate_username_lowest_id_wins(self, store):
        first = store.insert("dup", "", "c1")
        store.insert("dup", "", "c2")
        assert store.find_by_username_or_email("dup").id == first


class TestDelete:
    def test_delete(self, populated):
        user = populated.find_by_username_or_email("bob")
        assert populated.delete(user.id) is True
        assert populated.find_by_id(user.id) is EMPTY_USER

    def test_delete_missing(self, populated):
        assert populated.delete(999) is False

    @pytest.mark.parametrize("identifier", [0, 2**63, 2**70, "1", True])
    def test_delete_outside_row_range(self, populated, identifier):
        assert populated.delete(identifier) is False
        assert len(populated.list_users()) == 4


class TestSearch:
    def test_projection_excludes_secret(self, populated):
        users = populated.search("a")
        assert users
        assert all(u.secret == "" for u in users)

    def test_matches_username_or_email(self, populated):
        names = {u.username for u in populated.search("example.com")}
        assert names == {"alice", "bob", "al_100%"}

    def test_wildcards_are_literal(self, populated):
        assert [u.username for u in populated.search("%")] == ["al_100%"]
        assert [u.username for u in populated.search("l_")] == ["al_100%"]

    def test_sort_descending(self, populated):
        names = [u.username for u in populated.search("", sort_field="username", ascending=False)]
        assert names == sorted(names, reverse=True)

    def test_limit_and_offset(self, populated):
        all_ids = [u.id for u in populated.search("")]
        page = populated.search("", limit=2, offset=1)
        assert [u.id for u in page] == all_ids[1:3]

    def test_invalid_sort_field(self, populated):
        with pytest.raises(InvalidArgument):
            populated.search("", sort_field="password")

    def test_negative_limit(self, populated):
        with pytest.raises(InvalidArgument):
            populated.search("", limit=-1)

    def test_unencodable_query(self, populated):
        with pytest.raises(InvalidArgument):
            populated.search("al\udcff")

    def test_list_users(self, populated):
        users = populated.list_users()
        assert [u.username for u in users] == ["alice", "bob", "carol", "al_100%"]
        assert all(u.secret == "" for u in users)


class TestSearchOptions:
    def test_defaults(self):
        options = SearchOptions()
        assert (options.limit, options.offset, options.sort_field, options.ascending) == (100, 0, "id", True)

    def test_invalid(self):
        with pytest.raises(InvalidArgument):
            SearchOptions(sort_field="secret")
        with pytest.raises(InvalidArgument):
            SearchOptions(offset=-5)


class TestStoreUnavailable:
    def test_closed_store(self, tmp_path):
        s = UserStore(db_path=str(tmp_path / "users.db"))
        s.close()
        with pytest.raises(StoreUnavailable):
            s.find_by_id(1)

    def test_unopenable_path(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(StoreUnavailable):
            UserStore(db_path=str(blocker / "users.db"))
