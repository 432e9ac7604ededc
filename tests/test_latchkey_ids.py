#!/usr/bin/env python3
"""Unit tests for the public identifier codec."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from latchkey.auth.errors import InvalidArgument
from latchkey.auth.ids import PublicIdCodec


class TestPublicIdCodec:
    @pytest.mark.parametrize("internal_id", [0, 1, 2, 99, 123456789])
    def test_round_trip(self, internal_id):
        codec = PublicIdCodec()
        assert codec.decode(codec.encode(internal_id)) == internal_id

    def test_min_length(self):
        assert len(PublicIdCodec(min_length=8).encode(1)) >= 8
        assert len(PublicIdCodec(min_length=12).encode(1)) >= 12

    def test_does_not_look_sequential(self):
        codec = PublicIdCodec()
        assert codec.encode(1) != "1"
        assert codec.encode(1) != codec.encode(2)

    def test_salt_changes_ids(self):
        assert PublicIdCodec(salt="one").encode(5) != PublicIdCodec(salt="two").encode(5)

    def test_other_salt_does_not_decode_to_same_id(self):
        public = PublicIdCodec(salt="one").encode(5)
        assert PublicIdCodec(salt="two").decode(public) != 5

    @pytest.mark.parametrize("public_id", ["", "!!!!", "zzzzzzzz"])
    def test_invalid_decodes_to_none(self, public_id):
        assert PublicIdCodec().decode(public_id) is None

    @pytest.mark.parametrize("bad", [-1, "7", True, 1.5])
    def test_encode_rejects_non_ids(self, bad):
        with pytest.raises(InvalidArgument):
            PublicIdCodec().encode(bad)
