from __future__ import annotations

import hashlib

import pytest

from modules.orders.constants import CART_HASH_LENGTH
from modules.orders.fingerprint import cart_fingerprint

pytestmark = pytest.mark.unit


class TestCartFingerprint:
    def test_matches_normalized_sha256(self):
        expected = hashlib.sha256(b"1:2|3:1").hexdigest()
        assert cart_fingerprint([(3, 1), (1, 2)]) == expected

    def test_independent_of_line_order(self):
        assert cart_fingerprint([(1, 2), (3, 1)]) == cart_fingerprint([(3, 1), (1, 2)])

    def test_quantity_changes_fingerprint(self):
        assert cart_fingerprint([(1, 2)]) != cart_fingerprint([(1, 3)])

    def test_is_hex_digest(self):
        digest = cart_fingerprint([(7, 1)])
        assert len(digest) == CART_HASH_LENGTH
        int(digest, 16)
