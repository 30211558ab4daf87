"""Cart fingerprint.

The fingerprint is the idempotency key of a checkout: two carts with the
same products and quantities, in any order, hash to the same value.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Tuple


def cart_fingerprint(lines: Iterable[Tuple[int, int]]) -> str:
    """Return the SHA-256 hex digest of ``(product_id, quantity)`` pairs.

    Pairs are sorted and rendered as ``"<product_id>:<quantity>"`` joined
    by ``|`` before hashing.
    """
    normalized = "|".join(
        f"{product_id}:{quantity}" for product_id, quantity in sorted(lines)
    )
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
