"""Catalog / stock ledger exceptions.

Raised by the repository while reserving stock.  The checkout view
translates them into 404/409 responses whose message names the product
but never exposes internal identifiers.
"""

from __future__ import annotations


class ProductNotFound(Exception):
    """A product referenced by the cart does not exist."""


class InactiveProduct(Exception):
    """A product referenced by the cart is no longer sold."""

    def __init__(self, product_name: str) -> None:
        self.product_name = product_name
        super().__init__(f"'{product_name}' is no longer available.")


class InsufficientStock(Exception):
    """Not enough stock to reserve the requested quantity.

    The whole reservation is aborted; no product is decremented.
    """

    def __init__(self, product_name: str, requested: int, available: int) -> None:
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for '{product_name}': "
            f"requested {requested}, available {available}."
        )
