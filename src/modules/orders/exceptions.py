"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.  Stock errors live in
``modules.catalog.exceptions``; gateway errors in
``modules.payments.exceptions``.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist (or is not visible to the caller)."""


class InvalidOrderStatus(Exception):
    """An invalid status transition was attempted."""


class CheckoutValidationError(Exception):
    """The checkout request is malformed; rejected before any mutation."""


class MissingExternalReference(Exception):
    """A gateway payment carries no order reference and cannot be reconciled."""
