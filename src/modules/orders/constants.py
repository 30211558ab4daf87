"""Order domain constants.

Defines status choices, the valid transitions of the order state
machine and the mapping from payment-gateway statuses to order statuses.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pendente"
    PAID = "paid", "Pago"
    CANCELLED = "cancelled", "Cancelado"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.PAID, OrderStatus.CANCELLED}

# Gateway payment status -> order status.  Statuses not listed here
# (pending, in_process, in_mediation, authorized) leave the order as is.
GATEWAY_STATUS_MAP: dict[str, str] = {
    "approved": OrderStatus.PAID,
    "rejected": OrderStatus.CANCELLED,
    "cancelled": OrderStatus.CANCELLED,
    "refunded": OrderStatus.CANCELLED,
    "charged_back": OrderStatus.CANCELLED,
}

CART_HASH_LENGTH = 64
