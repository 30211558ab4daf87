"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` to ensure
the Order aggregate (Order + OrderItems) is persisted atomically.

Concurrency control on status updates uses ``select_for_update()``
to prevent race conditions (no ``version`` field exists on the model).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.db import transaction
from django.db.models import QuerySet

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys:
        - ``user_id`` (required)
        - ``address_id`` (required)
        - ``cart_hash`` (required)
        - ``items`` (required): list of dicts with ``product_id``,
          ``quantity``, ``unit_price``
        """
        order = Order(
            user_id=data["user_id"],
            address_id=data["address_id"],
            cart_hash=data["cart_hash"],
            status=OrderStatus.PENDING,
        )
        order.save()

        total = Decimal("0.00")
        items = data.get("items", [])
        for item_data in items:
            item = OrderItem(
                order=order,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            )
            item.save()
            total += item.subtotal

        order.total_amount = total
        order.save(update_fields=["total_amount", "updated_at"])

        log = logger.bind(order_id=order.id, item_count=len(items))
        log.info("order.created", total_amount=str(total))

        return order

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, order: Order, **fields: Any) -> Order:
        """Write ``fields`` on an order the caller has already locked."""
        for field, value in fields.items():
            setattr(order, field, value)
        order.save(update_fields=list(fields))
        logger.info("order.updated", order_id=order.id, fields=sorted(fields))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def queryset(self) -> QuerySet:
        """Base queryset with eager-loaded relations.

        Uses ``select_related`` for the user and address FKs (single JOIN)
        and ``prefetch_related`` for items, items -> product, and status
        history (separate batched queries).  Prevents N+1.
        """
        return Order.objects.select_related("user", "address").prefetch_related(
            "items__product", "status_history"
        )

    def get_by_id(self, id: int) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return self.queryset().filter(id=id).first()
        except (ValueError, TypeError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters and eager-loaded relations.

        Supported filter keys: any ``Order`` lookup, e.g. ``status``,
        ``user_id`` or ``created_at__range``.
        """
        queryset = self.queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_update(self, id: int) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must be called inside a transaction.  Items are prefetched so the
        caller can restock them while the row is locked.
        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, TypeError):
            return None

    def find_reusable(
        self, user_id: int, cart_hash: str, address_id: int, created_after: datetime
    ) -> Optional[Order]:
        return (
            Order.objects.filter(
                user_id=user_id,
                cart_hash=cart_hash,
                address_id=address_id,
                created_at__gte=created_after,
                status=OrderStatus.PENDING,
                mp_preference_id__isnull=False,
            )
            .order_by("-created_at", "-id")
            .first()
        )

    def list_expired_pending_ids(self, cutoff: datetime) -> List[int]:
        return list(
            Order.objects.filter(status=OrderStatus.PENDING, created_at__lt=cutoff)
            .order_by("created_at", "id")
            .values_list("id", flat=True)
        )

    # ------------------------------------------------------------------
    # Order-specific writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order_id: int,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
        )
        history.save()

        logger.info(
            "order.history_added",
            order_id=order_id,
            old_status=old_status,
            new_status=status,
        )
        return history
