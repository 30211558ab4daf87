"""Order repository interface.

Extends ``IRepository[Order]`` with methods required by the Order
aggregate: atomic creation with items, locked status transitions,
status history tracking and the look-ups used by the checkout resolver
and the expiry sweeper.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create a pending order with its items atomically.

        ``data`` must include ``user_id``, ``address_id``, ``cart_hash`` and
        ``items`` (list of dicts with ``product_id``, ``quantity``,
        ``unit_price``).
        """

    @abstractmethod
    def get_for_update(self, id: int) -> Optional[Order]:
        """Retrieve an order holding a row-level lock until commit."""

    @abstractmethod
    def find_reusable(
        self, user_id: int, cart_hash: str, address_id: int, created_after: datetime
    ) -> Optional[Order]:
        """Most recent pending order of ``user_id`` for the same cart and
        address, created after ``created_after``, that already has a
        payment session."""

    @abstractmethod
    def update(self, order: Order, **fields: Any) -> Order:
        """Persist the given fields of an (already locked) order."""

    @abstractmethod
    def add_history(
        self,
        order_id: int,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def list_expired_pending_ids(self, cutoff: datetime) -> List[int]:
        """Ids of pending orders created before ``cutoff``, oldest first."""
