"""Order service layer (Use Cases).

Orchestrates order placement, payment confirmation, cancellation and the
back-office tracking update.  All write operations are atomic; the
service defines the unit-of-work boundary.

Business rules enforced:
- Stock is reserved all-or-nothing, product rows locked in id order.
- Price snapshot taken from the catalog while the rows are locked.
- Status transitions validated against the state machine, under a
  row lock on the order, with the status re-read after the lock.
- Terminal orders are never modified by the gateway or the sweeper.
- Cancellation restores stock for every line and is idempotent.
- History recorded on every status change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.catalog.dtos import StockLineDTO
from modules.orders.constants import OrderStatus
from modules.orders.dtos import GatewayItemDTO, PlacedOrderDTO
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound

if TYPE_CHECKING:
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.orders.dtos import CheckoutDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def place_order(self, dto: CheckoutDTO) -> PlacedOrderDTO:
        """Reserve stock and create a pending order in one transaction.

        Steps:
        1. Lock every product row (sorted by PK), validate all lines and
           decrement stock (``reserve_stock``).
        2. Persist order + items with the locked price snapshot.
        3. Record initial status history.

        Raises:
            ProductNotFound: a product does not exist.
            InactiveProduct: a product is not sold anymore.
            InsufficientStock: not enough stock for a line.
        """
        log = logger.bind(user_id=dto.user_id, cart_hash=dto.cart_hash)
        log.info("order.creation_started", item_count=len(dto.items))

        products = self._product_repo.reserve_stock(dto.stock_lines)

        order = self._order_repo.create(
            {
                "user_id": dto.user_id,
                "address_id": dto.address_id,
                "cart_hash": dto.cart_hash,
                "items": [
                    {
                        "product_id": product.id,
                        "quantity": item.quantity,
                        "unit_price": product.price,
                    }
                    for product, item in zip(products, dto.items)
                ],
            }
        )
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PENDING,
            notes="Order created",
        )

        log.info("order.placed", order_id=order.id, total_amount=str(order.total_amount))
        return PlacedOrderDTO(
            order_id=order.id,
            total_amount=order.total_amount,
            items=[
                GatewayItemDTO(
                    id=str(product.id),
                    title=product.name,
                    description=product.description,
                    picture_url=product.cover_image,
                    quantity=item.quantity,
                    unit_price=product.price,
                )
                for product, item in zip(products, dto.items)
            ],
        )

    @transaction.atomic
    def attach_payment_session(
        self, order_id: int, preference_id: str, init_point: str
    ) -> Order:
        """Store the gateway session on a pending order (written once).

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self._lock(order_id)
        log = logger.bind(order_id=order_id, preference_id=preference_id)

        if order.mp_preference_id:
            log.warning(
                "order.payment_session_already_set",
                existing_preference_id=order.mp_preference_id,
            )
            return order
        if order.status != OrderStatus.PENDING:
            log.warning("order.payment_session_on_closed_order", status=order.status)
            return order

        self._order_repo.update(
            order, mp_preference_id=preference_id, mp_init_point=init_point
        )
        log.info("order.payment_session_attached")
        return order

    @transaction.atomic
    def mark_paid(self, order_id: int, payment_id: str, notes: str = "") -> bool:
        """Transition a pending order to ``paid``.

        Returns ``True`` when the transition happened; ``False`` when the
        order was already terminal (no-op).

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self._lock(order_id)
        log = logger.bind(
            order_id=order_id, payment_id=payment_id, current_status=order.status
        )

        if not order.can_transition_to(OrderStatus.PAID):
            if order.status == OrderStatus.CANCELLED:
                # Money was taken for a reservation we already gave back.
                log.warning("order.payment_for_cancelled_order")
            else:
                log.info("order.already_terminal")
            return False

        old_status = order.status
        self._order_repo.update(
            order, status=OrderStatus.PAID, mp_payment_id=payment_id
        )
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PAID,
            notes=notes or f"Payment {payment_id} approved",
            old_status=old_status,
        )
        log.info("order.paid")
        return True

    @transaction.atomic
    def cancel_order(
        self,
        order_id: int,
        notes: str = "",
        user_id: Optional[int] = None,
    ) -> Order:
        """Explicit cancellation by the buyer (or an operator).

        Idempotent: cancelling a cancelled order returns it unchanged.
        When ``user_id`` is given, orders of other users are reported as
        not found.

        Raises:
            OrderNotFound: order does not exist (or is not the user's).
            InvalidOrderStatus: the order is already paid.
        """
        order = self._lock(order_id)
        if user_id is not None and order.user_id != user_id:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=order_id, current_status=order.status)

        if order.status == OrderStatus.CANCELLED:
            log.info("order.already_cancelled")
            return order
        if not order.can_transition_to(OrderStatus.CANCELLED):
            log.warning("order.cancel_not_allowed")
            raise InvalidOrderStatus(f"Cannot cancel order in status {order.status}.")

        self._cancel_locked(order, notes or "Order cancelled by the buyer")
        return order

    @transaction.atomic
    def cancel_if_pending(
        self, order_id: int, notes: str, **fields: Any
    ) -> bool:
        """Cancel and restock a pending order; terminal orders are left alone.

        Used by the gateway reconciliation, the expiry sweeper and the
        compensating rollback of a failed checkout.  Extra ``fields``
        (e.g. ``mp_payment_id``) are written together with the status.

        Returns ``True`` when the order was cancelled by this call.

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self._lock(order_id)
        if order.is_terminal:
            logger.info(
                "order.already_terminal", order_id=order_id, status=order.status
            )
            return False

        self._cancel_locked(order, notes, **fields)
        return True

    @transaction.atomic
    def set_tracking_code(self, order_id: int, tracking_code: str) -> Order:
        """Record the carrier tracking code of a paid order.

        Never touches status or stock.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is not paid.
        """
        order = self._lock(order_id)
        if order.status != OrderStatus.PAID:
            raise InvalidOrderStatus(
                f"Tracking code can only be set on paid orders (status {order.status})."
            )
        self._order_repo.update(order, tracking_code=tracking_code)
        logger.info("order.tracking_code_set", order_id=order_id)
        return self.get_order(order_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: int) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_order_for_user(self, order_id: int, user_id: int) -> Order:
        """Like ``get_order`` but hides orders of other users."""
        order = self.get_order(order_id)
        if order.user_id != user_id:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Return a list of orders, optionally filtered."""
        return self._order_repo.list(filters)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock(self, order_id: int) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _cancel_locked(self, order: Order, notes: str, **fields: Any) -> None:
        """Restock every line and flip a locked pending order to cancelled."""
        lines = [
            StockLineDTO(product_id=item.product_id, quantity=item.quantity)
            for item in order.items.all()
        ]
        if lines:
            self._product_repo.release_stock(lines)

        old_status = order.status
        self._order_repo.update(order, status=OrderStatus.CANCELLED, **fields)
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.CANCELLED,
            notes=notes,
            old_status=old_status,
        )
        logger.info(
            "order.cancelled",
            order_id=order.id,
            restocked_lines=len(lines),
            reason=notes,
        )
