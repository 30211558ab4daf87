"""Unit tests for ``OrderService``.

Covers:
- place_order: stock reserved, price snapshot, total, cart hash, history.
- mark_paid: pending -> paid; terminal orders untouched.
- cancel_order: stock restored, idempotent, paid orders rejected.
- cancel_if_pending: terminal orders untouched, extra fields written.
- set_tracking_code: paid only, status and stock unchanged.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.catalog.exceptions import InsufficientStock
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound
from modules.orders.models import Order, OrderStatusHistory

pytestmark = pytest.mark.unit


@pytest.fixture()
def placed(order_service, make_checkout_dto, product_a, product_b):
    return order_service.place_order(make_checkout_dto((product_a, 2), (product_b, 1)))


def _stock(product):
    product.refresh_from_db()
    return product.stock


class TestPlaceOrder:
    def test_creates_pending_order_and_reserves_stock(
        self, placed, make_checkout_dto, product_a, product_b
    ):
        order = Order.objects.get(id=placed.order_id)

        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("327.00")
        assert placed.total_amount == Decimal("327.00")
        assert order.cart_hash == make_checkout_dto((product_a, 2), (product_b, 1)).cart_hash
        assert order.mp_preference_id is None
        assert _stock(product_a) == 8
        assert _stock(product_b) == 4

    def test_items_snapshot_catalog_price(self, placed, product_a):
        order = Order.objects.get(id=placed.order_id)
        item = order.items.get(product=product_a)

        product_a.price = Decimal("199.00")
        product_a.save()

        item.refresh_from_db()
        assert item.unit_price == Decimal("99.00")
        assert item.subtotal == Decimal("198.00")

    def test_returns_gateway_items(self, placed, product_a):
        first = placed.items[0]
        assert first.id == str(product_a.id)
        assert first.title == product_a.name
        assert first.picture_url == product_a.images[0]
        assert first.quantity == 2
        assert first.unit_price == Decimal("99.00")

    def test_records_initial_history(self, placed):
        history = OrderStatusHistory.objects.get(order_id=placed.order_id)
        assert history.old_status is None
        assert history.new_status == OrderStatus.PENDING

    def test_insufficient_stock_creates_nothing(
        self, order_service, make_checkout_dto, product_a, product_b
    ):
        with pytest.raises(InsufficientStock):
            order_service.place_order(make_checkout_dto((product_a, 1), (product_b, 99)))

        assert Order.objects.count() == 0
        assert _stock(product_a) == 10
        assert _stock(product_b) == 5


class TestMarkPaid:
    def test_pending_becomes_paid(self, order_service, placed):
        assert order_service.mark_paid(placed.order_id, payment_id="123") is True

        order = Order.objects.get(id=placed.order_id)
        assert order.status == OrderStatus.PAID
        assert order.mp_payment_id == "123"
        assert order.status_history.filter(
            old_status=OrderStatus.PENDING, new_status=OrderStatus.PAID
        ).exists()

    def test_paid_is_not_paid_twice(self, order_service, placed):
        order_service.mark_paid(placed.order_id, payment_id="123")

        assert order_service.mark_paid(placed.order_id, payment_id="456") is False
        order = Order.objects.get(id=placed.order_id)
        assert order.mp_payment_id == "123"
        assert order.status_history.count() == 2

    def test_cancelled_order_stays_cancelled(self, order_service, placed, product_a):
        order_service.cancel_order(placed.order_id)

        assert order_service.mark_paid(placed.order_id, payment_id="123") is False
        assert Order.objects.get(id=placed.order_id).status == OrderStatus.CANCELLED
        assert _stock(product_a) == 10

    def test_unknown_order(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.mark_paid(999999, payment_id="1")


class TestCancelOrder:
    def test_restores_stock_and_records_history(
        self, order_service, placed, product_a, product_b
    ):
        order = order_service.cancel_order(placed.order_id, notes="Changed my mind")

        assert order.status == OrderStatus.CANCELLED
        assert _stock(product_a) == 10
        assert _stock(product_b) == 5
        history = OrderStatusHistory.objects.filter(
            order_id=placed.order_id, new_status=OrderStatus.CANCELLED
        ).get()
        assert history.old_status == OrderStatus.PENDING
        assert history.notes == "Changed my mind"

    def test_is_idempotent(self, order_service, placed, product_a):
        order_service.cancel_order(placed.order_id)
        order = order_service.cancel_order(placed.order_id)

        assert order.status == OrderStatus.CANCELLED
        assert _stock(product_a) == 10
        assert (
            OrderStatusHistory.objects.filter(
                order_id=placed.order_id, new_status=OrderStatus.CANCELLED
            ).count()
            == 1
        )

    def test_paid_order_cannot_be_cancelled(self, order_service, placed, product_a):
        order_service.mark_paid(placed.order_id, payment_id="123")

        with pytest.raises(InvalidOrderStatus):
            order_service.cancel_order(placed.order_id)

        assert Order.objects.get(id=placed.order_id).status == OrderStatus.PAID
        assert _stock(product_a) == 8

    def test_other_users_order_is_not_found(self, order_service, placed, other_buyer):
        with pytest.raises(OrderNotFound):
            order_service.cancel_order(placed.order_id, user_id=other_buyer.id)

        assert Order.objects.get(id=placed.order_id).status == OrderStatus.PENDING


class TestCancelIfPending:
    def test_cancels_pending_and_writes_extra_fields(
        self, order_service, placed, product_b
    ):
        assert order_service.cancel_if_pending(
            placed.order_id, notes="Payment 9 rejected", mp_payment_id="9"
        )

        order = Order.objects.get(id=placed.order_id)
        assert order.status == OrderStatus.CANCELLED
        assert order.mp_payment_id == "9"
        assert _stock(product_b) == 5

    def test_paid_order_untouched(self, order_service, placed, product_a):
        order_service.mark_paid(placed.order_id, payment_id="1")

        assert not order_service.cancel_if_pending(placed.order_id, notes="late")
        assert Order.objects.get(id=placed.order_id).status == OrderStatus.PAID
        assert _stock(product_a) == 8


class TestAttachPaymentSession:
    def test_written_once(self, order_service, placed):
        order_service.attach_payment_session(placed.order_id, "pref-1", "https://mp/1")
        order_service.attach_payment_session(placed.order_id, "pref-2", "https://mp/2")

        order = Order.objects.get(id=placed.order_id)
        assert order.mp_preference_id == "pref-1"
        assert order.mp_init_point == "https://mp/1"


class TestTrackingCode:
    def test_set_on_paid_order(self, order_service, placed, product_a):
        order_service.mark_paid(placed.order_id, payment_id="1")

        order = order_service.set_tracking_code(placed.order_id, "BR123456789BR")

        assert order.tracking_code == "BR123456789BR"
        assert order.status == OrderStatus.PAID
        assert _stock(product_a) == 8

    def test_rejected_on_pending_order(self, order_service, placed):
        with pytest.raises(InvalidOrderStatus):
            order_service.set_tracking_code(placed.order_id, "BR123456789BR")


class TestQueries:
    def test_get_order_for_user_hides_other_users(
        self, order_service, placed, buyer, other_buyer
    ):
        assert order_service.get_order_for_user(placed.order_id, buyer.id).id == placed.order_id
        with pytest.raises(OrderNotFound):
            order_service.get_order_for_user(placed.order_id, other_buyer.id)

    def test_list_orders_with_filters(self, order_service, placed, buyer):
        assert [o.id for o in order_service.list_orders({"user_id": buyer.id})] == [
            placed.order_id
        ]
        assert order_service.list_orders({"status": OrderStatus.PAID}) == []
