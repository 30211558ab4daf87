from __future__ import annotations

from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem

pytestmark = pytest.mark.unit


@pytest.fixture()
def order(buyer, address):
    return Order.objects.create(user=buyer, address=address)


class TestOrderStateMachine:
    def test_defaults(self, order):
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("0.00")
        assert order.mp_preference_id is None
        assert order.tracking_code == ""
        assert not order.is_terminal

    @pytest.mark.parametrize(
        "target", [OrderStatus.PAID, OrderStatus.CANCELLED]
    )
    def test_pending_can_close(self, order, target):
        assert order.can_transition_to(target)

    @pytest.mark.parametrize("current", [OrderStatus.PAID, OrderStatus.CANCELLED])
    def test_terminal_states_are_final(self, order, current):
        order.status = current
        assert order.is_terminal
        for target in OrderStatus.values:
            assert not order.can_transition_to(target)


class TestOrderItem:
    def test_subtotal_calculated_on_save(self, order, product_a):
        item = OrderItem.objects.create(
            order=order, product=product_a, quantity=3, unit_price=Decimal("99.90")
        )
        assert item.subtotal == Decimal("299.70")

    def test_unit_price_is_required(self, order, product_a):
        with pytest.raises(ValidationError):
            OrderItem(order=order, product=product_a, quantity=1).save()

    def test_clean_rejects_zero_quantity(self, order, product_a):
        item = OrderItem(
            order=order, product=product_a, quantity=0, unit_price=Decimal("1.00")
        )
        with pytest.raises(ValidationError):
            item.clean()
