from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from modules.orders.dtos import CheckoutDTO, CheckoutItemDTO, GatewayItemDTO
from modules.orders.fingerprint import cart_fingerprint

pytestmark = pytest.mark.unit


def _dto(payer, items):
    return CheckoutDTO(user_id=1, address_id=1, items=items, payer=payer)


class TestCheckoutDTO:
    def test_cart_hash_is_fingerprint_of_items(self, payer):
        dto = _dto(
            payer,
            [
                CheckoutItemDTO(product_id=5, quantity=1),
                CheckoutItemDTO(product_id=2, quantity=3),
            ],
        )
        assert dto.cart_hash == cart_fingerprint([(2, 3), (5, 1)])

    def test_stock_lines(self, payer):
        dto = _dto(payer, [CheckoutItemDTO(product_id=5, quantity=2)])
        [line] = dto.stock_lines
        assert (line.product_id, line.quantity) == (5, 2)

    def test_empty_cart_rejected(self, payer):
        with pytest.raises(ValidationError, match="at least one item"):
            _dto(payer, [])

    def test_duplicate_products_rejected(self, payer):
        with pytest.raises(ValidationError, match="Duplicate"):
            _dto(
                payer,
                [
                    CheckoutItemDTO(product_id=5, quantity=1),
                    CheckoutItemDTO(product_id=5, quantity=2),
                ],
            )

    def test_non_positive_quantity_rejected(self):
        with pytest.raises(ValidationError):
            CheckoutItemDTO(product_id=5, quantity=0)

    def test_is_frozen(self, payer):
        dto = _dto(payer, [CheckoutItemDTO(product_id=5, quantity=1)])
        with pytest.raises(ValidationError):
            dto.user_id = 2


class TestGatewayItemDTO:
    def test_as_gateway_item(self):
        item = GatewayItemDTO(
            id="7",
            title="Monaco Blue Aviator",
            description="Aviator",
            picture_url="https://img.example.com/a.jpg",
            quantity=2,
            unit_price=Decimal("149.90"),
        )
        assert item.as_gateway_item() == {
            "id": "7",
            "title": "Monaco Blue Aviator",
            "description": "Aviator",
            "picture_url": "https://img.example.com/a.jpg",
            "quantity": 2,
            "unit_price": 149.9,
            "currency_id": "BRL",
        }

    def test_blank_picture_is_omitted(self):
        item = GatewayItemDTO(id="7", title="X", quantity=1, unit_price=Decimal("1"))
        assert "picture_url" not in item.as_gateway_item()
