"""Unit tests for the stock ledger (``ProductDjangoRepository``).

Covers:
- reserve_stock decrements every line.
- All-or-nothing: one failing line leaves every product untouched.
- Inactive / unknown products are rejected before any decrement.
- release_stock gives the quantities back.
"""

from __future__ import annotations

import pytest

from modules.catalog.dtos import StockLineDTO
from modules.catalog.exceptions import InactiveProduct, InsufficientStock, ProductNotFound
from modules.catalog.models import ProductStatus
from modules.catalog.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return ProductDjangoRepository()


class TestReserveStock:
    def test_decrements_every_line(self, repo, product_a, product_b):
        products = repo.reserve_stock(
            [
                StockLineDTO(product_id=product_b.id, quantity=2),
                StockLineDTO(product_id=product_a.id, quantity=3),
            ]
        )

        product_a.refresh_from_db()
        product_b.refresh_from_db()
        assert product_a.stock == 7
        assert product_b.stock == 3
        # returned in the order of the lines
        assert [p.id for p in products] == [product_b.id, product_a.id]

    def test_exact_stock_is_allowed(self, repo, make_product):
        product = make_product(name="Tokyo Clear Acetate", stock=1)

        repo.reserve_stock([StockLineDTO(product_id=product.id, quantity=1)])

        product.refresh_from_db()
        assert product.stock == 0

    def test_insufficient_stock_aborts_whole_reservation(
        self, repo, product_a, product_b
    ):
        with pytest.raises(InsufficientStock) as exc_info:
            repo.reserve_stock(
                [
                    StockLineDTO(product_id=product_a.id, quantity=1),
                    StockLineDTO(product_id=product_b.id, quantity=6),
                ]
            )

        assert exc_info.value.product_name == "Brooklyn Round Metal"
        assert exc_info.value.requested == 6
        assert exc_info.value.available == 5
        assert "Brooklyn Round Metal" in str(exc_info.value)

        product_a.refresh_from_db()
        product_b.refresh_from_db()
        assert product_a.stock == 10
        assert product_b.stock == 5

    def test_inactive_product_rejected(self, repo, make_product):
        product = make_product(name="Old Frame", status=ProductStatus.INACTIVE)

        with pytest.raises(InactiveProduct):
            repo.reserve_stock([StockLineDTO(product_id=product.id, quantity=1)])

        product.refresh_from_db()
        assert product.stock == 10

    def test_unknown_product_rejected(self, repo, product_a):
        with pytest.raises(ProductNotFound):
            repo.reserve_stock(
                [
                    StockLineDTO(product_id=product_a.id, quantity=1),
                    StockLineDTO(product_id=999999, quantity=1),
                ]
            )

        product_a.refresh_from_db()
        assert product_a.stock == 10


class TestReleaseStock:
    def test_restores_quantities(self, repo, product_a, product_b):
        lines = [
            StockLineDTO(product_id=product_a.id, quantity=4),
            StockLineDTO(product_id=product_b.id, quantity=5),
        ]
        repo.reserve_stock(lines)

        repo.release_stock(lines)

        product_a.refresh_from_db()
        product_b.refresh_from_db()
        assert product_a.stock == 10
        assert product_b.stock == 5

    def test_unknown_product_is_skipped(self, repo, product_a):
        repo.release_stock(
            [
                StockLineDTO(product_id=999999, quantity=1),
                StockLineDTO(product_id=product_a.id, quantity=2),
            ]
        )

        product_a.refresh_from_db()
        assert product_a.stock == 12


class TestStockLineDTO:
    def test_rejects_non_positive_quantity(self):
        with pytest.raises(ValueError):
            StockLineDTO(product_id=1, quantity=0)
