"""Stock concurrency integration test.

Proves that ``SELECT FOR UPDATE`` in ``OrderService.place_order`` and
``cancel_if_pending`` serializes concurrent reservations and releases.

Scenario:
- Product "Tokyo Clear Acetate" with **stock = 5**.
- 10 threads attempt to buy 1 unit each simultaneously.
- Exactly 5 succeed, 5 raise ``InsufficientStock``.
- Final stock is 0 (never negative).

Uses ``TransactionTestCase`` so each thread sees committed data.  SQLite
has no row-level locks, so these tests only run against PostgreSQL or
MySQL (``DATABASE_URL``).
"""

from __future__ import annotations

import logging
import unittest
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal

import django
from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TransactionTestCase

from modules.accounts.dtos import PayerDTO
from modules.accounts.models import Address
from modules.catalog.exceptions import InsufficientStock
from modules.catalog.models import Product, ProductStatus
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CheckoutDTO, CheckoutItemDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

logger = logging.getLogger(__name__)

VALID_CPF = "59860184275"
INITIAL_STOCK = 5
NUM_WORKERS = 10


def _service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


@unittest.skipUnless(
    connection.features.has_select_for_update,
    "row-level locking requires PostgreSQL or MySQL",
)
class TestStockConcurrency(TransactionTestCase):
    """Prove atomic stock reservation under concurrent load."""

    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="concurrency", email="concurrency@example.com", password="x"
        )
        self.address = Address.objects.create(
            user=self.user,
            street="Rua Augusta",
            number="500",
            neighborhood="Consolação",
            city="São Paulo",
            state="SP",
            zip_code="01305000",
        )
        self.product = Product.objects.create(
            name="Tokyo Clear Acetate",
            description="Minimalist clear acetate frames.",
            price=Decimal("79.00"),
            stock=INITIAL_STOCK,
            status=ProductStatus.ACTIVE,
        )

    def _place_order_in_thread(self, thread_id: int) -> str:
        """Attempt to place an order. Returns 'success' or 'insufficient'."""
        django.db.connections.close_all()

        dto = CheckoutDTO(
            user_id=self.user.id,
            address_id=self.address.id,
            items=[CheckoutItemDTO(product_id=self.product.id, quantity=1)],
            payer=PayerDTO(
                name="Ana", surname="Souza", email="ana@example.com", tax_id=VALID_CPF
            ),
        )
        try:
            _service().place_order(dto)
            logger.warning("Thread %d: order placed", thread_id)
            return "success"
        except InsufficientStock:
            logger.warning("Thread %d: InsufficientStock (expected)", thread_id)
            return "insufficient"
        finally:
            django.db.connections.close_all()

    def _cancel_in_thread(self, order_id: int) -> bool:
        django.db.connections.close_all()
        try:
            return _service().cancel_if_pending(order_id, notes="Concurrent cancel")
        finally:
            django.db.connections.close_all()

    def _run(self, fn, args):
        results = []
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            futures = [pool.submit(fn, arg) for arg in args]
            for future in as_completed(futures):
                results.append(future.result())
        return results

    def test_concurrent_orders_exhaust_stock(self):
        """10 threads buy 1 unit from stock=5: exactly 5 succeed."""
        results = self._run(self._place_order_in_thread, range(NUM_WORKERS))

        self.assertEqual(results.count("success"), INITIAL_STOCK)
        self.assertEqual(results.count("insufficient"), NUM_WORKERS - INITIAL_STOCK)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 0)
        self.assertEqual(Order.objects.count(), INITIAL_STOCK)

    def test_concurrent_cancellations_restock_once(self):
        """The same order cancelled from 10 threads restores stock once."""
        placed = _service().place_order(
            CheckoutDTO(
                user_id=self.user.id,
                address_id=self.address.id,
                items=[CheckoutItemDTO(product_id=self.product.id, quantity=2)],
                payer=PayerDTO(
                    name="Ana",
                    surname="Souza",
                    email="ana@example.com",
                    tax_id=VALID_CPF,
                ),
            )
        )

        results = self._run(self._cancel_in_thread, [placed.order_id] * NUM_WORKERS)

        self.assertEqual(results.count(True), 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, INITIAL_STOCK)
        self.assertEqual(
            Order.objects.get(id=placed.order_id).status, OrderStatus.CANCELLED
        )
