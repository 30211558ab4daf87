"""Django ORM implementation of the Product repository.

Stock movements lock the affected product rows with ``select_for_update``
in ascending primary-key order (prevents deadlocks between two carts that
share products) and apply the delta with an ``F()`` expression, so the
database arbitrates concurrent checkouts.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from modules.catalog.dtos import StockLineDTO
from modules.catalog.exceptions import InactiveProduct, InsufficientStock, ProductNotFound
from modules.catalog.models import Product
from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: int) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, TypeError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        queryset = Product.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    # ------------------------------------------------------------------
    # Stock ledger
    # ------------------------------------------------------------------

    @transaction.atomic
    def reserve_stock(self, lines: Iterable[StockLineDTO]) -> List[Product]:
        lines = list(lines)
        locked = self._lock(lines)

        # Validate every line before the first decrement (all-or-nothing).
        for line in lines:
            product = locked.get(line.product_id)
            if product is None:
                raise ProductNotFound(f"Product {line.product_id} not found.")
            if not product.is_active:
                raise InactiveProduct(product.name)
            if product.stock < line.quantity:
                logger.info(
                    "stock.insufficient",
                    product_id=product.id,
                    requested=line.quantity,
                    available=product.stock,
                )
                raise InsufficientStock(product.name, line.quantity, product.stock)

        now = timezone.now()
        for line in lines:
            product = locked[line.product_id]
            Product.objects.filter(id=product.id).update(
                stock=F("stock") - line.quantity, updated_at=now
            )
            product.stock -= line.quantity
            logger.info(
                "stock.reserved",
                product_id=product.id,
                quantity=line.quantity,
                remaining=product.stock,
            )

        return [locked[line.product_id] for line in lines]

    @transaction.atomic
    def release_stock(self, lines: Iterable[StockLineDTO]) -> None:
        lines = list(lines)
        locked = self._lock(lines)

        now = timezone.now()
        for line in lines:
            product = locked.get(line.product_id)
            if product is None:
                logger.warning("stock.release_unknown_product", product_id=line.product_id)
                continue
            Product.objects.filter(id=product.id).update(
                stock=F("stock") + line.quantity, updated_at=now
            )
            logger.info(
                "stock.released",
                product_id=product.id,
                quantity=line.quantity,
                restored_stock=product.stock + line.quantity,
            )

    def _lock(self, lines: List[StockLineDTO]) -> Dict[int, Product]:
        ids = sorted({line.product_id for line in lines})
        return {
            product.id: product
            for product in Product.objects.select_for_update()
            .filter(id__in=ids)
            .order_by("id")
        }
