"""Product repository interface.

Besides catalog look-ups, this contract owns the only two mutation entry
points of the stock ledger: ``reserve_stock`` and ``release_stock``.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, List

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.dtos import StockLineDTO
    from modules.catalog.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate and its stock."""

    @abstractmethod
    def reserve_stock(self, lines: Iterable[StockLineDTO]) -> List[Product]:
        """Atomically decrement stock for every line, all-or-nothing.

        Must run inside the caller's transaction; product rows stay locked
        until it commits.  Returns the locked products (with the price the
        order should snapshot) in the order of ``lines``.

        Raises ``ProductNotFound``, ``InactiveProduct`` or
        ``InsufficientStock`` before touching any row.
        """

    @abstractmethod
    def release_stock(self, lines: Iterable[StockLineDTO]) -> None:
        """Atomically give back the quantities of a cancelled reservation."""
