"""Address repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.models import Address


class IAddressRepository(IRepository["Address"]):
    """Repository contract for shipping addresses."""

    @abstractmethod
    def get_for_user(self, address_id: int, user_id: int) -> Optional[Address]:
        """Retrieve an address only if it belongs to ``user_id``."""
