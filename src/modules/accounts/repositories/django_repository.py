"""Django ORM implementation of the Address repository.

Follows the Null Object pattern: look-ups return ``None`` and the
service layer decides how to report a missing address.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from modules.accounts.models import Address
from modules.accounts.repositories.interfaces import IAddressRepository


class AddressDjangoRepository(IAddressRepository):
    """Concrete Address repository backed by Django ORM."""

    def get_by_id(self, id: int) -> Optional[Address]:
        try:
            return Address.objects.filter(id=id).first()
        except (ValueError, TypeError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Address]:
        queryset = Address.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_user(self, address_id: int, user_id: int) -> Optional[Address]:
        try:
            return Address.objects.filter(id=address_id, user_id=user_id).first()
        except (ValueError, TypeError):
            return None
