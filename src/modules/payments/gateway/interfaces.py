"""Payment gateway interface.

The checkout and reconciliation services depend on this contract only,
so tests can hand them a mock gateway.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List

if TYPE_CHECKING:
    from modules.payments.dtos import PaymentInfoDTO, PreferenceDTO


class IPaymentGateway(ABC):
    @abstractmethod
    def create_preference(
        self,
        order_id: int,
        items: List[Dict[str, Any]],
        payer: Dict[str, Any],
    ) -> PreferenceDTO:
        """Open a hosted checkout session for ``order_id``.

        Raises ``GatewayError`` on any failure.
        """

    @abstractmethod
    def get_payment(self, payment_id: str) -> PaymentInfoDTO:
        """Fetch the authoritative state of a payment.

        Raises ``GatewayError`` on any failure.
        """
