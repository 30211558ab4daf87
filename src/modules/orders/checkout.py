"""Checkout use case.

``CheckoutSessionResolver`` decides between reusing an in-flight payment
session and placing a new order.  ``CheckoutService`` drives the whole
flow: resolve, open the gateway session, and on gateway failure run the
compensating cancellation before re-raising.

The stock reservation commits before the gateway is called; no database
lock is held across the HTTP request.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Optional, Union

import structlog
from django.conf import settings
from django.utils import timezone

from modules.accounts.exceptions import AddressNotFound
from modules.orders.dtos import CheckoutResultDTO, ExistingSessionDTO
from modules.payments.exceptions import GatewayError

if TYPE_CHECKING:
    from modules.accounts.repositories.interfaces import IAddressRepository
    from modules.orders.dtos import CheckoutDTO, PlacedOrderDTO
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.services import OrderService
    from modules.payments.gateway.interfaces import IPaymentGateway

logger = structlog.get_logger(__name__)


class CheckoutSessionResolver:
    """Idempotent front door of the checkout.

    Re-submitting an identical cart for the same address while its order
    is still pending and inside the expiry window resolves to the same
    order and payment session, without touching stock.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        address_repository: IAddressRepository,
        order_service: OrderService,
        expiry_hours: Optional[int] = None,
    ) -> None:
        self._order_repo = order_repository
        self._address_repo = address_repository
        self._order_service = order_service
        self.expiry_hours = (
            expiry_hours if expiry_hours is not None else settings.ORDER_EXPIRY_HOURS
        )

    def find_existing(self, dto: CheckoutDTO) -> Optional[ExistingSessionDTO]:
        # Orders the sweeper may already be cancelling are never handed out.
        cutoff = timezone.now() - timedelta(hours=self.expiry_hours)
        order = self._order_repo.find_reusable(
            dto.user_id, dto.cart_hash, dto.address_id, created_after=cutoff
        )
        if order is None:
            return None
        return ExistingSessionDTO(
            order_id=order.id,
            preference_id=order.mp_preference_id,
            init_point=order.mp_init_point or "",
        )

    def resolve(self, dto: CheckoutDTO) -> Union[ExistingSessionDTO, PlacedOrderDTO]:
        """Return the reusable session, or reserve stock for a new order.

        Raises:
            AddressNotFound: the address is unknown or not the buyer's.
            ProductNotFound, InactiveProduct, InsufficientStock: from the
                stock reservation; nothing was decremented.
        """
        if self._address_repo.get_for_user(dto.address_id, dto.user_id) is None:
            raise AddressNotFound(f"Address {dto.address_id} not found.")

        existing = self.find_existing(dto)
        if existing is not None:
            logger.info(
                "checkout.session_reused",
                order_id=existing.order_id,
                preference_id=existing.preference_id,
            )
            return existing

        return self._order_service.place_order(dto)


class CheckoutService:
    def __init__(
        self,
        resolver: CheckoutSessionResolver,
        order_service: OrderService,
        gateway: IPaymentGateway,
    ) -> None:
        self._resolver = resolver
        self._order_service = order_service
        self._gateway = gateway

    def checkout(self, dto: CheckoutDTO) -> CheckoutResultDTO:
        """Open (or reuse) a payment session for the buyer's cart.

        Raises:
            GatewayError: the gateway refused or failed; the new order was
                cancelled and its stock restored before re-raising.
        """
        session = self._resolver.resolve(dto)
        if isinstance(session, ExistingSessionDTO):
            return CheckoutResultDTO(
                order_id=session.order_id,
                preference_id=session.preference_id,
                init_point=session.init_point,
                reused=True,
            )

        log = logger.bind(order_id=session.order_id, user_id=dto.user_id)
        try:
            preference = self._gateway.create_preference(
                session.order_id,
                [item.as_gateway_item() for item in session.items],
                dto.payer.as_gateway_payer(),
            )
        except GatewayError as exc:
            log.error("checkout.gateway_failed", error=str(exc))
            self._order_service.cancel_if_pending(
                session.order_id, notes="Payment session could not be created"
            )
            log.info("checkout.compensated")
            raise

        self._order_service.attach_payment_session(
            session.order_id, preference.id, preference.init_point
        )
        log.info("checkout.session_created", preference_id=preference.id)
        return CheckoutResultDTO(
            order_id=session.order_id,
            preference_id=preference.id,
            init_point=preference.init_point,
        )
