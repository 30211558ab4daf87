"""Order API views.

Exposes checkout, order read-back, cancellation, back-office management
and the expiry sweep over HTTP.  Domain exceptions are caught and
translated into appropriate HTTP status codes; the view never swallows
generic exceptions.
"""

from __future__ import annotations

import structlog
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.accounts.dtos import PayerDTO
from modules.accounts.exceptions import AddressNotFound
from modules.accounts.repositories.django_repository import AddressDjangoRepository
from modules.catalog.exceptions import InactiveProduct, InsufficientStock, ProductNotFound
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.checkout import CheckoutService, CheckoutSessionResolver
from modules.orders.dtos import CheckoutDTO, CheckoutItemDTO
from modules.orders.exceptions import (
    CheckoutValidationError,
    InvalidOrderStatus,
    OrderNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AdminOrderListSerializer,
    AdminOrderSerializer,
    CheckoutPreferenceSerializer,
    OrderListSerializer,
    OrderSerializer,
    TrackingCodeSerializer,
    first_error,
)
from modules.orders.services import OrderService
from modules.orders.tasks import build_sweeper
from modules.payments.exceptions import GatewayError, GatewayNotConfigured
from modules.payments.gateway.mercadopago import MercadoPagoGateway

logger = structlog.get_logger(__name__)

CONFIGURATION_ERROR = "Server configuration error."


def error_response(message: str, http_status: int) -> Response:
    return Response({"error": message}, status=http_status)


def build_order_service(order_repo: OrderDjangoRepository | None = None) -> OrderService:
    return OrderService(
        order_repository=order_repo or OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


class CheckoutPreferenceView(APIView):
    """POST /api/v1/checkout/preference/

    Returns 201 with a new payment session, or 200 with ``reused: true``
    when the same cart already has a pending order with a session.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "checkout"

    def post(self, request: Request) -> Response:
        serializer = CheckoutPreferenceSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                first_error(serializer.errors), status.HTTP_400_BAD_REQUEST
            )

        try:
            dto = self._build_dto(request, serializer.validated_data)
        except CheckoutValidationError as exc:
            return error_response(str(exc), status.HTTP_400_BAD_REQUEST)

        # Configuration is checked before anything is reserved.
        try:
            gateway = MercadoPagoGateway.from_settings()
        except GatewayNotConfigured:
            return error_response(
                CONFIGURATION_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        order_repo = OrderDjangoRepository()
        order_service = build_order_service(order_repo)
        service = CheckoutService(
            resolver=CheckoutSessionResolver(
                order_repository=order_repo,
                address_repository=AddressDjangoRepository(),
                order_service=order_service,
            ),
            order_service=order_service,
            gateway=gateway,
        )

        try:
            result = service.checkout(dto)
        except AddressNotFound:
            return error_response("Address not found.", status.HTTP_404_NOT_FOUND)
        except ProductNotFound as exc:
            return error_response(str(exc), status.HTTP_404_NOT_FOUND)
        except (InactiveProduct, InsufficientStock) as exc:
            return error_response(str(exc), status.HTTP_409_CONFLICT)
        except GatewayError:
            return error_response(
                "Payment provider is unavailable, please try again.",
                status.HTTP_502_BAD_GATEWAY,
            )

        return Response(
            result.model_dump(),
            status=status.HTTP_200_OK if result.reused else status.HTTP_201_CREATED,
        )

    @staticmethod
    def _build_dto(request: Request, data: dict) -> CheckoutDTO:
        """Turn validated request data into a ``CheckoutDTO``.

        Raises:
            CheckoutValidationError: the payer is invalid or the request
                claims to be made for another user.
        """
        metadata = data["metadata"]
        if metadata["user_id"] != request.user.id:
            logger.warning(
                "checkout.user_mismatch",
                user_id=request.user.id,
                claimed_user_id=metadata["user_id"],
            )
            raise CheckoutValidationError(
                "metadata.user_id does not match the authenticated user."
            )

        try:
            return CheckoutDTO(
                user_id=request.user.id,
                address_id=metadata["address_id"],
                items=[
                    CheckoutItemDTO(product_id=item["id"], quantity=item["quantity"])
                    for item in data["items"]
                ],
                payer=PayerDTO(**metadata["payer"]),
            )
        except PydanticValidationError as exc:
            raise CheckoutValidationError(exc.errors()[0]["msg"]) from exc


# ---------------------------------------------------------------------------
# Buyer: read-back and cancellation
# ---------------------------------------------------------------------------


class OrderViewSet(GenericViewSet):
    """The authenticated buyer's own orders.

    Success and failure pages re-read the order here instead of trusting
    redirect query parameters.
    """

    queryset = Order.objects.none()
    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._order_repo = OrderDjangoRepository()
        self._service = build_order_service(self._order_repo)

    def get_throttles(self) -> list[BaseThrottle]:
        """Define escopos de throttling por ação."""
        if self.action in {"list", "retrieve"}:
            self.throttle_scope = "order_listing"
        else:
            self.throttle_scope = None
        return super().get_throttles()

    def get_queryset(self):
        return self._order_repo.queryset().filter(user_id=self.request.user.id)

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/"""
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(self.get_queryset(), request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order_for_user(int(pk), request.user.id)
        except (OrderNotFound, TypeError, ValueError):
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels a pending order and releases reserved stock.  Cancelling an
        already cancelled order is a no-op.
        """
        try:
            order_id = int(pk)
            self._service.cancel_order(
                order_id,
                notes="Order cancelled by the buyer",
                user_id=request.user.id,
            )
        except (OrderNotFound, TypeError, ValueError):
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InvalidOrderStatus as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )

        order = self._service.get_order(order_id)
        return Response(OrderSerializer(order).data)


# ---------------------------------------------------------------------------
# Back-office
# ---------------------------------------------------------------------------


class AdminOrderViewSet(GenericViewSet):
    """Staff-only order management (sales report, shipping)."""

    queryset = Order.objects.none()
    permission_classes = [IsAdminUser]
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total_amount"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._order_repo = OrderDjangoRepository()
        self._service = build_order_service(self._order_repo)

    def get_queryset(self):
        return self._order_repo.queryset()

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/

        Filtering (status, date range, total range) is handled by
        ``OrderFilter``; ordering by ``OrderingFilter``.  Paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = AdminOrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/admin/orders/{pk}/"""
        try:
            order = self._service.get_order(int(pk))
        except (OrderNotFound, TypeError, ValueError):
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(AdminOrderSerializer(order).data)

    @action(detail=True, methods=["patch"])
    def tracking(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/admin/orders/{pk}/tracking/"""
        serializer = TrackingCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.set_tracking_code(
                int(pk), serializer.validated_data["tracking_code"]
            )
        except (OrderNotFound, TypeError, ValueError):
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InvalidOrderStatus as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )

        return Response(AdminOrderSerializer(order).data)


class ExpirySweepView(APIView):
    """POST /api/v1/orders/expire/

    Runs the expiry sweep on demand (the Celery beat schedule runs the
    same sweep hourly).
    """

    permission_classes = [IsAdminUser]

    def post(self, request: Request) -> Response:
        outcomes = build_sweeper().sweep()
        return Response(
            {
                "success": all(outcome.success for outcome in outcomes),
                "results": [outcome.message for outcome in outcomes],
            }
        )
