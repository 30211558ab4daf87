"""Payment gateway webhook.

Public endpoint: the gateway cannot authenticate, so the notification is
treated as a hint and the payment is re-queried before anything changes.
Answers 200 once the notification is handled (or deliberately ignored);
any non-2xx makes the gateway redeliver.
"""

from __future__ import annotations

from typing import Any, Mapping

import structlog
from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.orders.exceptions import MissingExternalReference, OrderNotFound
from modules.orders.reconciliation import (
    PAYMENT_TOPIC,
    WebhookReconciler,
    parse_notification,
)
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.payments.exceptions import GatewayError, GatewayNotConfigured
from modules.payments.gateway.mercadopago import MercadoPagoGateway

logger = structlog.get_logger(__name__)


class PaymentWebhookView(APIView):
    """POST /api/v1/payments/webhook/"""

    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payment_webhook"

    def post(self, request: Request) -> Response:
        topic, payment_id = parse_notification(self._body(request), request.query_params)
        log = logger.bind(topic=topic, payment_id=payment_id)

        if topic != PAYMENT_TOPIC or not payment_id:
            log.info("webhook.ignored")
            return Response({"received": True})

        # Only numeric ids ever reach the gateway URL.
        if not (payment_id.isascii() and payment_id.isdigit()):
            log.warning("webhook.invalid_payment_id")
            return Response(
                {"error": "Invalid payment id."}, status=status.HTTP_400_BAD_REQUEST
            )

        log.info("webhook.received")
        try:
            gateway = MercadoPagoGateway.from_settings()
        except GatewayNotConfigured:
            return Response(
                {"error": "Server configuration error."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        reconciler = WebhookReconciler(
            gateway=gateway,
            order_service=OrderService(
                order_repository=OrderDjangoRepository(),
                product_repository=ProductDjangoRepository(),
            ),
        )

        try:
            outcome = reconciler.reconcile(payment_id)
        except MissingExternalReference as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except OrderNotFound as exc:
            log.error("webhook.order_not_found")
            return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except GatewayError:
            log.error("webhook.gateway_query_failed")
            return Response(
                {"error": "Could not confirm the payment with the provider."},
                status=status.HTTP_502_BAD_GATEWAY,
            )

        return Response({"received": True, "outcome": outcome})

    @staticmethod
    def _body(request: Request) -> Mapping[str, Any]:
        try:
            data = request.data
        except ParseError:
            return {}
        return data if isinstance(data, Mapping) else {}
