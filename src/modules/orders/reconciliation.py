"""Payment notification reconciliation.

The gateway notifies asynchronously and may redeliver.  A notification is
only a hint: the payment is always re-queried from the gateway and the
order status is derived from that answer, under a row lock, with terminal
orders left untouched.  Any raised exception makes the webhook answer
non-2xx so the gateway retries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, Tuple

import structlog

from modules.orders.constants import GATEWAY_STATUS_MAP, OrderStatus
from modules.orders.exceptions import MissingExternalReference

if TYPE_CHECKING:
    from modules.orders.services import OrderService
    from modules.payments.gateway.interfaces import IPaymentGateway

logger = structlog.get_logger(__name__)

PAYMENT_TOPIC = "payment"

OUTCOME_PAID = "paid"
OUTCOME_CANCELLED = "cancelled"
OUTCOME_UNCHANGED = "unchanged"


def parse_notification(
    body: Mapping[str, Any], query: Mapping[str, Any]
) -> Tuple[Optional[str], Optional[str]]:
    """Extract ``(topic, payment_id)`` from a webhook delivery.

    The body (``type`` / ``data.id``) wins over the query string
    (``type`` or ``topic`` / ``data.id`` or ``id``).
    """
    data = body.get("data") if isinstance(body.get("data"), Mapping) else {}
    payment_id = data.get("id") or query.get("data.id") or query.get("id")
    topic = body.get("type") or query.get("type") or query.get("topic")
    return (
        str(topic) if topic else None,
        str(payment_id) if payment_id else None,
    )


class WebhookReconciler:
    def __init__(self, gateway: IPaymentGateway, order_service: OrderService) -> None:
        self._gateway = gateway
        self._order_service = order_service

    def reconcile(self, payment_id: str) -> str:
        """Bring the referenced order in line with the payment status.

        Returns one of ``paid``, ``cancelled`` or ``unchanged``.

        Raises:
            GatewayError: the payment could not be re-queried.
            MissingExternalReference: the payment carries no order id.
            OrderNotFound: the referenced order does not exist.
        """
        log = logger.bind(payment_id=payment_id)
        payment = self._gateway.get_payment(payment_id)
        log = log.bind(
            gateway_status=payment.status,
            external_reference=payment.external_reference,
        )

        if payment.order_id is None:
            log.error("webhook.missing_external_reference")
            raise MissingExternalReference(
                f"Payment {payment_id} has no usable external_reference."
            )

        target = GATEWAY_STATUS_MAP.get(payment.status)
        if target == OrderStatus.PAID:
            changed = self._order_service.mark_paid(
                payment.order_id,
                payment_id=payment.id,
                notes=f"Payment {payment.id} approved",
            )
            outcome = OUTCOME_PAID if changed else OUTCOME_UNCHANGED
        elif target == OrderStatus.CANCELLED:
            changed = self._order_service.cancel_if_pending(
                payment.order_id,
                notes=f"Payment {payment.id} {payment.status}",
                mp_payment_id=payment.id,
            )
            outcome = OUTCOME_CANCELLED if changed else OUTCOME_UNCHANGED
        else:
            outcome = OUTCOME_UNCHANGED

        log.info("webhook.reconciled", order_id=payment.order_id, outcome=outcome)
        return outcome
