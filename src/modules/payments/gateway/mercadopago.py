"""Mercado Pago REST adapter.

Talks to two endpoints only:

- ``POST /checkout/preferences`` to open a hosted checkout session whose
  ``external_reference`` is the order id;
- ``GET /v1/payments/{id}`` to re-query a payment announced by a webhook.

Every non-2xx answer, undecodable body or transport failure surfaces as
``GatewayError``.  Settings are read at call time through
``from_settings`` so a missing token fails the request, not the boot.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests
import structlog
from django.conf import settings

from modules.payments.dtos import PaymentInfoDTO, PreferenceDTO
from modules.payments.exceptions import GatewayError, GatewayNotConfigured
from modules.payments.gateway.interfaces import IPaymentGateway

logger = structlog.get_logger(__name__)

WEBHOOK_PATH = "/api/v1/payments/webhook/"


class MercadoPagoGateway(IPaymentGateway):
    def __init__(
        self,
        access_token: str,
        site_url: str,
        api_base_url: str,
        api_url: str = "https://api.mercadopago.com",
        timeout: float = 10.0,
        use_sandbox: bool = False,
        auto_return: bool = True,
        auto_return_fallback: bool = True,
        installments: int = 12,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.site_url = site_url.rstrip("/")
        self.api_base_url = api_base_url.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.use_sandbox = use_sandbox
        self.auto_return = auto_return
        self.auto_return_fallback = auto_return_fallback
        self.installments = installments
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            }
        )

    @classmethod
    def from_settings(
        cls, session: Optional[requests.Session] = None
    ) -> MercadoPagoGateway:
        """Build the adapter from Django settings.

        Raises:
            GatewayNotConfigured: token or public URLs are missing.
        """
        required = {
            "MERCADOPAGO_ACCESS_TOKEN": settings.MERCADOPAGO_ACCESS_TOKEN,
            "SITE_URL": settings.SITE_URL,
            "API_BASE_URL": settings.API_BASE_URL,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            logger.error("gateway.not_configured", missing=missing)
            raise GatewayNotConfigured(missing)

        return cls(
            access_token=settings.MERCADOPAGO_ACCESS_TOKEN,
            site_url=settings.SITE_URL,
            api_base_url=settings.API_BASE_URL,
            api_url=settings.MERCADOPAGO_API_URL,
            timeout=settings.MERCADOPAGO_TIMEOUT_SECONDS,
            use_sandbox=settings.MERCADOPAGO_USE_SANDBOX,
            auto_return=settings.MERCADOPAGO_AUTO_RETURN,
            auto_return_fallback=settings.MERCADOPAGO_AUTO_RETURN_FALLBACK,
            installments=settings.MERCADOPAGO_INSTALLMENTS,
            session=session,
        )

    # ------------------------------------------------------------------
    # Checkout sessions
    # ------------------------------------------------------------------

    def create_preference(
        self,
        order_id: int,
        items: List[Dict[str, Any]],
        payer: Dict[str, Any],
    ) -> PreferenceDTO:
        log = logger.bind(order_id=order_id)
        body = self.build_preference_body(order_id, items, payer)

        try:
            data = self._request("POST", "/checkout/preferences", json=body)
        except GatewayError as exc:
            # Some accounts refuse auto_return (e.g. non-HTTPS back URLs).
            if not (
                exc.status_code == 400
                and "auto_return" in body
                and self.auto_return_fallback
            ):
                raise
            log.warning("gateway.preference_retry_without_auto_return")
            body.pop("auto_return")
            data = self._request("POST", "/checkout/preferences", json=body)

        init_point = data.get("sandbox_init_point") if self.use_sandbox else None
        init_point = init_point or data.get("init_point")
        if not data.get("id") or not init_point:
            raise GatewayError("Preference response without id or init_point.")

        log.info("gateway.preference_created", preference_id=data["id"])
        return PreferenceDTO(id=str(data["id"]), init_point=init_point)

    def build_preference_body(
        self,
        order_id: int,
        items: List[Dict[str, Any]],
        payer: Dict[str, Any],
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "items": items,
            "payer": payer,
            "back_urls": {
                "success": f"{self.site_url}/success",
                "failure": f"{self.site_url}/failure",
                "pending": f"{self.site_url}/pending",
            },
            "notification_url": f"{self.api_base_url}{WEBHOOK_PATH}",
            "external_reference": str(order_id),
            "payment_methods": {"installments": self.installments},
        }
        if self.auto_return:
            body["auto_return"] = "approved"
        return body

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def get_payment(self, payment_id: str) -> PaymentInfoDTO:
        path = f"/v1/payments/{requests.utils.quote(str(payment_id), safe='')}"
        data = self._request("GET", path)
        try:
            return PaymentInfoDTO(
                id=data.get("id", payment_id),
                status=data["status"],
                status_detail=data.get("status_detail"),
                external_reference=data.get("external_reference"),
                transaction_amount=data.get("transaction_amount"),
            )
        except (KeyError, ValueError) as exc:
            raise GatewayError(f"Malformed payment {payment_id}: {exc}") from exc

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.api_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("gateway.unreachable", method=method, path=path, error=str(exc))
            raise GatewayError(f"Gateway unreachable: {exc}") from exc

        if not response.ok:
            logger.error(
                "gateway.request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise GatewayError(
                f"Gateway answered {response.status_code} for {method} {path}.",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"Gateway sent a non-JSON body for {path}.") from exc
