"""Payment gateway adapters."""

from modules.payments.gateway.interfaces import IPaymentGateway
from modules.payments.gateway.mercadopago import MercadoPagoGateway

__all__ = ["IPaymentGateway", "MercadoPagoGateway"]
