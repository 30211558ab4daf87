"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CheckoutItemDTO``: one cart line (product id + quantity).
- ``CheckoutDTO``: a full checkout request (buyer, address, cart, payer).
- ``GatewayItemDTO``: a line as sent to the payment gateway.
- ``PlacedOrderDTO``: a freshly created order with its gateway items.
- ``ExistingSessionDTO``: an in-flight checkout session that can be reused.
- ``CheckoutResultDTO``: what the checkout endpoint answers.
- ``SweepOutcomeDTO``: result of expiring one abandoned order.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.accounts.dtos import PayerDTO
from modules.catalog.dtos import StockLineDTO
from modules.orders.fingerprint import cart_fingerprint

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CheckoutItemDTO(BaseModel):
    """Immutable DTO for a single cart line.

    The storefront sends ``id`` (product id) and ``quantity``.
    ``unit_price`` is resolved by the Service Layer from the catalog.
    """

    model_config = ConfigDict(frozen=True)

    product_id: int
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    def as_stock_line(self) -> StockLineDTO:
        return StockLineDTO(product_id=self.product_id, quantity=self.quantity)


class CheckoutDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Validates:
    - ``items`` must contain at least one item.
    - Each item quantity must be positive.
    - A product appears at most once.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    address_id: int
    items: List[CheckoutItemDTO]
    payer: PayerDTO

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CheckoutItemDTO]
    ) -> List[CheckoutItemDTO]:
        if not v:
            raise ValueError("Cart must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_products(self):
        """Prevent duplicate product IDs in the same cart."""
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same cart.")
        return self

    @property
    def cart_hash(self) -> str:
        return cart_fingerprint((item.product_id, item.quantity) for item in self.items)

    @property
    def stock_lines(self) -> List[StockLineDTO]:
        return [item.as_stock_line() for item in self.items]


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class GatewayItemDTO(BaseModel):
    """A line item in the shape the payment gateway expects."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    picture_url: str = ""
    quantity: int
    unit_price: Decimal
    currency_id: str = "BRL"

    def as_gateway_item(self) -> dict:
        data = self.model_dump()
        if not data["picture_url"]:
            data.pop("picture_url")
        # JSON has no decimal type; the gateway takes a number.
        data["unit_price"] = float(self.unit_price)
        return data


class PlacedOrderDTO(BaseModel):
    """A new pending order, stock already reserved."""

    model_config = ConfigDict(frozen=True)

    order_id: int
    total_amount: Decimal
    items: List[GatewayItemDTO]


class ExistingSessionDTO(BaseModel):
    """A pending order of the same cart that already has a payment session."""

    model_config = ConfigDict(frozen=True)

    order_id: int
    preference_id: str
    init_point: str


class CheckoutResultDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: int
    preference_id: str
    init_point: str
    reused: bool = False


class SweepOutcomeDTO(BaseModel):
    """Result of cancelling one expired order."""

    model_config = ConfigDict(frozen=True)

    order_id: int
    success: bool
    message: str

    def __str__(self) -> str:
        return self.message
