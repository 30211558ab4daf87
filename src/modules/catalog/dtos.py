"""Stock ledger DTOs."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class StockLineDTO(BaseModel):
    """One ``(product, quantity)`` movement on the stock ledger."""

    model_config = ConfigDict(frozen=True)

    product_id: int
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v
