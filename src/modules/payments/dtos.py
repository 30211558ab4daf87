"""Payment gateway DTOs."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class PreferenceDTO(BaseModel):
    """A hosted checkout session."""

    model_config = ConfigDict(frozen=True)

    id: str
    init_point: str


class PaymentInfoDTO(BaseModel):
    """Authoritative payment state, as re-queried from the gateway."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: str
    status_detail: str = ""
    external_reference: Optional[str] = None
    transaction_amount: Optional[Decimal] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> object:
        return str(v) if isinstance(v, int) else v

    @field_validator("status_detail", mode="before")
    @classmethod
    def none_to_blank(cls, v: object) -> object:
        return "" if v is None else v

    @field_validator("external_reference", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        if isinstance(v, int):
            return str(v)
        if isinstance(v, str):
            v = v.strip()
        return v or None

    @property
    def order_id(self) -> Optional[int]:
        """The order id carried in ``external_reference``, if it is one."""
        if self.external_reference and self.external_reference.isdigit():
            return int(self.external_reference)
        return None
