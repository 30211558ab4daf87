"""Payer DTO.

The payer identity is sent to the payment gateway with every checkout
session.  Only basic format checks are done here: the tax id must be a
valid CPF (11 digits) or CNPJ (14 digits) according to *validate-docbr*.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Dict, Self

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator
from validate_docbr import CNPJ, CPF


class DocumentTypeEnum(StrEnum):
    """CPF or CNPJ identifier type."""

    CPF = "CPF"
    CNPJ = "CNPJ"


class PayerDTO(BaseModel):
    """Immutable payer identity.

    ``tax_id`` is sanitised (non-digits stripped); the document type is
    inferred from its length.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    surname: str = ""
    email: EmailStr
    tax_id: str

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Payer name must not be empty.")
        return v.strip()

    @field_validator("tax_id", mode="before")
    @classmethod
    def sanitize_tax_id(cls, v: str) -> str:
        """Strip non-digit characters (accept formatted or raw input)."""
        if not isinstance(v, str):
            return v
        return re.sub(r"\D", "", v)

    @model_validator(mode="after")
    def validate_tax_id(self) -> Self:
        validator = CPF() if self.document_type == DocumentTypeEnum.CPF else CNPJ()
        if not validator.validate(self.tax_id):
            raise ValueError(f"Invalid {self.document_type} number.")
        return self

    @property
    def document_type(self) -> DocumentTypeEnum:
        if len(self.tax_id) == 14:
            return DocumentTypeEnum.CNPJ
        return DocumentTypeEnum.CPF

    def as_gateway_payer(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "surname": self.surname,
            "email": self.email,
            "identification": {
                "type": str(self.document_type),
                "number": self.tax_id,
            },
        }
