"""Shipping address owned by a storefront user.

Business rules implemented:
- An address belongs to exactly one user; checkout only accepts the
  buyer's own addresses (enforced by the repository look-up).
- ZIP code (CEP) is stored as digits only.
- State is the two-letter UF, stored uppercase.
"""

from __future__ import annotations

import re

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from modules.core.models import BaseModel


class Address(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="addresses",
    )
    street = models.CharField(max_length=255)
    number = models.CharField(max_length=20)
    neighborhood = models.CharField(max_length=120)
    city = models.CharField(max_length=120)
    state = models.CharField(max_length=2)
    zip_code = models.CharField(max_length=8)
    complement = models.CharField(max_length=120, blank=True, default="")

    class Meta:
        db_table = "addresses"
        ordering = ["-created_at"]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        self._normalize()
        if len(self.zip_code) != 8:
            raise ValidationError({"zip_code": "CEP must have 8 digits."})
        if len(self.state) != 2:
            raise ValidationError({"state": "State must be a two-letter UF."})

    def _normalize(self) -> None:
        if self.zip_code:
            self.zip_code = re.sub(r"\D", "", self.zip_code)
        if self.state:
            self.state = self.state.strip().upper()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        self._normalize()
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def one_line(self) -> str:
        complement = f" ({self.complement})" if self.complement else ""
        return (
            f"{self.street}, {self.number}{complement} - {self.neighborhood}, "
            f"{self.city}/{self.state} - CEP {self.zip_code}"
        )

    def __str__(self) -> str:
        return f"{self.street}, {self.number} - {self.city}/{self.state}"
