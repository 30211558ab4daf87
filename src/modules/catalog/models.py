"""Product model carrying the stock ledger.

Business rules implemented:
- Price must be greater than zero (the sale price charged at checkout).
- Stock cannot be negative (``PositiveIntegerField`` adds a DB CHECK).
- Inactive products cannot be reserved (enforced by the repository).
- ``stock`` is only mutated through ``reserve_stock`` / ``release_stock``
  in ``ProductDjangoRepository``; never by read-modify-write in app code.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Ativo"
    INACTIVE = "inactive", "Inativo"


class Product(BaseModel):
    """Eyewear product.

    ``price`` is the sale price used for the order snapshot; ``list_price``
    is the crossed-out original price, kept for display only.
    """

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    list_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    images = models.JSONField(default=list, blank=True)
    stock = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": "Price must be greater than zero."})
        if self.images and not all(isinstance(url, str) for url in self.images):
            raise ValidationError({"images": "Images must be a list of URLs."})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    @property
    def cover_image(self) -> str:
        """First image URL, sent to the gateway as ``picture_url``."""
        return self.images[0] if self.images else ""

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.name} (estoque: {self.stock})"
