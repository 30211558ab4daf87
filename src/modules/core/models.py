"""Base abstract model shared by the storefront apps.

Provides ``BaseModel``: integer primary key (``DEFAULT_AUTO_FIELD``) plus
``created_at`` / ``updated_at`` bookkeeping.

Orders are referenced by the payment gateway through their integer id
(``external_reference``), so every table keeps the default auto field
instead of opaque UUIDs.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """Abstract base with timestamp bookkeeping."""

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)
