"""Accounts domain exceptions."""

from __future__ import annotations


class AddressNotFound(Exception):
    """The address does not exist or belongs to another user."""
