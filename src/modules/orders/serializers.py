"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from modules.accounts.models import Address
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CheckoutItemSerializer(serializers.Serializer):
    """Validates a single cart line.

    The storefront sends the whole cart entry; only ``id`` and
    ``quantity`` are trusted, prices come from the catalog.
    """

    id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    title = serializers.CharField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    picture_url = serializers.CharField(required=False, allow_blank=True)
    unit_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False
    )


class PayerSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    surname = serializers.CharField(
        max_length=255, required=False, default="", allow_blank=True
    )
    email = serializers.EmailField()
    tax_id = serializers.CharField(max_length=32)


class CheckoutMetadataSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    address_id = serializers.IntegerField()
    payer = PayerSerializer()


class CheckoutPreferenceSerializer(serializers.Serializer):
    """Validates the checkout request payload."""

    items = CheckoutItemSerializer(many=True, allow_empty=False)
    metadata = CheckoutMetadataSerializer()

    def validate_items(self, value: list) -> list:
        ids = [item["id"] for item in value]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError(
                "Duplicate product IDs are not allowed in the same cart."
            )
        return value


class TrackingCodeSerializer(serializers.Serializer):
    tracking_code = serializers.CharField(max_length=64)


def first_error(errors: Any, path: str = "") -> str:
    """Flatten DRF validation errors into a single ``field: message`` line."""
    if isinstance(errors, dict):
        for field, detail in errors.items():
            if field != "non_field_errors":
                field_path = f"{path}.{field}" if path else str(field)
            else:
                field_path = path
            return first_error(detail, field_path)
        return ""
    if isinstance(errors, list):
        # many=True reports an empty dict for each valid entry
        for detail in errors:
            if detail:
                return first_error(detail, path)
        return ""
    return f"{path}: {errors}" if path else str(errors)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_image = serializers.CharField(source="product.cover_image", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_image",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class AddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = Address
        fields = [
            "id",
            "street",
            "number",
            "complement",
            "neighborhood",
            "city",
            "state",
            "zip_code",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "status",
            "total_amount",
            "tracking_code",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "status",
            "total_amount",
            "tracking_code",
            "created_at",
        ]
        read_only_fields = fields


class AdminOrderSerializer(OrderSerializer):
    """Back-office view: buyer, shipping address and gateway references."""

    user_email = serializers.EmailField(source="user.email", read_only=True)
    address = AddressSerializer(read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + [
            "user_id",
            "user_email",
            "address",
            "mp_preference_id",
            "mp_payment_id",
        ]
        read_only_fields = fields


class AdminOrderListSerializer(OrderListSerializer):
    user_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + ["user_id", "user_email"]
        read_only_fields = fields
