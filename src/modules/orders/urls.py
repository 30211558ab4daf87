"""Order URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.orders.views import (
    AdminOrderViewSet,
    CheckoutPreferenceView,
    ExpirySweepView,
    OrderViewSet,
)

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")
router.register("admin/orders", AdminOrderViewSet, basename="admin-order")

# Explicit paths first: "orders/expire/" would otherwise match the detail route.
urlpatterns = [
    path(
        "checkout/preference/",
        CheckoutPreferenceView.as_view(),
        name="checkout-preference",
    ),
    path("orders/expire/", ExpirySweepView.as_view(), name="order-expire"),
] + router.urls
