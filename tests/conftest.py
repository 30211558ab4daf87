from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.accounts.dtos import PayerDTO
from modules.accounts.models import Address
from modules.accounts.repositories.django_repository import AddressDjangoRepository
from modules.catalog.models import Product, ProductStatus
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.orders.checkout import CheckoutService, CheckoutSessionResolver
from modules.orders.dtos import CheckoutDTO, CheckoutItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.payments.dtos import PreferenceDTO
from modules.payments.gateway.interfaces import IPaymentGateway

User = get_user_model()

VALID_CPF = "59860184275"
VALID_CNPJ = "11222333000181"


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users & addresses
# ---------------------------------------------------------------------------


@pytest.fixture()
def buyer():
    return User.objects.create_user(
        username="buyer", email="buyer@example.com", password="testpass123"
    )


@pytest.fixture()
def other_buyer():
    return User.objects.create_user(
        username="other", email="other@example.com", password="testpass123"
    )


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        username="staff", email="staff@example.com", password="testpass123", is_staff=True
    )


@pytest.fixture()
def address(buyer):
    return Address.objects.create(
        user=buyer,
        street="Rua Augusta",
        number="500",
        neighborhood="Consolação",
        city="São Paulo",
        state="SP",
        zip_code="01305-000",
    )


@pytest.fixture()
def auth_client(buyer):
    """APIClient with a force-authenticated buyer."""
    client = APIClient()
    client.force_authenticate(user=buyer)
    return client


@pytest.fixture()
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    def _make(name="Milan Tortoise Shell", price="99.00", stock=10, **extra):
        return Product.objects.create(
            name=name,
            description=extra.pop("description", f"{name} frames."),
            price=Decimal(price),
            list_price=extra.pop("list_price", None),
            images=extra.pop("images", [f"https://img.example.com/{name}.jpg"]),
            stock=stock,
            status=extra.pop("status", ProductStatus.ACTIVE),
        )

    return _make


@pytest.fixture()
def product_a(make_product):
    return make_product(name="Milan Tortoise Shell", price="99.00", stock=10)


@pytest.fixture()
def product_b(make_product):
    return make_product(name="Brooklyn Round Metal", price="129.00", stock=5)


# ---------------------------------------------------------------------------
# Checkout wiring
# ---------------------------------------------------------------------------


@pytest.fixture()
def payer():
    return PayerDTO(
        name="Ana",
        surname="Souza",
        email="ana@example.com",
        tax_id=VALID_CPF,
    )


@pytest.fixture()
def payer_payload():
    return {
        "name": "Ana",
        "surname": "Souza",
        "email": "ana@example.com",
        "tax_id": "598.601.842-75",
    }


@pytest.fixture()
def make_checkout_dto(buyer, address, payer):
    def _make(*lines, user=None, address_id=None):
        return CheckoutDTO(
            user_id=(user or buyer).id,
            address_id=address_id or address.id,
            items=[
                CheckoutItemDTO(product_id=product.id, quantity=quantity)
                for product, quantity in lines
            ],
            payer=payer,
        )

    return _make


@pytest.fixture()
def order_repo():
    return OrderDjangoRepository()


@pytest.fixture()
def order_service(order_repo):
    return OrderService(
        order_repository=order_repo,
        product_repository=ProductDjangoRepository(),
    )


@pytest.fixture()
def gateway():
    """Mock payment gateway handing out sequential sessions."""
    mock = MagicMock(spec=IPaymentGateway)
    counter = {"n": 0}

    def _create_preference(order_id, items, payer):
        counter["n"] += 1
        return PreferenceDTO(
            id=f"pref-{counter['n']}",
            init_point=f"https://mp.example.com/checkout?pref=pref-{counter['n']}",
        )

    mock.create_preference.side_effect = _create_preference
    return mock


@pytest.fixture()
def checkout_service(order_repo, order_service, gateway):
    return CheckoutService(
        resolver=CheckoutSessionResolver(
            order_repository=order_repo,
            address_repository=AddressDjangoRepository(),
            order_service=order_service,
        ),
        order_service=order_service,
        gateway=gateway,
    )
