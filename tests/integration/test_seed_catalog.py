"""Integration tests for the ``seed_catalog`` management command."""

from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from modules.catalog.models import Product

pytestmark = pytest.mark.integration


def _seed(*args):
    out = StringIO()
    call_command("seed_catalog", *args, stdout=out)
    return out.getvalue()


def test_seeds_eight_active_products():
    output = _seed()

    assert Product.objects.count() == 8
    assert all(product.is_active for product in Product.objects.all())
    assert "products_created=8" in output


def test_seeded_products_have_prices_and_images():
    _seed()

    milan = Product.objects.get(name="Milan Tortoise Shell")
    assert str(milan.price) == "99.00"
    assert str(milan.list_price) == "249.00"
    assert milan.stock == 2
    assert milan.cover_image.startswith("https://images.unsplash.com/")


def test_is_idempotent():
    _seed()
    Product.objects.filter(name="Milan Tortoise Shell").update(stock=0)

    output = _seed()

    assert Product.objects.count() == 8
    assert "products_created=0" in output
    assert Product.objects.get(name="Milan Tortoise Shell").stock == 0


def test_demo_users():
    User = get_user_model()

    _seed("--demo-users")
    _seed("--demo-users")

    admin = User.objects.get(username="admin")
    buyer = User.objects.get(username="buyer")
    assert admin.is_staff and admin.is_superuser
    assert buyer.addresses.count() == 1
