from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from modules.accounts.models import Address
from modules.catalog.models import Product, ProductStatus

UNSPLASH = "https://images.unsplash.com/photo-{}?w=800&q=80"

CATALOG = [
    {
        "name": "Milan Tortoise Shell",
        "description": (
            "Classic tortoise shell frames with premium acetate construction. "
            "Lightweight and durable design perfect for everyday wear."
        ),
        "list_price": "249",
        "price": "99",
        "images": ["1574258495973-f010dfbb5371", "1511499767150-a48a237f0083", "1473496169904-658ba7c44d8a"],
        "stock": 2,
    },
    {
        "name": "Brooklyn Round Metal",
        "description": (
            "Vintage-inspired round metal frames with adjustable nose pads. "
            "Perfect blend of style and comfort for the modern individual."
        ),
        "list_price": "299",
        "price": "129",
        "images": ["1475669698648-2f144fcaaeb1", "1509695507497-903c140c43b0", "1577803645773-f96470509666"],
        "stock": 8,
    },
    {
        "name": "Monaco Blue Aviator",
        "description": (
            "Premium titanium aviator frames with blue-tinted lenses. "
            "UV400 protection and anti-glare coating included."
        ),
        "list_price": "349",
        "price": "149",
        "images": ["1572635196237-14b3f281503f", "1502767089025-6572583495f9", "1583394838336-acd977736f90"],
        "stock": 12,
    },
    {
        "name": "Tokyo Clear Acetate",
        "description": (
            "Minimalist clear acetate frames with subtle details. "
            "Lightweight design that complements any outfit effortlessly."
        ),
        "list_price": "199",
        "price": "79",
        "images": ["1615485737077-7f73e36f7f68", "1524438418049-ab2acb7aa48c", "1606497547160-ebf0cbf48c81"],
        "stock": 1,
    },
    {
        "name": "Paris Oversized Square",
        "description": (
            "Bold oversized square frames for a statement look. "
            "High-quality acetate with spring hinges for comfort."
        ),
        "list_price": "279",
        "price": "119",
        "images": ["1558618666-fcd25c85cd64", "1556306535-38febf6782e7", "1617005082133-548c4dd27f35"],
        "stock": 15,
    },
    {
        "name": "Berlin Slim Wire",
        "description": (
            "Ultra-slim wire frames with minimalist design. "
            "Featherweight construction for all-day comfort."
        ),
        "list_price": "229",
        "price": "89",
        "images": ["1614715838608-dd527c46231d", "1622445275463-afa2ab738c34", "1516134133086-e1e208b63176"],
        "stock": 4,
    },
    {
        "name": "London Cat Eye Vintage",
        "description": (
            "Retro cat-eye frames with a modern twist. "
            "Premium acetate in rich colors with metal accents."
        ),
        "list_price": "259",
        "price": "109",
        "images": ["1606497547160-ebf0cbf48c81", "1574258495973-f010dfbb5371", "1596394516093-501ba68a0ba6"],
        "stock": 3,
    },
    {
        "name": "Sydney Sport Flex",
        "description": (
            "Flexible sport frames with rubber grips. "
            "Perfect for active lifestyles with impact-resistant lenses."
        ),
        "list_price": "289",
        "price": "139",
        "images": ["1577803645773-f96470509666", "1603366445787-09714680cbf1", "1594296172827-8d6f28f5ccb3"],
        "stock": 20,
    },
]


class Command(BaseCommand):
    help = "Seed the eyewear catalog (idempotent: products are matched by name)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--demo-users",
            action="store_true",
            help="Also create an 'admin' superuser and a 'buyer' with an address.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding catalog...")
        created = self._seed_products()
        users_created = self._seed_users() if options["demo_users"] else 0

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"products_created={created}, "
                f"products_total={Product.objects.count()}, "
                f"users_created={users_created}"
            )
        )

    def _seed_products(self) -> int:
        created = 0
        for entry in CATALOG:
            _, was_created = Product.objects.get_or_create(
                name=entry["name"],
                defaults={
                    "description": entry["description"],
                    "price": Decimal(entry["price"]),
                    "list_price": Decimal(entry["list_price"]),
                    "images": [UNSPLASH.format(photo) for photo in entry["images"]],
                    "stock": entry["stock"],
                    "status": ProductStatus.ACTIVE,
                },
            )
            created += int(was_created)
        return created

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser(
                "admin", email="admin@example.com", password="admin123"
            )
            created += 1
        buyer = User.objects.filter(username="buyer").first()
        if buyer is None:
            buyer = User.objects.create_user(
                "buyer", email="buyer@example.com", password="buyer123"
            )
            created += 1
        if not buyer.addresses.exists():
            Address.objects.create(
                user=buyer,
                street="Avenida Paulista",
                number="1000",
                neighborhood="Bela Vista",
                city="São Paulo",
                state="SP",
                zip_code="01310100",
            )
        return created
