"""Product repositories package."""

from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.repositories.interfaces import IProductRepository

__all__ = ["IProductRepository", "ProductDjangoRepository"]
