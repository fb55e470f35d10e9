"""Django ORM implementations of the catalog repositories.

Look-ups return ``None`` for missing or malformed ids; the service layer
turns that into the matching ``NotFound`` error.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError

from modules.catalog.models import Product, ProductVariation
from modules.catalog.repositories.interfaces import (
    IProductRepository,
    IVariationRepository,
)

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        queryset = Product.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id))
        return entity


class VariationDjangoRepository(IVariationRepository):
    def get_by_id(self, id: str) -> Optional[ProductVariation]:
        try:
            return (
                ProductVariation.objects.select_related("product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[ProductVariation]:
        try:
            return (
                ProductVariation.objects.select_for_update(of=("self",))
                .select_related("product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_sku(self, sku: str) -> Optional[ProductVariation]:
        return ProductVariation.objects.filter(sku=sku.strip().upper()).first()

    def exists_with_attributes(self, product_id: Any, signature: str) -> bool:
        return ProductVariation.objects.filter(
            product_id=product_id, attributes_signature=signature
        ).exists()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[ProductVariation]:
        queryset = ProductVariation.objects.select_related("product")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: ProductVariation) -> ProductVariation:
        entity.save()
        logger.info("variation.saved", variation_id=str(entity.id), sku=entity.sku)
        return entity
