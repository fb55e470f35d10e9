"""Catalog repository interfaces."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Product, ProductVariation


class IProductRepository(IRepository["Product"]):
    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List non-deleted products."""


class IVariationRepository(IRepository["ProductVariation"]):
    @abstractmethod
    def get_for_update(self, id: str) -> Optional[ProductVariation]:
        """Retrieve a variation with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[ProductVariation]:
        """Retrieve a variation by its normalized SKU."""

    @abstractmethod
    def exists_with_attributes(self, product_id: Any, signature: str) -> bool:
        """``True`` when the product already has a variation with this signature."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[ProductVariation]:
        """List variations with optional ORM look-ups."""
