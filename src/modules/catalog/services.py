"""Catalog service layer.

Creates products and variations on behalf of sellers (or admins).  A new
variation starts at stock 0 and its opening stock is booked through the
inventory ledger, so the movement log accounts for every unit from the
first row on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

import structlog
from django.db import transaction

from modules.catalog.exceptions import (
    ProductNotFound,
    VariationAlreadyExists,
    VariationNotFound,
)
from modules.catalog.models import Product, ProductVariation, attributes_signature
from modules.inventory.constants import MovementReason
from shared.domain.exceptions import Forbidden

if TYPE_CHECKING:
    from modules.catalog.dtos import (
        CreateProductDTO,
        CreateVariationDTO,
        UpdateVariationDTO,
    )
    from modules.catalog.repositories.interfaces import (
        IProductRepository,
        IVariationRepository,
    )
    from modules.inventory.services import InventoryLedger
    from shared.domain.actor import Actor

logger = structlog.get_logger(__name__)


class CatalogService:
    def __init__(
        self,
        product_repository: IProductRepository,
        variation_repository: IVariationRepository,
        ledger: InventoryLedger,
    ) -> None:
        self._product_repo = product_repository
        self._variation_repo = variation_repository
        self._ledger = ledger

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO, actor: Actor) -> Product:
        """Raises: Forbidden: actor is neither seller nor admin."""
        if not (actor.is_seller or actor.is_admin):
            raise Forbidden("Only sellers can list products.", actor_id=actor.id)
        product = self._product_repo.save(
            Product(seller_id=actor.id, name=dto.name, description=dto.description)
        )
        logger.info("product.created", product_id=str(product.id), seller_id=str(actor.id))
        return product

    @transaction.atomic
    def create_variation(
        self, product_id: Any, dto: CreateVariationDTO, actor: Actor
    ) -> ProductVariation:
        """Add a variation to a product owned by the actor.

        Raises:
            ProductNotFound: product missing or deleted.
            Forbidden: actor does not manage the product.
            VariationAlreadyExists: SKU taken or attribute set already used.
        """
        product = self._product_repo.get_by_id(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.", product_id=product_id)
        if not product.is_managed_by(actor):
            raise Forbidden("Not the seller of this product.", product_id=product.id)

        log = logger.bind(product_id=str(product.id), sku=dto.sku)
        if self._variation_repo.get_by_sku(dto.sku):
            log.warning("variation.duplicate_sku")
            raise VariationAlreadyExists(f"SKU '{dto.sku}' already registered.", field="sku")
        signature = attributes_signature(dto.attributes)
        if self._variation_repo.exists_with_attributes(product.id, signature):
            log.warning("variation.duplicate_attributes", signature=signature)
            raise VariationAlreadyExists(
                "The product already has a variation with these attributes.",
                field="attributes",
            )

        variation = self._variation_repo.save(
            ProductVariation(
                product=product,
                sku=dto.sku,
                attributes=[list(pair) for pair in dto.attributes],
                price=dto.price,
                stock=0,
                is_available=dto.is_available,
                low_stock_threshold=dto.low_stock_threshold,
            )
        )
        if dto.initial_stock:
            self._ledger.increment(
                variation.id,
                dto.initial_stock,
                reason=MovementReason.INITIAL_STOCK,
                actor=actor,
            )
            variation.refresh_from_db(fields=["stock"])

        log.info("variation.created", variation_id=str(variation.id), stock=variation.stock)
        return variation

    @transaction.atomic
    def update_variation(
        self, variation_id: Any, dto: UpdateVariationDTO, actor: Actor
    ) -> ProductVariation:
        """Change price, availability or threshold; never stock.

        Raises:
            VariationNotFound: variation missing.
            Forbidden: actor does not manage the product.
        """
        variation = self._variation_repo.get_for_update(str(variation_id))
        if not variation:
            raise VariationNotFound(f"Variation {variation_id} not found.", variation_id=variation_id)
        if not variation.product.is_managed_by(actor):
            raise Forbidden("Not the seller of this product.", variation_id=variation.id)

        changed: List[str] = []
        for field in ("price", "is_available", "low_stock_threshold"):
            value = getattr(dto, field)
            if value is not None:
                setattr(variation, field, value)
                changed.append(field)
        if changed:
            variation.save(update_fields=changed)
        logger.info("variation.updated", variation_id=str(variation.id), fields=changed)
        return variation

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_variation(self, variation_id: Any) -> ProductVariation:
        variation = self._variation_repo.get_by_id(str(variation_id))
        if not variation:
            raise VariationNotFound(f"Variation {variation_id} not found.", variation_id=variation_id)
        return variation

    def list_variations(self, product_id: Optional[Any] = None) -> List[ProductVariation]:
        filters = {"product_id": product_id} if product_id else None
        return self._variation_repo.list(filters)
