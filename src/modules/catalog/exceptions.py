"""Catalog domain exceptions."""

from __future__ import annotations

from shared.domain.exceptions import DomainError, NotFound


class ProductNotFound(NotFound):
    """The product does not exist or has been deleted."""

    code = "product_not_found"


class VariationNotFound(NotFound):
    """The product variation does not exist."""

    code = "variation_not_found"


class VariationAlreadyExists(DomainError):
    """A variation with the same SKU or attribute set already exists."""

    code = "variation_already_exists"
    status_code = 409
