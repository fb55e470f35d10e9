"""Inventory domain exceptions.

``VariationNotFound`` is owned by the catalog and re-exported here because
every ledger operation can raise it.
"""

from __future__ import annotations

from modules.catalog.exceptions import VariationNotFound
from shared.domain.exceptions import Forbidden, InsufficientStock, VariationUnavailable

__all__ = [
    "InsufficientStock",
    "StockManagementForbidden",
    "VariationNotFound",
    "VariationUnavailable",
]


class StockManagementForbidden(Forbidden):
    """Only the product's seller or an admin may manage its stock."""
