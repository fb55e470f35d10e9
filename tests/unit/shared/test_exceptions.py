from __future__ import annotations

from decimal import Decimal
from uuid import UUID

import pytest

from modules.offers.exceptions import OfferNotFound
from shared.domain.exceptions import (
    DomainError,
    InsufficientStock,
    InvalidState,
    InvalidStatusTransition,
    NotFound,
    OutOfStock,
    PriceBelowFloor,
    ValidationFailed,
)

pytestmark = pytest.mark.unit


class TestDomainErrorTaxonomy:
    def test_message_defaults_to_docstring(self):
        assert PriceBelowFloor().message == "The accepted price is below the allowed floor."

    def test_subclass_keeps_kind(self):
        assert issubclass(OfferNotFound, NotFound)
        assert OfferNotFound.status_code == 404
        assert issubclass(OutOfStock, InsufficientStock)
        assert issubclass(InvalidStatusTransition, InvalidState)

    def test_as_dict_stringifies_context(self):
        error = InsufficientStock(
            "short",
            variation_id=UUID("0190d0a8-0000-7000-8000-000000000001"),
            requested=3,
            available=1,
            price=Decimal("9.50"),
        )
        assert error.as_dict() == {
            "code": "insufficient_stock",
            "detail": "short",
            "context": {
                "variation_id": "0190d0a8-0000-7000-8000-000000000001",
                "requested": 3,
                "available": 1,
                "price": "9.50",
            },
        }

    def test_validation_failed_records_field(self):
        error = ValidationFailed("bad", field="currency")
        assert error.context == {"field": "currency"}
        assert error.status_code == 400

    def test_every_kind_is_a_domain_error(self):
        assert isinstance(ValidationFailed("x"), DomainError)
        assert isinstance(PriceBelowFloor("x"), DomainError)
