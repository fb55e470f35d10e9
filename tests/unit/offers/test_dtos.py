from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.offers.dtos import (
    AcceptOfferDTO,
    CreateOfferDTO,
    OfferMessageDTO,
    RejectOfferDTO,
)

pytestmark = pytest.mark.unit


class TestCreateOfferDTO:
    def test_price_quantized_to_cents(self):
        dto = CreateOfferDTO(variation_id=uuid4(), proposed_price=Decimal("80.5"))
        assert dto.proposed_price == Decimal("80.50")

    @pytest.mark.parametrize("price", ["0", "-5", "0.001"])
    def test_rejects_price_below_minimum(self, price):
        with pytest.raises(ValidationError):
            CreateOfferDTO(variation_id=uuid4(), proposed_price=Decimal(price))

    def test_is_frozen(self):
        dto = CreateOfferDTO(variation_id=uuid4(), proposed_price=Decimal("10"))
        with pytest.raises(ValidationError):
            dto.proposed_price = Decimal("1")


class TestOfferMessageDTO:
    def test_text_is_stripped(self):
        assert OfferMessageDTO(text="  still interested?  ").text == "still interested?"

    def test_blank_text_rejected(self):
        with pytest.raises(ValidationError):
            OfferMessageDTO(text="   ")

    def test_price_is_optional(self):
        assert OfferMessageDTO(text="hello").price is None
        assert OfferMessageDTO(text="how about", price=Decimal("85")).price == Decimal("85.00")


class TestAdminDTOs:
    def test_accept_requires_positive_price(self):
        with pytest.raises(ValidationError):
            AcceptOfferDTO(accepted_price=Decimal("0"))

    def test_reject_reason_min_length(self):
        with pytest.raises(ValidationError):
            RejectOfferDTO(reason="too low")
        assert RejectOfferDTO(reason="  Below our margin  ").reason == "Below our margin"
