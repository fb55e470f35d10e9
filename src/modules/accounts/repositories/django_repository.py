from __future__ import annotations

from typing import Any, Optional

from django.core.exceptions import ValidationError

from modules.accounts.models import Address
from modules.accounts.repositories.interfaces import IAddressRepository


class AddressDjangoRepository(IAddressRepository):
    def get_by_id(self, id: str) -> Optional[Address]:
        try:
            return Address.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_user(self, id: str, user_id: Any) -> Optional[Address]:
        try:
            return Address.objects.filter(id=id, user_id=user_id).first()
        except (ValueError, ValidationError):
            return None

    def save(self, entity: Address) -> Address:
        entity.save()
        return entity
