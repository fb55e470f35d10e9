from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.models import Address


class IAddressRepository(IRepository["Address"]):
    @abstractmethod
    def get_for_user(self, id: str, user_id: Any) -> Optional[Address]:
        """Return the address only when it belongs to ``user_id``."""
