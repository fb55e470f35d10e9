"""Notification request contract.

The core only *builds* requests; rendering the localized text from
``template_key`` + ``template_args`` and delivering it belong to the sender.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.notifications.constants import NotificationType


class NotificationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    recipients: List[str]
    notification_type: NotificationType
    template_key: str
    template_args: Dict[str, Any] = Field(default_factory=dict)
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    out_of_band: bool = False

    @field_validator("recipients")
    @classmethod
    def recipients_must_not_be_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("At least one recipient is required.")
        return v
