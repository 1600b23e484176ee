# Pydantic models for Kafka message structures
import datetime
import uuid
from typing import Optional

from pydantic import Field

from case_review_service.app.models import CamelModel, utc_now


class CaseStatusChangedNotification(CamelModel):
    """Consumed by the end-user app to tell a claimant their case moved."""
    notification_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    case_id: str
    user_id: Optional[str] = None
    old_status: Optional[str] = None
    new_status: str
    store: Optional[str] = None
    product: Optional[str] = None
    changed_by: str
    at: datetime.datetime = Field(default_factory=utc_now)
