import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class CamelModel(BaseModel):
    """Base for documents stored and served with camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CaseStatus(str, Enum):
    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    NEED_INFO = "NEED_INFO"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class InfoRequestStatus(str, Enum):
    PENDING = "PENDING"
    ANSWERED = "ANSWERED"
    SUPERSEDED = "SUPERSEDED"


class CaseEmail(CamelModel):
    subject: str = ""
    body: str = ""
    to: str = ""
    from_: str = Field(default="", alias="from")
    sent_at: datetime.datetime = Field(default_factory=utc_now)
    thread_id: Optional[str] = None


class StatusHistoryEntry(CamelModel):
    # Entries keep whatever status string was recorded, normalized on read.
    status: str
    by: str
    at: datetime.datetime = Field(default_factory=utc_now)
    note: Optional[str] = None


class ManualAnalysis(CamelModel):
    text: str
    updated_at: datetime.datetime = Field(default_factory=utc_now)


class Resolution(CamelModel):
    code: Optional[str] = None
    added_at: Optional[datetime.datetime] = None
    expiry_date: Optional[datetime.datetime] = None
    used: Optional[bool] = None


class ImageRefs(CamelModel):
    product: Optional[str] = None
    receipt: Optional[str] = None


class InfoRequest(CamelModel):
    id: str
    message: str
    requires_file: bool = False
    requires_yes_no: bool = False
    requested_at: datetime.datetime = Field(default_factory=utc_now)
    requested_by: str = "admin"
    status: InfoRequestStatus = InfoRequestStatus.PENDING


class InfoResponse(CamelModel):
    id: str
    request_id: str
    answer: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    submitted_at: datetime.datetime = Field(default_factory=utc_now)
    submitted_by: Optional[str] = None


class InfoExchange(CamelModel):
    """An info request joined with its (at most one) response."""
    request: InfoRequest
    response: Optional[InfoResponse] = None


class CaseRecord(CamelModel):
    """Normalized view of a case document, as returned by every admin endpoint."""
    id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    store_name: Optional[str] = None
    product_name: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime.datetime = Field(default_factory=utc_now)
    image_urls: Optional[ImageRefs] = None
    cloudinary_public_ids: Optional[ImageRefs] = None
    # Canonical CaseStatus value, or the upper-snake form of an unrecognized legacy value.
    status: str = CaseStatus.PENDING.value
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    manual_analysis: Optional[ManualAnalysis] = None
    emails: List[CaseEmail] = Field(default_factory=list)
    resolution: Optional[Resolution] = None
    info_request_history: List[InfoRequest] = Field(default_factory=list)
    info_response_history: List[InfoResponse] = Field(default_factory=list)
    info_exchanges: List[InfoExchange] = Field(default_factory=list)

    def thread_id(self) -> Optional[str]:
        """Thread id of the first email that carries one."""
        return next((email.thread_id for email in self.emails if email.thread_id), None)


class CaseListResult(BaseModel):
    items: List[CaseRecord]
    total: int
