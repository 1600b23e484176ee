# Pydantic models for admin action commands and their results
import datetime
from typing import List, Optional

from pydantic import Field

from case_review_service.app.models import CamelModel, CaseRecord

# Required values are Optional here and checked by the handlers, so a missing or
# blank value is a 400 with a message rather than a schema 422.

class SaveAnalysisCommand(CamelModel):
    text: Optional[str] = None

class RequestInfoCommand(CamelModel):
    message: Optional[str] = None
    requires_file: bool = False
    requires_yes_no: bool = False
    supersede_previous: bool = False

class ApproveCaseCommand(CamelModel):
    code: Optional[str] = None
    expiry_date: Optional[datetime.datetime] = None

class RejectCaseCommand(CamelModel):
    note: Optional[str] = None

class EmailCommand(CamelModel):
    subject: Optional[str] = None
    body: Optional[str] = None
    to: Optional[str] = None
    attach_product: bool = False
    attach_receipt: bool = False
    attach_info_files: List[str] = Field(default_factory=list) # info response ids

class ReplyCommand(CamelModel):
    body: Optional[str] = None
    subject: Optional[str] = None

class DeleteCaseCommand(CamelModel):
    delete_assets: bool = False


class EmailDraft(CamelModel):
    subject: str
    body: str
    to: str

class EmailDraftResult(CamelModel):
    draft: EmailDraft
    case: CaseRecord

class DeleteCaseResult(CamelModel):
    success: bool = True
    deleted_assets: List[str] = Field(default_factory=list)
    failed_assets: List[str] = Field(default_factory=list)

class SyncMailsResult(CamelModel):
    synced: bool = True
    processed: int = 0
    failed: List[str] = Field(default_factory=list)

class PromptResult(CamelModel):
    prompt: str
