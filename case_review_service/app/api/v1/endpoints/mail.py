# API Router for case email, Gmail threads and mail sync
import logging

from fastapi import APIRouter, Body, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from case_review_service.app.api.v1.endpoints.errors import to_http_exception
from case_review_service.app.dependencies.auth import require_admin
from case_review_service.app.dependencies.services import get_status_notifier
from case_review_service.app.models import CaseRecord
from case_review_service.app.security.session_token import AdminSessionPayload
from case_review_service.app.service.commands import handlers
from case_review_service.app.service.commands.models import (
    EmailCommand,
    EmailDraftResult,
    ReplyCommand,
    SyncMailsResult,
)
from case_review_service.app.service.exceptions import CaseReviewError
from case_review_service.app.service.mail.threads import ThreadView
from case_review_service.app.service.notifications import StatusNotifier
from case_review_service.infrastructure.cloudinary_client import CloudinaryClient, get_cloudinary_client
from case_review_service.infrastructure.database.connection import get_db
from case_review_service.infrastructure.gmail_client import GmailClient, get_gmail_client

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Mail"])


@router.post("/cases/{case_id}/email/draft", response_model=EmailDraftResult)
async def save_email_draft(
    case_id: str,
    command: EmailCommand = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: AdminSessionPayload = Depends(require_admin),
):
    try:
        return await handlers.handle_save_email_draft(db, case_id, command, admin.email)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error saving email draft for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while saving the draft.")


@router.post("/cases/{case_id}/email/send", response_model=CaseRecord)
async def send_email(
    case_id: str,
    command: EmailCommand = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: AdminSessionPayload = Depends(require_admin),
    gmail: GmailClient = Depends(get_gmail_client),
    cloudinary: CloudinaryClient = Depends(get_cloudinary_client),
    notifier: StatusNotifier = Depends(get_status_notifier),
):
    try:
        return await handlers.handle_send_email(db, case_id, command, admin.email, gmail, cloudinary, notifier)
    except CaseReviewError as e:
        logger.warning(f"Email for case {case_id} not sent: {e}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error sending email for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while sending the email.")


@router.get("/cases/{case_id}/thread", response_model=ThreadView)
async def get_thread(
    case_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: AdminSessionPayload = Depends(require_admin),
    gmail: GmailClient = Depends(get_gmail_client),
):
    try:
        return await handlers.handle_get_thread(db, case_id, gmail)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error fetching thread for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while fetching the thread.")


@router.post("/cases/{case_id}/thread/reply", response_model=CaseRecord)
async def reply_in_thread(
    case_id: str,
    command: ReplyCommand = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: AdminSessionPayload = Depends(require_admin),
    gmail: GmailClient = Depends(get_gmail_client),
    notifier: StatusNotifier = Depends(get_status_notifier),
):
    try:
        return await handlers.handle_reply_in_thread(db, case_id, command, admin.email, gmail, notifier)
    except CaseReviewError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error replying in thread for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred while sending the reply.")


@router.post("/sync-mails", response_model=SyncMailsResult)
async def sync_mails(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: AdminSessionPayload = Depends(require_admin),
    gmail: GmailClient = Depends(get_gmail_client),
):
    try:
        return await handlers.handle_sync_mails(db, gmail)
    except Exception as e:
        logger.error(f"Mail sync could not start: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to sync mails")
