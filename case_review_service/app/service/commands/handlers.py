# Command Handler Implementation for admin actions on cases
import asyncio
import logging
import uuid
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from opentelemetry import trace

from case_review_service.app.config import settings
from case_review_service.app.models import (
    CaseEmail,
    CaseListResult,
    CaseRecord,
    CaseStatus,
    InfoRequest,
    Resolution,
    utc_now,
)
from case_review_service.app.observability import admin_actions_counter, mail_sync_failures_counter, tracer
from case_review_service.app.service.exceptions import CaseNotFoundError, ValidationFailedError
from case_review_service.app.service.mail.compose import MailAttachment
from case_review_service.app.service.mail.threads import (
    ThreadView,
    map_thread_to_emails,
    merge_thread_emails,
    parse_thread_messages,
    reply_recipient,
    reply_subject,
)
from case_review_service.app.service.notifications import StatusNotifier
from case_review_service.app.service.prompts import build_case_prompt
from case_review_service.infrastructure.cloudinary_client import CloudinaryClient
from case_review_service.infrastructure.database import case_store
from case_review_service.infrastructure.gmail_client import GmailClient
from .models import (
    ApproveCaseCommand,
    DeleteCaseCommand,
    DeleteCaseResult,
    EmailCommand,
    EmailDraft,
    EmailDraftResult,
    PromptResult,
    RejectCaseCommand,
    ReplyCommand,
    RequestInfoCommand,
    SaveAnalysisCommand,
    SyncMailsResult,
)

logger = logging.getLogger(__name__)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _record_action(action: str, case_id: str, actor: str):
    current_span = trace.get_current_span()
    current_span.set_attribute("case.id", case_id)
    current_span.set_attribute("admin.action", action)
    admin_actions_counter.add(1, {"action": action})
    logger.info(f"Admin {actor} applied '{action}' to case {case_id}.")


def _found(case: Optional[CaseRecord], case_id: str) -> CaseRecord:
    if case is None:
        raise CaseNotFoundError(case_id)
    return case


# --- Queries ---

async def handle_list_cases(
    db: AsyncIOMotorDatabase,
    status: Optional[str] = None,
    q: Optional[str] = None,
    limit: int = 20,
    skip: int = 0,
) -> CaseListResult:
    return await case_store.list_cases(db, status=status, q=q, limit=limit, skip=skip)


async def handle_get_case(db: AsyncIOMotorDatabase, case_id: str) -> CaseRecord:
    return _found(await case_store.get_case_by_id(db, case_id), case_id)


async def handle_build_prompt(db: AsyncIOMotorDatabase, case_id: str) -> PromptResult:
    case = await handle_get_case(db, case_id)
    return PromptResult(prompt=build_case_prompt(case))


# --- Status-mutating actions ---

async def handle_save_analysis(
    db: AsyncIOMotorDatabase, case_id: str, command: SaveAnalysisCommand, actor: str, notifier: StatusNotifier
) -> CaseRecord:
    if command.text is None:
        raise ValidationFailedError("Text required")
    with tracer.start_as_current_span("save_analysis"):
        current = await handle_get_case(db, case_id)
        now = utc_now()
        updated = _found(await case_store.set_status(
            db, case_id, CaseStatus.IN_REVIEW.value, actor,
            note="Manual analysis updated",
            extra_fields={"manualAnalysis": {"text": command.text, "updatedAt": now}},
        ), case_id)
        _record_action("save_analysis", case_id, actor)
    notifier.notify(current.status, updated, actor)
    return updated


async def handle_request_info(
    db: AsyncIOMotorDatabase, case_id: str, command: RequestInfoCommand, actor: str, notifier: StatusNotifier
) -> CaseRecord:
    if _blank(command.message):
        raise ValidationFailedError("Message required")
    with tracer.start_as_current_span("request_info"):
        current = await handle_get_case(db, case_id)
        request = InfoRequest(
            id=uuid.uuid4().hex,
            message=command.message.strip(),
            requires_file=command.requires_file,
            requires_yes_no=command.requires_yes_no,
            requested_by=actor,
        )
        updated = _found(await case_store.add_info_request(
            db, case_id, request, CaseStatus.NEED_INFO.value, actor,
            supersede_previous=command.supersede_previous,
        ), case_id)
        _record_action("request_info", case_id, actor)
    notifier.notify(current.status, updated, actor)
    return updated


async def handle_approve_case(
    db: AsyncIOMotorDatabase, case_id: str, command: ApproveCaseCommand, actor: str, notifier: StatusNotifier
) -> CaseRecord:
    code = (command.code or "").strip()
    if not code:
        raise ValidationFailedError("Resolution code required")
    with tracer.start_as_current_span("approve_case"):
        current = await handle_get_case(db, case_id)
        resolution = Resolution(code=code, added_at=utc_now(), expiry_date=command.expiry_date, used=False)
        updated = _found(await case_store.set_status(
            db, case_id, CaseStatus.APPROVED.value, actor,
            note=f"Resolution code {code}",
            extra_fields={"resolution": resolution.model_dump(by_alias=True, exclude_none=True)},
        ), case_id)
        _record_action("approve", case_id, actor)
    notifier.notify(current.status, updated, actor)
    return updated


async def handle_reject_case(
    db: AsyncIOMotorDatabase, case_id: str, command: RejectCaseCommand, actor: str, notifier: StatusNotifier
) -> CaseRecord:
    note = (command.note or "").strip() or "Case rejected"
    with tracer.start_as_current_span("reject_case"):
        current = await handle_get_case(db, case_id)
        updated = _found(
            await case_store.set_status(db, case_id, CaseStatus.REJECTED.value, actor, note=note), case_id
        )
        _record_action("reject", case_id, actor)
    notifier.notify(current.status, updated, actor)
    return updated


async def handle_save_email_draft(
    db: AsyncIOMotorDatabase, case_id: str, command: EmailCommand, actor: str
) -> EmailDraftResult:
    if _blank(command.subject) or _blank(command.body) or _blank(command.to):
        raise ValidationFailedError("Subject, body and to are required")
    updated = _found(await case_store.append_history(
        db, case_id, CaseStatus.IN_REVIEW.value, actor, note="Email draft updated"
    ), case_id)
    _record_action("save_email_draft", case_id, actor)
    return EmailDraftResult(
        draft=EmailDraft(subject=command.subject, body=command.body, to=command.to),
        case=updated,
    )


async def handle_delete_case(
    db: AsyncIOMotorDatabase, case_id: str, command: DeleteCaseCommand, cloudinary: CloudinaryClient
) -> DeleteCaseResult:
    deleted = _found(await case_store.delete_case(db, case_id), case_id)
    result = DeleteCaseResult(success=True)
    if command.delete_assets and deleted.cloudinary_public_ids:
        # The document is already gone; asset failures are reported, never rolled back.
        for public_id in (deleted.cloudinary_public_ids.product, deleted.cloudinary_public_ids.receipt):
            if not public_id:
                continue
            if await cloudinary.delete_asset(public_id):
                result.deleted_assets.append(public_id)
            else:
                result.failed_assets.append(public_id)
    admin_actions_counter.add(1, {"action": "delete"})
    logger.info(f"Case {case_id} deleted (deleteAssets={command.delete_assets}).")
    return result


# --- Mail ---

async def _collect_attachments(
    case: CaseRecord, command: EmailCommand, cloudinary: CloudinaryClient
) -> List[MailAttachment]:
    sources = []
    if command.attach_product and case.image_urls and case.image_urls.product:
        sources.append(("product.jpg", case.image_urls.product))
    if command.attach_receipt and case.image_urls and case.image_urls.receipt:
        sources.append(("receipt.jpg", case.image_urls.receipt))
    responses = {response.id: response for response in case.info_response_history}
    for index, response_id in enumerate(command.attach_info_files, start=1):
        response = responses.get(response_id)
        if response is None or not response.file_url:
            raise ValidationFailedError(f"Info response {response_id} has no file to attach")
        sources.append((response.file_name or f"attachment-{index}", response.file_url))

    attachments = []
    for filename, url in sources:
        asset = await cloudinary.fetch_asset(url)
        attachments.append(MailAttachment(filename=filename, mime_type=asset.content_type, data=asset.data))
    return attachments


async def handle_send_email(
    db: AsyncIOMotorDatabase,
    case_id: str,
    command: EmailCommand,
    actor: str,
    gmail: GmailClient,
    cloudinary: CloudinaryClient,
    notifier: StatusNotifier,
) -> CaseRecord:
    if _blank(command.subject) or _blank(command.body) or _blank(command.to):
        raise ValidationFailedError("Subject, body and to are required")
    with tracer.start_as_current_span("send_email"):
        case = await handle_get_case(db, case_id)
        attachments = await _collect_attachments(case, command, cloudinary)
        thread_id = case.thread_id()

        sent = await gmail.send_message(
            to=command.to,
            subject=command.subject,
            body=command.body,
            attachments=attachments,
            thread_id=thread_id,
        )
        email = CaseEmail(
            subject=command.subject,
            body=command.body,
            to=command.to,
            from_=gmail.sender,
            sent_at=utc_now(),
            thread_id=sent.get("threadId") or thread_id,
        )
        updated = _found(await case_store.push_email(
            db, case_id, email, CaseStatus.IN_REVIEW.value, actor, note=f"Email sent to {command.to}"
        ), case_id)
        _record_action("send_email", case_id, actor)
    notifier.notify(case.status, updated, actor)
    return updated


async def _sync_case_thread(db: AsyncIOMotorDatabase, case: CaseRecord, gmail: GmailClient) -> ThreadView:
    thread_id = case.thread_id()
    if not thread_id:
        return ThreadView(messages=[])
    thread = await gmail.get_thread(thread_id)
    messages = parse_thread_messages(thread)
    merged = merge_thread_emails(case.emails, map_thread_to_emails(case, messages))
    # Read-merge-write without a lock: a concurrent sync of the same case may overwrite this one.
    _found(await case_store.replace_emails(db, case.id, merged), case.id)
    logger.info(f"Case {case.id} reconciled with thread {thread_id}: {len(messages)} remote messages.")
    return ThreadView(messages=messages)


async def handle_get_thread(db: AsyncIOMotorDatabase, case_id: str, gmail: GmailClient) -> ThreadView:
    with tracer.start_as_current_span("get_thread"):
        case = await handle_get_case(db, case_id)
        return await _sync_case_thread(db, case, gmail)


async def handle_reply_in_thread(
    db: AsyncIOMotorDatabase,
    case_id: str,
    command: ReplyCommand,
    actor: str,
    gmail: GmailClient,
    notifier: StatusNotifier,
) -> CaseRecord:
    if _blank(command.body):
        raise ValidationFailedError("Reply body required")
    with tracer.start_as_current_span("reply_in_thread"):
        case = await handle_get_case(db, case_id)
        thread_id = case.thread_id()
        if not thread_id:
            raise ValidationFailedError("No thread to reply to")
        to = reply_recipient(case)
        if not to:
            raise ValidationFailedError("No recipient found for reply")
        subject = reply_subject(case, command.subject)

        metadata = parse_thread_messages(await gmail.get_thread(thread_id, format="metadata"))
        last = metadata[-1] if metadata else None
        sent = await gmail.send_message(
            to=to,
            subject=subject,
            body=command.body,
            thread_id=thread_id,
            in_reply_to=last.message_id if last else None,
            references=last.references if last else None,
        )
        email = CaseEmail(
            subject=subject,
            body=command.body,
            to=to,
            from_=gmail.sender,
            sent_at=utc_now(),
            thread_id=sent.get("threadId") or thread_id,
        )
        updated = _found(await case_store.push_email(
            db, case_id, email, CaseStatus.IN_REVIEW.value, actor, note=f"Reply sent to {to}"
        ), case_id)
        _record_action("reply", case_id, actor)
    notifier.notify(case.status, updated, actor)
    return updated


async def handle_sync_mails(
    db: AsyncIOMotorDatabase, gmail: GmailClient, batch_size: Optional[int] = None
) -> SyncMailsResult:
    """Reconciles the newest cases with their Gmail threads; one failure does not stop the others."""
    with tracer.start_as_current_span("sync_mails"):
        recent = await case_store.list_cases(db, limit=batch_size or settings.SYNC_MAILS_BATCH_SIZE, skip=0)
        with_threads = [case for case in recent.items if case.thread_id()]
        outcomes = await asyncio.gather(
            *(_sync_case_thread(db, case, gmail) for case in with_threads),
            return_exceptions=True,
        )
        failed = []
        for case, outcome in zip(with_threads, outcomes):
            if isinstance(outcome, Exception):
                failed.append(case.id)
                mail_sync_failures_counter.add(1)
                logger.error(f"Mail sync failed for case {case.id}: {outcome}", exc_info=outcome)
        logger.info(f"Mail sync processed {len(with_threads)} cases, {len(failed)} failed.")
        return SyncMailsResult(synced=True, processed=len(with_threads), failed=failed)
