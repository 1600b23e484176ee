# Gmail thread parsing and reconciliation with a case's local email list
import datetime
import logging
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field

from case_review_service.app.models import CamelModel, CaseEmail, CaseRecord, utc_now
from .mime_tree import find_plain_text, parse_payload

logger = logging.getLogger(__name__)

DEFAULT_REPLY_SUBJECT = "Reply from Claimy"


class ParsedThreadMessage(CamelModel):
    id: str
    thread_id: str
    subject: str = ""
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    date: Optional[str] = None
    snippet: Optional[str] = None
    body_plain: Optional[str] = None
    message_id: Optional[str] = None
    references: Optional[str] = None
    internal_date: Optional[str] = None


class ThreadView(CamelModel):
    messages: List[ParsedThreadMessage] = Field(default_factory=list)


def _header(headers: List[Dict[str, Any]], name: str) -> Optional[str]:
    wanted = name.lower()
    for header in headers:
        if (header.get("name") or "").lower() == wanted:
            return header.get("value")
    return None


def parse_thread_messages(thread: Optional[Dict[str, Any]]) -> List[ParsedThreadMessage]:
    if not thread or not thread.get("messages"):
        return []
    parsed = []
    for message in thread["messages"]:
        payload = message.get("payload") or {}
        headers = payload.get("headers") or []
        parsed.append(ParsedThreadMessage(
            id=message.get("id", ""),
            thread_id=message.get("threadId", thread.get("id", "")),
            subject=_header(headers, "Subject") or "",
            from_=_header(headers, "From"),
            to=_header(headers, "To"),
            date=_header(headers, "Date"),
            snippet=message.get("snippet"),
            body_plain=find_plain_text(parse_payload(payload)),
            message_id=_header(headers, "Message-ID"),
            references=_header(headers, "References"),
            internal_date=message.get("internalDate"),
        ))
    return parsed


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value.astimezone(datetime.UTC)


def message_sent_at(message: ParsedThreadMessage) -> datetime.datetime:
    """The Date header, else Gmail's internalDate, else now; always UTC to the second."""
    if message.date:
        try:
            return _as_utc(parsedate_to_datetime(message.date)).replace(microsecond=0)
        except (TypeError, ValueError):
            logger.debug(f"Unparseable Date header on message {message.id}: {message.date!r}")
    if message.internal_date:
        try:
            millis = int(message.internal_date)
            return datetime.datetime.fromtimestamp(millis / 1000, tz=datetime.UTC).replace(microsecond=0)
        except ValueError:
            pass
    return utc_now().replace(microsecond=0)


def map_thread_to_emails(case: CaseRecord, messages: List[ParsedThreadMessage]) -> List[CaseEmail]:
    return [
        CaseEmail(
            subject=msg.subject,
            body=msg.body_plain or msg.snippet or "",
            to=msg.to or case.user_email or "",
            from_=msg.from_ or "",
            sent_at=message_sent_at(msg),
            thread_id=msg.thread_id,
        )
        for msg in messages
    ]


def email_merge_key(email: CaseEmail) -> Tuple[str, datetime.datetime]:
    # Same-second messages in one thread share a key; the later one wins.
    return (email.thread_id or "", _as_utc(email.sent_at).replace(microsecond=0))


def merge_thread_emails(existing: List[CaseEmail], incoming: List[CaseEmail]) -> List[CaseEmail]:
    """
    Union of local and remote entries keyed by (threadId, sentAt-to-the-second).

    Incoming entries overwrite local ones with the same key. The result is sorted
    ascending by sentAt, and merging the same snapshot twice changes nothing.
    """
    by_key: Dict[Tuple[str, datetime.datetime], CaseEmail] = {}
    for email in existing:
        by_key[email_merge_key(email)] = email
    for email in incoming:
        by_key[email_merge_key(email)] = email
    return sorted(by_key.values(), key=lambda e: _as_utc(e.sent_at))


def reply_recipient(case: CaseRecord) -> Optional[str]:
    if case.emails and case.emails[-1].from_:
        return case.emails[-1].from_
    return case.user_email or None


def reply_subject(case: CaseRecord, explicit: Optional[str] = None) -> str:
    if explicit and explicit.strip():
        return explicit.strip()
    if not case.emails or not case.emails[-1].subject:
        return DEFAULT_REPLY_SUBJECT
    latest = case.emails[-1].subject.strip()
    if latest.lower().startswith("re:"):
        return latest
    return f"Re: {latest}"
