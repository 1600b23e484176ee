# Outgoing message composition
import base64
from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Optional


@dataclass(frozen=True)
class MailAttachment:
    filename: str
    mime_type: str
    data: bytes


def build_mime_message(
    sender: str,
    to: str,
    subject: str,
    body: str,
    attachments: Optional[List[MailAttachment]] = None,
    in_reply_to: Optional[str] = None,
    references: Optional[str] = None,
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    if in_reply_to:
        message["In-Reply-To"] = in_reply_to
        message["References"] = f"{references} {in_reply_to}".strip() if references else in_reply_to
    message.set_content(body)
    for attachment in attachments or []:
        maintype, _, subtype = attachment.mime_type.partition("/")
        if not subtype:
            maintype, subtype = "application", "octet-stream"
        message.add_attachment(attachment.data, maintype=maintype, subtype=subtype, filename=attachment.filename)
    return message


def encode_raw_message(message: EmailMessage) -> str:
    """Gmail's `raw` field: the RFC 2822 bytes, base64url without padding."""
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")
