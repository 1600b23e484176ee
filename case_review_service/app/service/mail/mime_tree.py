# Gmail message payloads as an explicit MIME tree
import base64
import binascii
import logging
from dataclasses import dataclass, field
from email.message import Message
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

MAX_MIME_DEPTH = 10


@dataclass(frozen=True)
class LeafPart:
    """A single-body part; `data` is the still-encoded base64url body, if any."""
    mime_type: str
    data: Optional[str] = None
    filename: Optional[str] = None
    charset: Optional[str] = None


@dataclass(frozen=True)
class MultipartContainer:
    mime_type: str
    parts: Tuple["MimeNode", ...] = field(default_factory=tuple)


MimeNode = Union[LeafPart, MultipartContainer]


def decode_base64url(data: str, charset: Optional[str] = None) -> Optional[str]:
    try:
        raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Undecodable MIME body: {e}")
        return None
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        logger.warning(f"Unknown MIME charset {charset!r}, decoding as utf-8.")
        return raw.decode("utf-8", errors="replace")


def content_charset(headers: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    """Charset parameter of a part's Content-Type header, lower-cased."""
    for header in headers or []:
        if (header.get("name") or "").lower() == "content-type":
            message = Message()
            message["Content-Type"] = header.get("value") or ""
            return message.get_content_charset()
    return None


def parse_payload(payload: Optional[Dict[str, Any]], max_depth: int = MAX_MIME_DEPTH) -> Optional[MimeNode]:
    """
    Converts a Gmail `payload` dict into a MimeNode tree.

    Parts nested deeper than max_depth are dropped.
    """
    if not payload:
        return None
    return _parse(payload, 0, max_depth)


def _parse(payload: Dict[str, Any], depth: int, max_depth: int) -> MimeNode:
    mime_type = (payload.get("mimeType") or "").lower()
    sub_parts = payload.get("parts") or []
    if mime_type.startswith("multipart/") or sub_parts:
        if depth >= max_depth:
            logger.debug(f"MIME tree truncated at depth {depth}.")
            return MultipartContainer(mime_type=mime_type)
        children = tuple(_parse(part, depth + 1, max_depth) for part in sub_parts if isinstance(part, dict))
        return MultipartContainer(mime_type=mime_type, parts=children)
    body = payload.get("body") or {}
    return LeafPart(
        mime_type=mime_type,
        data=body.get("data"),
        filename=payload.get("filename") or None,
        charset=content_charset(payload.get("headers")),
    )


def find_plain_text(node: Optional[MimeNode], max_depth: int = MAX_MIME_DEPTH) -> Optional[str]:
    """Depth-first search for the first non-empty text/plain body. None when there is none."""
    if node is None:
        return None
    stack = [(node, 0)]
    while stack:
        current, depth = stack.pop()
        if isinstance(current, LeafPart):
            if current.mime_type == "text/plain" and current.data and not current.filename:
                text = decode_base64url(current.data, current.charset)
                if text:
                    return text
            continue
        if depth >= max_depth:
            continue
        # Reversed so the leftmost child is visited first.
        for child in reversed(current.parts):
            stack.append((child, depth + 1))
    return None
