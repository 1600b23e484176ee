# Case status normalization
import re
from typing import Dict, List, Optional

from case_review_service.app.models import CaseStatus

# Keys are upper-snake forms, so both "needMoreInfo" and "NEED_MORE_INFO" resolve.
_STATUS_ALIASES: Dict[str, CaseStatus] = {
    "NEW": CaseStatus.PENDING,
    "PENDING": CaseStatus.PENDING,
    "IN_REVIEW": CaseStatus.IN_REVIEW,
    "SENT": CaseStatus.IN_REVIEW,
    "WAITING_REPLY": CaseStatus.IN_REVIEW,
    "NEED_MORE_INFO": CaseStatus.NEED_INFO,
    "NEED_INFO": CaseStatus.NEED_INFO,
    "APPROVED": CaseStatus.APPROVED,
    "REJECTED": CaseStatus.REJECTED,
}

# Stored spellings written by earlier versions of the end-user app and this dashboard.
_LEGACY_SPELLINGS: Dict[CaseStatus, List[str]] = {
    CaseStatus.PENDING: ["new"],
    CaseStatus.IN_REVIEW: ["inReview", "sent", "waitingReply"],
    CaseStatus.NEED_INFO: ["needMoreInfo"],
    CaseStatus.APPROVED: ["approved"],
    CaseStatus.REJECTED: ["rejected"],
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")
_SEPARATORS = re.compile(r"[\s\-]+")


def to_upper_snake(value: str) -> str:
    snake = _CAMEL_BOUNDARY.sub("_", value.strip())
    snake = _SEPARATORS.sub("_", snake)
    return snake.upper()


def normalize_status(value: Optional[str]) -> str:
    """
    Maps any stored status string onto the canonical status set.

    Unknown values come back in upper-snake form, so the function is total and
    normalize_status(normalize_status(x)) == normalize_status(x).
    """
    if value is None or not str(value).strip():
        return CaseStatus.PENDING.value
    upper = to_upper_snake(str(value))
    canonical = _STATUS_ALIASES.get(upper)
    return canonical.value if canonical else upper


def stored_status_values(status: str) -> List[str]:
    """All stored spellings that normalize to the given status, for query filters."""
    canonical = normalize_status(status)
    try:
        legacy = _LEGACY_SPELLINGS.get(CaseStatus(canonical), [])
    except ValueError:
        return [canonical]
    return [canonical, *legacy]
