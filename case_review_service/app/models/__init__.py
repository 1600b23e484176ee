from .case_db import (
    CamelModel,
    CaseStatus,
    InfoRequestStatus,
    CaseEmail,
    StatusHistoryEntry,
    ManualAnalysis,
    Resolution,
    ImageRefs,
    InfoRequest,
    InfoResponse,
    InfoExchange,
    CaseRecord,
    CaseListResult,
    utc_now,
)
from .store_db import StoreRecord, StoreCreate, StoreUpdate, StoreListResult

__all__ = [
    "CamelModel",
    "CaseStatus",
    "InfoRequestStatus",
    "CaseEmail",
    "StatusHistoryEntry",
    "ManualAnalysis",
    "Resolution",
    "ImageRefs",
    "InfoRequest",
    "InfoResponse",
    "InfoExchange",
    "CaseRecord",
    "CaseListResult",
    "utc_now",
    "StoreRecord",
    "StoreCreate",
    "StoreUpdate",
    "StoreListResult",
]
