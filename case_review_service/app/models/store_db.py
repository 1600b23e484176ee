import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from .case_db import CamelModel, utc_now

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class StoreRecord(CamelModel):
    """Per-store branding and contact configuration."""
    id: str
    store_id: str
    name: str
    primary_color: str
    secondary_color: Optional[str] = None
    email: str
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)


class StoreCreate(CamelModel):
    store_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    primary_color: str = Field(pattern=HEX_COLOR_PATTERN)
    secondary_color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    email: EmailStr


class StoreUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    primary_color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    secondary_color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    email: Optional[EmailStr] = None


class StoreListResult(CamelModel):
    items: List[StoreRecord]
