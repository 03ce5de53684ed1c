from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALL_WEEKDAYS = [0, 1, 2, 3, 4, 5, 6]  # 0 = Sunday


class DripPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"


class CollectionBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class CollectionCreate(CollectionBase):
    pass


class CollectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


class DripSettings(BaseModel):
    enabled: bool
    rate: int = Field(3, ge=1)
    days: List[int] = Field(default_factory=lambda: list(ALL_WEEKDAYS))

    @field_validator("days")
    @classmethod
    def validate_days(cls, v):
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("Drip days must be weekday indices 0-6 (0 = Sunday)")
        return sorted(set(v))


class Collection(CollectionBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    verse_order: List[int] = []
    drip_rate: Optional[int] = None
    drip_period: Optional[DripPeriod] = None  # legacy, superseded by drip_days
    drip_days: Optional[List[int]] = None
    drip_cursor: Optional[int] = None
    drip_last_checked: Optional[date] = None
    created_at: datetime

    @property
    def drip_enabled(self) -> bool:
        return bool(self.drip_rate and self.drip_rate > 0)
