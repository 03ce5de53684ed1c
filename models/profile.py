from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict


class LevelUpState(str, Enum):
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"


class DailyReviewEntry(BaseModel):
    review_count: int = 0
    best_grade: int = 0
    xp_earned: int = 0


class Profile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: int
    streak: int = 0
    last_review_date: Optional[date] = None
    xp: int = 0
    level: int = 0
    total_reviewed: int = 0
    daily_review_log: Dict[int, DailyReviewEntry] = {}
    level_up: LevelUpState = LevelUpState.ACKNOWLEDGED
    created_at: datetime
