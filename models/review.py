from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class Grade(IntEnum):
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class ReviewScope(str, Enum):
    STARRED = "starred"
    COLLECTION = "collection"
    LIBRARY = "library"


class ReviewMode(str, Enum):
    DUE = "due"
    RANDOM = "random"
    SEQUENTIAL = "sequential"


class InputMode(str, Enum):
    FULL = "full"
    FIRST_LETTER = "firstLetter"
    FILL_BLANK = "fillBlank"


class ReviewPreferences(BaseModel):
    """Per-session preferences, passed explicitly when a queue is built."""

    input_mode: InputMode = InputMode.FULL
    cloze_rate: int = 25
    include_reference: bool = False


class SessionStart(BaseModel):
    scope: ReviewScope = ReviewScope.LIBRARY
    mode: Optional[ReviewMode] = None
    collection_id: Optional[int] = None
    verse_id: Optional[int] = None
    start_verse_id: Optional[int] = None
    input_mode: Optional[InputMode] = None

    @model_validator(mode="after")
    def check_collection(self):
        if self.start_verse_id is not None and self.collection_id is None:
            raise ValueError("start_verse_id requires collection_id")
        if self.scope == ReviewScope.COLLECTION and self.collection_id is None and self.verse_id is None:
            raise ValueError("collection scope requires collection_id")
        return self


class GradeSubmit(BaseModel):
    grade: Optional[Grade] = None
    user_text: Optional[str] = None
    duration_seconds: Optional[int] = None


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETE = "complete"


class QueueEntry(BaseModel):
    verse_id: int
    auto_grade: bool = False


class ReviewSession(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    entries: List[QueueEntry]
    position: int = 0
    mode: ReviewMode
    input_mode: InputMode = InputMode.FULL
    status: SessionStatus = SessionStatus.ACTIVE
    xp_earned: int = 0
    pending: Optional[Dict[str, Any]] = None  # planned writes for the entry at `position`
    created_at: datetime

    @property
    def current(self) -> Optional[QueueEntry]:
        if self.position < len(self.entries):
            return self.entries[self.position]
        return None
