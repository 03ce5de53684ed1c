from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class LearningPhase(str, Enum):
    BEGINNER = "beginner"
    LEARNING = "learning"
    MASTERED = "mastered"


class VerseBase(BaseModel):
    reference: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class VerseCreate(VerseBase):
    starred: bool = False


class VerseBatchCreate(BaseModel):
    verses: List[VerseCreate] = Field(..., min_length=1)
    collection_ids: List[int] = []


class VerseAdd(VerseCreate):
    collection_ids: List[int] = []


class VerseCollectionsUpdate(BaseModel):
    collection_ids: List[int]


class Verse(VerseBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    book_name: str = ""
    collection_ids: List[int] = []
    scheduler_state: Dict[str, Any] = {}
    active: bool = True
    learning_phase: LearningPhase = LearningPhase.BEGINNER
    starred: bool = False
    created_at: datetime
