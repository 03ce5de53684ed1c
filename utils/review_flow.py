"""Grading one verse.

plan_review() is pure: it runs the card scheduler, drip catch-up, mastery
phase and XP ledger against a snapshot. apply_review() persists the plan;
only after it returns should the caller swap in plan.applied_to(snapshot).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from db.stores import RecordNotFound, Stores
from models.profile import Profile
from models.review import Grade
from models.verse import LearningPhase, Verse
from utils.drip import CatchUp, plan_catch_up
from utils.gamification import LedgerResult, record_review
from utils.grading import suggest_grade
from utils.learning_phase import advance_phase, skips_self_grading
from utils.library import LibrarySnapshot
from utils.scheduler import CardScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewPlan:
    verse_id: int
    grade: int
    auto_graded: bool
    verse_patch: Dict[str, Any]
    catch_up: CatchUp
    ledger: LedgerResult

    @property
    def xp_earned(self) -> int:
        return self.ledger.xp_earned

    def to_record(self, position: int) -> Dict[str, Any]:
        """JSON form kept on the session until the entry at `position` is done."""
        return {
            "position": position,
            "verse_id": self.verse_id,
            "grade": self.grade,
            "auto_graded": self.auto_graded,
            "scheduler_state": self.verse_patch["scheduler_state"],
            "learning_phase": LearningPhase(self.verse_patch["learning_phase"]).value,
            "activate": list(self.catch_up.activate),
            "collection_patches": {str(cid): patch for cid, patch in self.catch_up.collection_patches.items()},
            "profile": self.ledger.profile.model_dump(mode="json"),
            "xp_earned": self.ledger.xp_earned,
            "leveled_up": self.ledger.leveled_up,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ReviewPlan":
        return cls(
            verse_id=record["verse_id"],
            grade=record["grade"],
            auto_graded=record["auto_graded"],
            verse_patch={
                "scheduler_state": record["scheduler_state"],
                "learning_phase": LearningPhase(record["learning_phase"]),
            },
            catch_up=CatchUp(
                activate=tuple(record["activate"]),
                collection_patches={int(cid): patch for cid, patch in record["collection_patches"].items()},
            ),
            ledger=LedgerResult(
                profile=Profile.model_validate(record["profile"]),
                xp_earned=record["xp_earned"],
                leveled_up=record["leveled_up"],
            ),
        )

    def applied_to(self, snapshot: LibrarySnapshot) -> LibrarySnapshot:
        verse_updates: Dict[int, Dict[str, Any]] = {vid: {"active": True} for vid in self.catch_up.activate}
        verse_updates.setdefault(self.verse_id, {}).update(self.verse_patch)
        updated = snapshot.with_verse_updates(verse_updates)
        updated = updated.with_collection_updates(self.catch_up.collection_patches)
        return LibrarySnapshot(updated.verses, updated.collections, self.ledger.profile)


def resolve_grade(
    verse: Verse,
    auto_grade: bool,
    grade: Optional[int],
    user_text: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Tuple[int, bool]:
    """Grade to record and whether it was decided automatically.

    Beginner verses and sequential sessions are always graded Good. Otherwise
    the submitted grade wins; typed recall alone yields a suggested grade.
    """
    if auto_grade or skips_self_grading(verse.learning_phase):
        return int(Grade.GOOD), True
    if grade is not None:
        return int(Grade(grade)), False
    if user_text is not None:
        return suggest_grade(verse.text, user_text, config), True
    raise ValueError("A grade or typed recall is required")


def plan_review(
    snapshot: LibrarySnapshot,
    verse_id: int,
    grade: int,
    scheduler: CardScheduler,
    now: datetime,
    today: date,
    auto_graded: bool = False,
) -> ReviewPlan:
    verse = snapshot.verses_by_id.get(verse_id)
    if verse is None:
        raise RecordNotFound(f"Verse {verse_id} not found")
    grade = int(Grade(grade))

    scheduler_state = scheduler.schedule(verse.scheduler_state, grade, now)
    catch_up = plan_catch_up(verse, snapshot.collections, snapshot.verses_by_id)
    phase = advance_phase(verse.learning_phase, grade)
    ledger = record_review(snapshot.profile, verse.id, grade, today)

    return ReviewPlan(
        verse_id=verse.id,
        grade=grade,
        auto_graded=auto_graded,
        verse_patch={"scheduler_state": scheduler_state, "learning_phase": phase},
        catch_up=catch_up,
        ledger=ledger,
    )


async def apply_review(
    stores: Stores,
    plan: ReviewPlan,
    now: datetime,
    session_id: Optional[int] = None,
    position: Optional[int] = None,
    user_text: Optional[str] = None,
    duration_seconds: Optional[int] = None,
) -> None:
    """Persist a review plan; any StoreError propagates to the caller.

    Every write sets absolute values and the review row is keyed by session
    position, so applying the same plan again after a failure is harmless.
    """
    await stores.verses.patch(plan.verse_id, plan.verse_patch)
    for verse_id in plan.catch_up.activate:
        await stores.verses.patch(verse_id, {"active": True})
    for collection_id, patch in plan.catch_up.collection_patches.items():
        await stores.collections.patch(collection_id, patch)
    await stores.profile.save(plan.ledger.profile)
    await stores.reviews.append(
        verse_id=plan.verse_id,
        session_id=session_id,
        session_position=position,
        grade=plan.grade,
        auto_graded=plan.auto_graded,
        xp_earned=plan.xp_earned,
        user_text=user_text,
        duration_seconds=duration_seconds,
        created_at=now,
    )
    logger.info(
        "Verse %s graded %d (+%d XP)%s",
        plan.verse_id,
        plan.grade,
        plan.xp_earned,
        " with catch-up" if not plan.catch_up.empty else "",
    )
