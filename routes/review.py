from fastapi import APIRouter, Depends, HTTPException
import logging

from config import load_config
from db.stores import Stores
from models.review import (
    GradeSubmit,
    InputMode,
    ReviewMode,
    ReviewPreferences,
    SessionStart,
    SessionStatus,
)
from routes.deps import get_card_scheduler, get_clock, get_rng, get_stores, today_for
from utils.grading import token_diff
from utils.library import load_snapshot, run_drip
from utils.review_flow import ReviewPlan, apply_review, plan_review, resolve_grade
from utils.review_queue import QueueRequest, QueueStatus, build_queue

logger = logging.getLogger(__name__)

router = APIRouter()

def _entry_payload(entry, verses_by_id) -> dict:
    if entry is None:
        return None
    verse = verses_by_id.get(entry.verse_id)
    return {
        "verse_id": entry.verse_id,
        "auto_grade": entry.auto_grade,
        "reference": verse.reference if verse else None,
        "text": verse.text if verse else None,
        "learning_phase": verse.learning_phase if verse else None,
    }

@router.post("/{account_id}/review/sessions")
async def start_session(
    account_id: int,
    body: SessionStart,
    stores: Stores = Depends(get_stores),
    scheduler = Depends(get_card_scheduler),
    clock = Depends(get_clock),
    rng = Depends(get_rng),
):
    """Build a review queue and open a session for it.

    An empty pool answers status "nothing_eligible" with no session, which is
    distinct from a session that has run to completion.
    """
    config = load_config()
    review_cfg = config["review"]
    now = clock.now()
    snapshot = await load_snapshot(stores, now)
    snapshot = await run_drip(stores, snapshot, today_for(clock))

    preferences = ReviewPreferences(
        input_mode=body.input_mode or InputMode(review_cfg["input_mode"]),
        cloze_rate=review_cfg["cloze_rate"],
        include_reference=review_cfg["include_reference"],
    )
    request = QueueRequest(
        scope=body.scope,
        mode=body.mode or ReviewMode(review_cfg["default_mode"]),
        collection_id=body.collection_id,
        verse_id=body.verse_id,
        start_verse_id=body.start_verse_id,
    )
    result = build_queue(
        snapshot.verses, snapshot.collections, request, scheduler, now, rng=rng, preferences=preferences
    )
    if result.status == QueueStatus.NOTHING_ELIGIBLE:
        return {"status": result.status.value, "session": None, "current": None}

    session = await stores.sessions.create(
        entries=result.entries,
        position=0,
        mode=result.mode,
        input_mode=preferences.input_mode,
        status=SessionStatus.ACTIVE,
        xp_earned=0,
        created_at=now,
    )
    logger.info("Session %s started with %d verse(s) in %s mode", session.id, len(result.entries), result.mode.value)
    return {
        "status": result.status.value,
        "session": session,
        "preferences": preferences,
        "current": _entry_payload(session.current, snapshot.verses_by_id),
    }

@router.get("/{account_id}/review/sessions/{session_id}")
async def get_session(
    account_id: int,
    session_id: int,
    stores: Stores = Depends(get_stores),
):
    session = await stores.sessions.get(session_id)
    verses = {verse.id: verse for verse in await stores.verses.get_all()}
    return {"session": session, "current": _entry_payload(session.current, verses)}

@router.post("/{account_id}/review/sessions/{session_id}/grade")
async def grade_current(
    account_id: int,
    session_id: int,
    body: GradeSubmit,
    stores: Stores = Depends(get_stores),
    scheduler = Depends(get_card_scheduler),
    clock = Depends(get_clock),
):
    """Grade the session's current verse and advance to the next one.

    The planned writes are saved on the session first; a retry after a failed
    write re-applies that plan, so an entry is never graded twice.
    """
    session = await stores.sessions.get(session_id)
    entry = session.current
    if session.status == SessionStatus.COMPLETE or entry is None:
        raise HTTPException(status_code=409, detail="Session already complete")

    now = clock.now()
    snapshot = await load_snapshot(stores, now)
    verse = snapshot.verses_by_id.get(entry.verse_id)

    result = {"verse_id": entry.verse_id, "skipped": verse is None}
    session_xp = session.xp_earned
    pending = session.pending if session.pending and session.pending.get("position") == session.position else None
    if verse is not None:
        if pending is not None:
            # An earlier attempt failed part way; finish that plan instead of grading again.
            plan = ReviewPlan.from_record(pending)
            logger.info("Re-applying saved review of session %s entry %d", session.id, session.position)
        else:
            try:
                grade, auto_graded = resolve_grade(
                    verse, entry.auto_grade, body.grade, body.user_text, load_config()
                )
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc))
            plan = plan_review(snapshot, verse.id, grade, scheduler, now, today_for(clock), auto_graded)
            await stores.sessions.patch(session.id, {"pending": plan.to_record(session.position)})
        await apply_review(
            stores,
            plan,
            now,
            session_id=session.id,
            position=session.position,
            user_text=body.user_text,
            duration_seconds=body.duration_seconds,
        )
        session_xp += plan.xp_earned
        result.update({
            "grade": plan.grade,
            "auto_graded": plan.auto_graded,
            "xp_earned": plan.xp_earned,
            "leveled_up": plan.ledger.leveled_up,
            "level": plan.ledger.profile.level,
            "learning_phase": plan.verse_patch["learning_phase"],
            "activated": list(plan.catch_up.activate),
        })
        if body.user_text is not None:
            result["diff"] = token_diff(verse.text, body.user_text)
        snapshot = plan.applied_to(snapshot)

    position = session.position + 1
    status = SessionStatus.COMPLETE if position >= len(session.entries) else SessionStatus.ACTIVE
    await stores.sessions.patch(session.id, {"position": position, "status": status, "xp_earned": session_xp})
    next_entry = session.entries[position] if position < len(session.entries) else None
    result.update({
        "status": status.value,
        "session_xp": session_xp,
        "reviewed": position,
        "remaining": len(session.entries) - position,
        "next": _entry_payload(next_entry, snapshot.verses_by_id),
    })
    return result
