from fastapi import APIRouter, Depends

from db.stores import Stores
from routes.deps import get_card_scheduler, get_clock, get_stores, today_for
from utils.gamification import acknowledge_level_up, level_progress, with_daily_reset
from utils.learning_phase import mastery_percent
from models.verse import LearningPhase

router = APIRouter()

@router.get("/{account_id}/profile")
async def get_profile(account_id: int, stores: Stores = Depends(get_stores), clock = Depends(get_clock)):
    """Profile with yesterday's daily review log already cleared."""
    profile = await stores.profile.get_or_create(clock.now())
    profile = with_daily_reset(profile, today_for(clock))
    return {
        **profile.model_dump(mode="json"),
        "level_progress": level_progress(profile.xp, profile.level),
    }

@router.post("/{account_id}/profile/level-up/ack")
async def ack_level_up(account_id: int, stores: Stores = Depends(get_stores), clock = Depends(get_clock)):
    """Acknowledge a pending level-up so the next one can be reported."""
    profile = await stores.profile.get_or_create(clock.now())
    profile = acknowledge_level_up(profile)
    await stores.profile.patch(account_id, {"level_up": profile.level_up})
    return {"level": profile.level, "level_up": profile.level_up}

@router.get("/{account_id}/dashboard")
async def dashboard(
    account_id: int,
    stores: Stores = Depends(get_stores),
    scheduler = Depends(get_card_scheduler),
    clock = Depends(get_clock),
):
    """Counts for the home screen plus review totals by grade."""
    now = clock.now()
    verses = await stores.verses.get_all()
    collections = await stores.collections.get_all()
    active = [verse for verse in verses if verse.active]
    mastered = sum(1 for verse in verses if verse.learning_phase == LearningPhase.MASTERED)
    grades = await stores.reviews.count_by_grade()
    total_reviews = sum(grades.values())
    success = grades.get(3, 0) + grades.get(4, 0)
    return {
        "verses": len(verses),
        "active": len(active),
        "queued": len(verses) - len(active),
        "due": sum(1 for verse in active if scheduler.is_due(verse.scheduler_state, now)),
        "starred": sum(1 for verse in active if verse.starred),
        "collections": len(collections),
        "mastered": mastered,
        "mastery_percent": mastery_percent(mastered, len(verses)),
        "total_reviews": total_reviews,
        "success_rate": round(success / total_reviews * 100, 1) if total_reviews else 0,
        "grades": grades,
    }
