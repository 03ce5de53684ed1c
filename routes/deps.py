import random
from datetime import date

from fastapi import Depends

from config import load_config
from db.database import get_db
from db.stores import AccountStore, Stores
from utils.clock import Clock, calendar_day, configured_timezone, get_clock
from utils.scheduler import CardScheduler, get_scheduler

async def get_stores(account_id: int, conn = Depends(get_db)) -> Stores:
    """Stores scoped to an existing account (404 otherwise)."""
    await AccountStore(conn).get(account_id)
    return Stores(conn, account_id)

def get_card_scheduler() -> CardScheduler:
    return get_scheduler(load_config())

def get_rng() -> random.Random:
    return random.Random()

def today_for(clock: Clock) -> date:
    return calendar_day(clock.now(), configured_timezone())

__all__ = ["get_stores", "get_card_scheduler", "get_rng", "get_clock", "today_for"]
