from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Dict, List, Mapping, Sequence

from db.stores import RecordNotFound, Stores
from models.collection import Collection
from models.profile import Profile
from models.verse import LearningPhase, Verse, VerseCreate
from utils.drip import DripUpdate, initial_activation, plan_append, plan_library_drip
from utils.scheduler import CardScheduler

logger = logging.getLogger(__name__)

_CHAPTER_VERSE_RE = re.compile(r"\s+\d+(?::[\d\-–,\s]+)?$")


@dataclass(frozen=True)
class LibrarySnapshot:
    verses: List[Verse]
    collections: List[Collection]
    profile: Profile

    @property
    def verses_by_id(self) -> Dict[int, Verse]:
        return {verse.id: verse for verse in self.verses}

    @property
    def collections_by_id(self) -> Dict[int, Collection]:
        return {collection.id: collection for collection in self.collections}

    def with_verse_updates(self, updates: Mapping[int, Dict]) -> "LibrarySnapshot":
        verses = [
            verse.model_copy(update=updates[verse.id]) if verse.id in updates else verse
            for verse in self.verses
        ]
        return replace(self, verses=verses)

    def with_collection_updates(self, updates: Mapping[int, Dict]) -> "LibrarySnapshot":
        collections = [
            collection.model_copy(update=updates[collection.id]) if collection.id in updates else collection
            for collection in self.collections
        ]
        return replace(self, collections=collections)


def book_name(reference: str) -> str:
    """'1 John 4:8' -> '1 John'."""
    return _CHAPTER_VERSE_RE.sub("", reference.strip()) or reference.strip()


async def load_snapshot(stores: Stores, now: datetime) -> LibrarySnapshot:
    verses = await stores.verses.get_all()
    collections = await stores.collections.get_all()
    profile = await stores.profile.get_or_create(now)
    return LibrarySnapshot(verses=verses, collections=collections, profile=profile)


async def apply_drip_updates(stores: Stores, updates: Sequence[DripUpdate]) -> None:
    # Verses first, cursor last: a failure in between is healed by the next run.
    for update in updates:
        for verse_id in update.activate:
            await stores.verses.patch(verse_id, {"active": True})
        await stores.collections.patch(update.collection_id, update.collection_patch)


async def run_drip(stores: Stores, snapshot: LibrarySnapshot, today: date) -> LibrarySnapshot:
    """Run calendar drip for every collection and return the updated snapshot."""
    updates = plan_library_drip(snapshot.collections, snapshot.verses, today)
    if not updates:
        return snapshot
    await apply_drip_updates(stores, updates)
    activated = {verse_id: {"active": True} for update in updates for verse_id in update.activate}
    patches = {update.collection_id: update.collection_patch for update in updates}
    return snapshot.with_verse_updates(activated).with_collection_updates(patches)


async def add_verses(
    stores: Stores,
    snapshot: LibrarySnapshot,
    verses: Sequence[VerseCreate],
    collection_ids: Sequence[int],
    scheduler: CardScheduler,
    now: datetime,
    today: date,
) -> List[Verse]:
    """Create verses and append them to every target collection's verse_order.

    Activation follows the first drip-enabled target collection.
    """
    by_id = snapshot.collections_by_id
    missing = [cid for cid in collection_ids if cid not in by_id]
    if missing:
        raise RecordNotFound(f"Collection(s) not found: {missing}")
    targets = [by_id[cid] for cid in collection_ids]
    active_flags = initial_activation(targets, len(verses))

    created: List[Verse] = []
    for verse_data, active in zip(verses, active_flags):
        verse = await stores.verses.create(
            reference=verse_data.reference.strip(),
            book_name=book_name(verse_data.reference),
            text=verse_data.text.strip(),
            collection_ids=list(collection_ids),
            scheduler_state=scheduler.new_card(now),
            active=active,
            learning_phase=LearningPhase.BEGINNER,
            starred=verse_data.starred,
            created_at=now,
        )
        created.append(verse)

    new_ids = [verse.id for verse in created]
    for collection in targets:
        await stores.collections.patch(collection.id, plan_append(collection, new_ids, today))
    logger.info(
        "Added %d verse(s) (%d active) to collections %s",
        len(created),
        sum(1 for verse in created if verse.active),
        list(collection_ids),
    )
    return created
