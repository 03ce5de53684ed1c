from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional

from db.stores import Stores
from models.verse import VerseAdd, VerseBatchCreate, VerseCollectionsUpdate
from routes.deps import get_card_scheduler, get_clock, get_stores, today_for
from utils.drip import moved_active, plan_append
from utils.library import add_verses, load_snapshot, run_drip
from utils.scheduler import days_until_due

router = APIRouter()

@router.get("/{account_id}/verses")
async def list_verses(
    account_id: int,
    collection_id: Optional[int] = None,
    stores: Stores = Depends(get_stores),
    scheduler = Depends(get_card_scheduler),
    clock = Depends(get_clock),
):
    """List verses after running the drip feed for today."""
    now = clock.now()
    snapshot = await load_snapshot(stores, now)
    snapshot = await run_drip(stores, snapshot, today_for(clock))
    verses = snapshot.verses
    if collection_id is not None:
        verses = [verse for verse in verses if collection_id in verse.collection_ids]
    return [
        {
            **verse.model_dump(mode="json"),
            "due": verse.active and scheduler.is_due(verse.scheduler_state, now),
            "days_until_due": days_until_due(verse.scheduler_state, now),
        }
        for verse in verses
    ]

@router.post("/{account_id}/verses", status_code=status.HTTP_201_CREATED)
async def create_verse(
    account_id: int,
    verse: VerseAdd,
    stores: Stores = Depends(get_stores),
    scheduler = Depends(get_card_scheduler),
    clock = Depends(get_clock),
):
    """Add a single verse, drip-aware when a target collection drips."""
    now = clock.now()
    snapshot = await load_snapshot(stores, now)
    created = await add_verses(
        stores, snapshot, [verse], verse.collection_ids, scheduler, now, today_for(clock)
    )
    return created[0]

@router.post("/{account_id}/verses/batch", status_code=status.HTTP_201_CREATED)
async def create_verses_batch(
    account_id: int,
    batch: VerseBatchCreate,
    stores: Stores = Depends(get_stores),
    scheduler = Depends(get_card_scheduler),
    clock = Depends(get_clock),
):
    """Add several verses at once; a fresh drip collection activates its first batch."""
    now = clock.now()
    snapshot = await load_snapshot(stores, now)
    return await add_verses(
        stores, snapshot, batch.verses, batch.collection_ids, scheduler, now, today_for(clock)
    )

@router.post("/{account_id}/verses/{verse_id}/star")
async def toggle_star(account_id: int, verse_id: int, stores: Stores = Depends(get_stores)):
    verse = await stores.verses.get(verse_id)
    await stores.verses.patch(verse_id, {"starred": not verse.starred})
    return {"id": verse_id, "starred": not verse.starred}

@router.put("/{account_id}/verses/{verse_id}/collections")
async def update_verse_collections(
    account_id: int,
    verse_id: int,
    body: VerseCollectionsUpdate,
    stores: Stores = Depends(get_stores),
    clock = Depends(get_clock),
):
    """Move a verse between collections, appending it to each new collection's order.

    Joining a drip collection queues the verse unless its position falls below
    the cursor.
    """
    snapshot = await load_snapshot(stores, clock.now())
    verse = snapshot.verses_by_id.get(verse_id)
    if verse is None:
        raise HTTPException(status_code=404, detail="Verse not found")
    collections = snapshot.collections_by_id
    unknown = [cid for cid in body.collection_ids if cid not in collections]
    if unknown:
        raise HTTPException(status_code=404, detail=f"Collection(s) not found: {unknown}")
    collection_ids = list(dict.fromkeys(body.collection_ids))
    active = moved_active(verse, collection_ids, collections)
    await stores.verses.patch(verse_id, {"collection_ids": collection_ids, "active": active})
    today = today_for(clock)
    for cid in collection_ids:
        if cid not in verse.collection_ids:
            await stores.collections.patch(cid, plan_append(collections[cid], [verse_id], today))
    return verse.model_copy(update={"collection_ids": collection_ids, "active": active})

@router.delete("/{account_id}/verses/{verse_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_verse(account_id: int, verse_id: int, stores: Stores = Depends(get_stores)):
    """Delete a verse; its id stays in verse_order and is skipped from then on."""
    await stores.verses.delete(verse_id)
