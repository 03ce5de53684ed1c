from fastapi import APIRouter, Depends, HTTPException, status
import logging

from db.stores import Stores
from models.collection import CollectionCreate, CollectionUpdate, DripSettings
from routes.deps import get_clock, get_stores, today_for
from utils.drip import legacy_drip_days, plan_drip_settings
from utils.library import load_snapshot, run_drip

logger = logging.getLogger(__name__)

router = APIRouter()

def _drip_summary(collection) -> dict:
    return {
        "enabled": collection.drip_enabled,
        "rate": collection.drip_rate or 0,
        "days": legacy_drip_days(collection),
        "cursor": collection.drip_cursor,
        "total": len(collection.verse_order),
        "last_checked": collection.drip_last_checked,
    }

@router.get("/{account_id}/collections")
async def list_collections(account_id: int, stores: Stores = Depends(get_stores)):
    """List collections with their drip state."""
    collections = await stores.collections.get_all()
    return [{**c.model_dump(mode="json"), "drip": _drip_summary(c)} for c in collections]

@router.post("/{account_id}/collections", status_code=status.HTTP_201_CREATED)
async def create_collection(
    account_id: int,
    body: CollectionCreate,
    stores: Stores = Depends(get_stores),
    clock = Depends(get_clock),
):
    """Create an empty collection."""
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")
    return await stores.collections.create(
        name=name,
        description=body.description,
        verse_order=[],
        created_at=clock.now(),
    )

@router.get("/{account_id}/collections/{collection_id}")
async def get_collection(account_id: int, collection_id: int, stores: Stores = Depends(get_stores)):
    collection = await stores.collections.get(collection_id)
    return {**collection.model_dump(mode="json"), "drip": _drip_summary(collection)}

@router.patch("/{account_id}/collections/{collection_id}")
async def update_collection(
    account_id: int,
    collection_id: int,
    body: CollectionUpdate,
    stores: Stores = Depends(get_stores),
):
    """Rename or re-describe a collection; omitted fields are left unchanged."""
    await stores.collections.patch(collection_id, body.model_dump(exclude_unset=True))
    return await stores.collections.get(collection_id)

@router.delete("/{account_id}/collections/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collection(account_id: int, collection_id: int, stores: Stores = Depends(get_stores)):
    """Delete a collection together with every verse that belongs to it."""
    await stores.collections.get(collection_id)
    verses = await stores.verses.get_all()
    doomed = [verse.id for verse in verses if collection_id in verse.collection_ids]
    for verse_id in doomed:
        await stores.verses.delete(verse_id)
    await stores.collections.delete(collection_id)
    logger.info("Deleted collection %s and %d verse(s)", collection_id, len(doomed))

@router.put("/{account_id}/collections/{collection_id}/drip")
async def update_drip_settings(
    account_id: int,
    collection_id: int,
    settings: DripSettings,
    stores: Stores = Depends(get_stores),
    clock = Depends(get_clock),
):
    """Enable, reconfigure or disable the drip feed of a collection."""
    snapshot = await load_snapshot(stores, clock.now())
    collection = snapshot.collections_by_id.get(collection_id)
    if collection is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    patch, activate = plan_drip_settings(
        collection, settings, snapshot.verses_by_id, snapshot.collections
    )
    for verse_id in activate:
        await stores.verses.patch(verse_id, {"active": True})
    await stores.collections.patch(collection_id, patch)
    updated = await stores.collections.get(collection_id)
    return {**updated.model_dump(mode="json"), "drip": _drip_summary(updated), "activated": activate}

@router.post("/{account_id}/drip/run")
async def run_drip_now(account_id: int, stores: Stores = Depends(get_stores), clock = Depends(get_clock)):
    """Run the calendar drip for every collection; a second run the same day does nothing."""
    snapshot = await load_snapshot(stores, clock.now())
    before = {verse.id for verse in snapshot.verses if verse.active}
    snapshot = await run_drip(stores, snapshot, today_for(clock))
    activated = sorted(verse.id for verse in snapshot.verses if verse.active and verse.id not in before)
    return {
        "activated": activated,
        "collections": [
            {"id": c.id, "drip": _drip_summary(c)} for c in snapshot.collections if c.drip_enabled
        ],
    }
