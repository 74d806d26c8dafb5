"""
HTTP routes exposing the journal store.
"""

import json
from typing import List, Optional, Dict

from fastapi import APIRouter, Depends, Path, Query, Request, Response

from ..core.exceptions import PersistenceError
from ..journal.store import JournalStore
from ..journal.schemas import (
    Entry, EntryDraft, EntryPatch, Mood, Settings, MoodSummary,
    backup_filename, parse_backup, parse_timestamp
)


router = APIRouter(prefix="/api", tags=["journal"])


def get_store(request: Request) -> JournalStore:
    """Store attached to the running application."""
    return request.app.state.store


@router.get("/entries", response_model=List[Entry])
async def list_entries(
    q: Optional[str] = Query(None, description="Case-insensitive content search"),
    mood: Optional[Mood] = Query(None, description="Only entries with this mood"),
    store: JournalStore = Depends(get_store)
):
    """All entries, most recent first, optionally filtered."""
    if q or mood:
        return await store.search_entries(q, mood)
    return await store.list_entries()


@router.post("/entries")
async def replace_entries(entries: List[Entry], store: JournalStore = Depends(get_store)):
    """Overwrite the whole entries collection."""
    if not await store.replace_entries(entries):
        raise PersistenceError("Failed to save entries")
    return {"message": "Entries saved successfully"}


@router.post("/entries/add", response_model=Entry)
async def add_entry(draft: EntryDraft, store: JournalStore = Depends(get_store)):
    """Create an entry; id and date are assigned here."""
    return await store.add_entry(draft)


@router.put("/entries/{entry_id:path}")
async def update_entry(entry_id: str, patch: EntryPatch, store: JournalStore = Depends(get_store)):
    await store.apply_entry_update(entry_id, patch)
    return {"message": "Entry updated successfully"}


@router.delete("/entries/{entry_id:path}")
async def delete_entry(entry_id: str, store: JournalStore = Depends(get_store)):
    if not await store.delete_entry(entry_id):
        raise PersistenceError("Failed to delete entry")
    return {"message": "Entry deleted successfully"}


@router.get("/settings", response_model=Settings)
async def get_settings(store: JournalStore = Depends(get_store)):
    return await store.get_settings()


@router.post("/settings")
async def save_settings(settings: Settings, store: JournalStore = Depends(get_store)):
    if not await store.save_settings(settings):
        raise PersistenceError("Failed to save settings")
    return {"message": "Settings saved successfully"}


@router.get("/export")
async def export_data(store: JournalStore = Depends(get_store)):
    """Backup of entries and settings as a downloadable JSON file."""
    envelope = await store.export_snapshot()
    filename = backup_filename(parse_timestamp(envelope.export_date))

    return Response(
        content=json.dumps(envelope.to_json(), ensure_ascii=False, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/import")
async def import_data(request: Request, store: JournalStore = Depends(get_store)):
    """Restore a backup; malformed payloads are rejected before anything is written."""
    envelope = parse_backup(await request.body())
    await store.import_snapshot(envelope)
    return {"message": "Data imported successfully"}


@router.get("/stats", response_model=MoodSummary)
async def mood_summary(store: JournalStore = Depends(get_store)):
    return await store.mood_summary()


@router.get("/calendar/{year}/{month}", response_model=Dict[str, List[Entry]])
async def calendar_month(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    store: JournalStore = Depends(get_store)
):
    """Entries of one month grouped by ISO day."""
    return await store.calendar_month(year, month)


@router.get("/health")
async def health():
    return {"status": "OK", "message": "Server is running"}
