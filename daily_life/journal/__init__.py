"""Journal entries, settings and their file-backed store."""

from .store import JournalStore
from .schemas import (
    Entry, EntryDraft, EntryPatch, Mood, Theme, Settings, CustomTexts,
    BackupEnvelope, MoodSummary, merge_settings
)

__all__ = [
    "JournalStore",
    "Entry",
    "EntryDraft",
    "EntryPatch",
    "Mood",
    "Theme",
    "Settings",
    "CustomTexts",
    "BackupEnvelope",
    "MoodSummary",
    "merge_settings"
]
