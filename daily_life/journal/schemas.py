"""
Schemas for journal entries, user settings and backups.
"""

import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any, Mapping, Union

from pydantic import BaseModel, Field, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..core.logging import get_logger
from ..core.exceptions import MalformedImportError


logger = get_logger(__name__)


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a moment as an ISO-8601 UTC string with millisecond precision."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse a stored timestamp, returning None when it is not ISO-8601."""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None


class Mood(str, Enum):
    """Mood attached to an entry, in display order."""
    AMAZING = "amazing"
    HAPPY = "happy"
    NEUTRAL = "neutral"
    SAD = "sad"
    AWFUL = "awful"

    @property
    def label(self) -> str:
        return _MOOD_DISPLAY[self][0]

    @property
    def color(self) -> str:
        return _MOOD_DISPLAY[self][1]

    @property
    def emoji(self) -> str:
        return _MOOD_DISPLAY[self][2]


_MOOD_DISPLAY: Dict[Mood, tuple] = {
    Mood.AMAZING: ("Amazing", "#10B981", "🤩"),
    Mood.HAPPY: ("Happy", "#F59E0B", "😊"),
    Mood.NEUTRAL: ("Neutral", "#6B7280", "😐"),
    Mood.SAD: ("Sad", "#3B82F6", "😢"),
    Mood.AWFUL: ("Awful", "#EF4444", "😰"),
}


class Theme(str, Enum):
    """Presentation theme."""
    LIGHT = "light"
    DARK = "dark"


class Entry(BaseModel):
    """One dated, mood-tagged journal record."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1, description="Unique identifier, immutable")
    date: str = Field(description="Creation timestamp (ISO-8601)")
    content: str = Field(default="", description="Entry text, may contain markdown")
    mood: Mood = Field(default=Mood.NEUTRAL, description="Mood tag")

    @property
    def created_at(self) -> Optional[datetime]:
        """Creation time as a datetime, if the stored date parses."""
        return parse_timestamp(self.date)


def _require_text(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError("content must not be empty")
    return v


class EntryDraft(BaseModel):
    """Caller-provided fields for a new entry; id and date are assigned by the store."""

    model_config = ConfigDict(extra="ignore")

    content: str = Field(default="", validate_default=True, description="Entry text")
    mood: Mood = Field(default=Mood.NEUTRAL, description="Mood tag")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        """Reject blank entry text."""
        return _require_text(v)

    def to_entry(self) -> Entry:
        """Create a new entry with a fresh id and the current timestamp."""
        return Entry(
            id=uuid.uuid4().hex,
            date=utc_timestamp(),
            content=self.content,
            mood=self.mood
        )


class EntryPatch(BaseModel):
    """Partial update of an entry. Absent fields keep their current value."""

    model_config = ConfigDict(extra="ignore")

    content: Optional[str] = Field(default=None, description="Replacement text")
    mood: Optional[Mood] = Field(default=None, description="Replacement mood")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        """Reject blank entry text."""
        return _require_text(v)

    def changes(self) -> Dict[str, Any]:
        """Fields present in the patch."""
        return self.model_dump(exclude_none=True)

    def apply(self, entry: Entry) -> Entry:
        """Return a copy of ``entry`` with the patch applied; id and date are kept."""
        return entry.model_copy(update=self.changes())


class CustomTexts(BaseModel):
    """Overridable display strings."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    app_title: str = "Life Recorder"
    app_subtitle: str = "Record beautiful moments, track your moods, reflect on your journey"
    hero_title: str = "Your Life, Your Story"
    hero_subtitle: str = "Record beautiful moments, track your moods, reflect on your journey"
    start_button_text: str = "Start Writing"


class Settings(BaseModel):
    """The single global settings record."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    theme: Theme = Field(default=Theme.LIGHT, description="Presentation theme")
    auto_save: bool = Field(default=True, description="Presentation-only auto-save flag")
    show_mood_on_calendar: bool = Field(default=True, description="Show mood dots on the calendar")
    custom_texts: CustomTexts = Field(default_factory=CustomTexts, description="Display text overrides")

    def to_json(self) -> Dict[str, Any]:
        """Serialize with camelCase keys as stored on disk."""
        return self.model_dump(mode="json", by_alias=True)


def default_settings() -> Settings:
    return Settings()


def merge_settings(stored: Optional[Mapping[str, Any]]) -> Settings:
    """
    Merge a stored settings record over the defaults, field by field.

    Present fields overwrite defaults, absent fields keep the default,
    and ``customTexts`` is merged key by key. A field whose stored value
    is invalid falls back to its default without discarding the others.

    Args:
        stored: Raw settings mapping (camelCase keys) or None

    Returns:
        Complete settings record
    """
    defaults = default_settings().to_json()
    merged = default_settings().to_json()

    if isinstance(stored, Mapping):
        for key, value in stored.items():
            if key not in merged or value is None:
                continue
            if key == "customTexts":
                if isinstance(value, Mapping):
                    merged[key].update(
                        {k: v for k, v in value.items() if k in merged[key] and v is not None}
                    )
            else:
                merged[key] = value
    elif stored is not None:
        logger.warning(f"Ignoring stored settings of type {type(stored).__name__}")

    try:
        return Settings.model_validate(merged)
    except ValidationError as e:
        for error in e.errors():
            loc = error["loc"]
            if len(loc) > 1 and loc[0] == "customTexts":
                merged["customTexts"][loc[1]] = defaults["customTexts"][loc[1]]
            else:
                merged[loc[0]] = defaults[loc[0]]
            logger.warning(f"Invalid stored setting {'.'.join(map(str, loc))}, using default")
        return Settings.model_validate(merged)


def duplicate_ids(entries: List[Entry]) -> List[str]:
    """Ids that occur more than once, in first-seen order."""
    seen = set()
    duplicates: List[str] = []
    for entry in entries:
        if entry.id in seen and entry.id not in duplicates:
            duplicates.append(entry.id)
        seen.add(entry.id)
    return duplicates


class BackupEnvelope(BaseModel):
    """Snapshot of entries and settings used for export and import."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entries: Optional[List[Entry]] = Field(default=None, description="Full entries collection")
    settings: Optional[Settings] = Field(default=None, description="Settings record")
    export_date: Optional[str] = Field(default=None, description="Export timestamp")

    @field_validator("entries")
    @classmethod
    def validate_unique_ids(cls, v):
        """Entry ids must be unique within a backup."""
        if v is not None:
            duplicates = duplicate_ids(v)
            if duplicates:
                raise ValueError(f"duplicate entry ids: {', '.join(duplicates)}")
        return v

    def to_json(self) -> Dict[str, Any]:
        # Only absent top-level parts are dropped; null fields inside entries are kept
        absent = {name for name in ("entries", "settings", "export_date") if getattr(self, name) is None}
        return self.model_dump(mode="json", by_alias=True, exclude=absent)


def parse_backup(raw: Union[str, bytes]) -> BackupEnvelope:
    """
    Decode and validate a backup file.

    Args:
        raw: Backup file contents

    Returns:
        Validated backup envelope

    Raises:
        MalformedImportError: If the payload is not JSON or not a backup object
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedImportError("Import file is not valid JSON", reason=str(e)) from e

    if not isinstance(data, dict):
        raise MalformedImportError(
            "Import file must contain a JSON object", reason=type(data).__name__
        )

    if data.get("entries") is None and data.get("settings") is None:
        raise MalformedImportError(
            "Import file contains neither entries nor settings", reason="empty backup"
        )

    try:
        return BackupEnvelope.model_validate(data)
    except ValidationError as e:
        raise MalformedImportError(
            "Import file does not look like a backup", reason=f"{e.error_count()} validation errors"
        ) from e


def backup_filename(moment: Optional[datetime] = None) -> str:
    """Download file name for a backup taken at ``moment``."""
    moment = moment or datetime.now(timezone.utc)
    return f"daily-life-backup-{moment.astimezone(timezone.utc).date().isoformat()}.json"


class MoodStat(BaseModel):
    """Share of entries tagged with one mood."""

    mood: Mood = Field(description="Mood")
    label: str = Field(description="Display label")
    color: str = Field(description="Display colour")
    emoji: str = Field(description="Display emoji")
    count: int = Field(default=0, description="Number of entries")
    percentage: float = Field(default=0.0, description="Share of all entries, 0-100")


class MoodSummary(BaseModel):
    """Aggregate mood statistics for the dashboard."""

    total_entries: int = Field(default=0, description="Number of entries")
    this_week: int = Field(default=0, description="Entries since the start of the week")
    top_mood: Optional[Mood] = Field(default=None, description="Most frequent mood")
    moods: List[MoodStat] = Field(default_factory=list, description="Per-mood statistics")
    recent: List[Entry] = Field(default_factory=list, description="Most recent entries")
