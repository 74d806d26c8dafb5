"""
Tests for journal schemas and merge rules.
"""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from daily_life.core.exceptions import MalformedImportError
from daily_life.journal.schemas import (
    Entry, EntryDraft, EntryPatch, Mood, Theme, Settings, CustomTexts,
    BackupEnvelope, duplicate_ids, merge_settings, parse_backup, backup_filename,
    utc_timestamp, parse_timestamp
)


class TestTimestamps:
    """Test timestamp formatting."""

    def test_utc_timestamp_format(self):
        moment = datetime(2025, 6, 1, 10, 15, 30, 123456, tzinfo=timezone.utc)
        assert utc_timestamp(moment) == "2025-06-01T10:15:30.123Z"

    def test_parse_round_trip(self):
        parsed = parse_timestamp("2025-06-01T10:15:30.123Z")
        assert parsed == datetime(2025, 6, 1, 10, 15, 30, 123000, tzinfo=timezone.utc)

    def test_parse_invalid(self):
        assert parse_timestamp("yesterday") is None

    def test_backup_filename(self):
        moment = datetime(2025, 6, 1, 23, 0, tzinfo=timezone.utc)
        assert backup_filename(moment) == "daily-life-backup-2025-06-01.json"


class TestMood:
    """Test mood metadata."""

    def test_display_order(self):
        assert [mood.value for mood in Mood] == ["amazing", "happy", "neutral", "sad", "awful"]

    def test_display_metadata(self):
        assert Mood.HAPPY.label == "Happy"
        assert Mood.AWFUL.color == "#EF4444"
        assert Mood.NEUTRAL.emoji == "😐"


class TestEntryDraft:
    """Test new entry creation."""

    def test_defaults_mood_to_neutral(self):
        draft = EntryDraft(content="hello")
        assert draft.mood == Mood.NEUTRAL

    def test_blank_content_rejected(self):
        with pytest.raises(ValidationError):
            EntryDraft(content="   ")
        with pytest.raises(ValidationError):
            EntryDraft()

    def test_unknown_mood_rejected(self):
        with pytest.raises(ValidationError):
            EntryDraft(content="hello", mood="ecstatic")

    def test_caller_id_and_date_ignored(self):
        draft = EntryDraft.model_validate(
            {"content": "hello", "id": "mine", "date": "2000-01-01T00:00:00.000Z"}
        )
        entry = draft.to_entry()
        assert entry.id != "mine"
        assert entry.date != "2000-01-01T00:00:00.000Z"

    def test_to_entry_assigns_identity(self):
        first = EntryDraft(content="a").to_entry()
        second = EntryDraft(content="a").to_entry()
        assert first.id and second.id
        assert first.id != second.id
        assert first.created_at <= datetime.now(timezone.utc)


class TestEntryPatch:
    """Test partial entry updates."""

    def test_apply_keeps_absent_fields(self):
        entry = Entry(id="1", date="2025-06-01T09:00:00.000Z", content="old", mood=Mood.SAD)
        updated = EntryPatch(content="new").apply(entry)
        assert updated.content == "new"
        assert updated.mood == Mood.SAD
        assert updated.id == "1"
        assert updated.date == "2025-06-01T09:00:00.000Z"

    def test_id_and_date_cannot_be_patched(self):
        entry = Entry(id="1", date="2025-06-01T09:00:00.000Z", content="old")
        patch = EntryPatch.model_validate({"id": "2", "date": "2030-01-01T00:00:00.000Z", "mood": "happy"})
        updated = patch.apply(entry)
        assert updated.id == "1"
        assert updated.date == "2025-06-01T09:00:00.000Z"
        assert updated.mood == Mood.HAPPY

    def test_changes_lists_present_fields(self):
        assert EntryPatch(mood=Mood.AWFUL).changes() == {"mood": Mood.AWFUL}
        assert EntryPatch().changes() == {}

    def test_blank_content_rejected(self):
        with pytest.raises(ValidationError):
            EntryPatch(content="")


class TestEntry:
    """Test stored entry records."""

    def test_extra_fields_preserved(self):
        entry = Entry.model_validate(
            {"id": "1", "date": "2025-06-01T09:00:00.000Z", "content": "x", "mood": "sad", "weather": "rain"}
        )
        assert entry.model_dump(mode="json")["weather"] == "rain"

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            Entry(id="", date="2025-06-01T09:00:00.000Z")


class TestMergeSettings:
    """Test field-by-field settings merge."""

    def test_nothing_stored_gives_defaults(self):
        assert merge_settings(None) == Settings()

    def test_partial_record_keeps_defaults(self):
        settings = merge_settings({"theme": "dark"})
        assert settings.theme == Theme.DARK
        assert settings.auto_save is True
        assert settings.custom_texts.app_title == CustomTexts().app_title

    def test_custom_texts_merged_per_key(self):
        settings = merge_settings({"customTexts": {"appTitle": "My Journal"}})
        assert settings.custom_texts.app_title == "My Journal"
        assert settings.custom_texts.hero_title == CustomTexts().hero_title

    def test_invalid_field_falls_back_alone(self):
        settings = merge_settings({"theme": "purple", "autoSave": False, "customTexts": {"heroTitle": 7}})
        assert settings.theme == Theme.LIGHT
        assert settings.auto_save is False
        assert settings.custom_texts.hero_title == CustomTexts().hero_title

    def test_unknown_keys_ignored(self):
        settings = merge_settings({"fontSize": 12, "showMoodOnCalendar": False})
        assert settings.show_mood_on_calendar is False
        assert "fontSize" not in settings.to_json()

    def test_non_mapping_ignored(self):
        assert merge_settings(["dark"]) == Settings()

    def test_to_json_uses_camel_case(self):
        data = Settings().to_json()
        assert set(data) == {"theme", "autoSave", "showMoodOnCalendar", "customTexts"}
        assert set(data["customTexts"]) == {
            "appTitle", "appSubtitle", "heroTitle", "heroSubtitle", "startButtonText"
        }


class TestParseBackup:
    """Test backup file validation."""

    def test_valid_backup(self):
        raw = json.dumps({
            "entries": [{"id": "1", "date": "2025-06-01T09:00:00.000Z", "content": "x", "mood": "happy"}],
            "settings": {"theme": "dark"},
            "exportDate": "2025-06-02T00:00:00.000Z"
        })
        envelope = parse_backup(raw)
        assert envelope.entries[0].id == "1"
        assert envelope.settings.theme == Theme.DARK
        assert envelope.export_date == "2025-06-02T00:00:00.000Z"

    def test_settings_only(self):
        envelope = parse_backup('{"settings": {"autoSave": false}}')
        assert envelope.entries is None
        assert envelope.settings.auto_save is False

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2, 3]",
        "{}",
        '{"entries": [{"content": "no id"}]}',
        '{"entries": "all of them"}',
    ])
    def test_malformed(self, raw):
        with pytest.raises(MalformedImportError):
            parse_backup(raw)

    def test_envelope_json_omits_absent_parts(self):
        assert BackupEnvelope(settings=Settings()).to_json().keys() == {"settings"}

    def test_duplicate_ids_rejected(self):
        raw = json.dumps({"entries": [
            {"id": "1", "date": "2025-06-01T09:00:00.000Z", "content": "a"},
            {"id": "1", "date": "2025-06-02T09:00:00.000Z", "content": "b"},
        ]})
        with pytest.raises(MalformedImportError):
            parse_backup(raw)

    def test_null_extra_fields_survive_export(self):
        entry = Entry.model_validate(
            {"id": "1", "date": "2025-06-01T09:00:00.000Z", "content": "x", "tags": None}
        )
        data = BackupEnvelope(entries=[entry]).to_json()
        assert data["entries"][0]["tags"] is None
        assert "settings" not in data
        assert "exportDate" not in data

        restored = parse_backup(json.dumps(data))
        assert restored.entries[0].model_dump(mode="json")["tags"] is None


class TestDuplicateIds:
    """Test duplicate id detection."""

    def test_reports_each_duplicate_once(self):
        entries = [
            Entry(id=entry_id, date="2025-06-01T09:00:00.000Z")
            for entry_id in ["a", "b", "a", "c", "a", "b"]
        ]
        assert duplicate_ids(entries) == ["a", "b"]

    def test_unique_ids(self):
        assert duplicate_ids([Entry(id="a", date="2025-06-01T09:00:00.000Z")]) == []
