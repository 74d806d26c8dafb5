"""
Mood statistics and calendar grouping over an entries collection.

All functions are pure: they never reorder or modify the entries they
are given. Entry dates are interpreted in the local timezone.
"""

from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from .schemas import Entry, Mood, MoodStat, MoodSummary


RECENT_LIMIT = 10


def _local_day(entry: Entry) -> Optional[date]:
    created = entry.created_at
    if created is None:
        return None
    if created.tzinfo is not None:
        created = created.astimezone()
    return created.date()


def mood_statistics(entries: List[Entry]) -> List[MoodStat]:
    """Count and percentage per mood, in display order."""
    counts = Counter(entry.mood for entry in entries)
    total = len(entries)

    return [
        MoodStat(
            mood=mood,
            label=mood.label,
            color=mood.color,
            emoji=mood.emoji,
            count=counts[mood],
            percentage=(counts[mood] / total * 100) if total else 0.0
        )
        for mood in Mood
    ]


def top_mood(entries: List[Entry]) -> Optional[Mood]:
    """Most frequent mood; ties go to the mood listed first."""
    if not entries:
        return None
    counts = Counter(entry.mood for entry in entries)
    return max(Mood, key=lambda mood: (counts[mood], -list(Mood).index(mood)))


def start_of_week(today: date) -> date:
    """The most recent Sunday on or before ``today``."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


def count_this_week(entries: Iterable[Entry], today: Optional[date] = None) -> int:
    """Number of entries dated on or after the start of the current week."""
    week_start = start_of_week(today or date.today())
    return sum(1 for entry in entries if (_local_day(entry) or date.min) >= week_start)


def recent_moods(entries: List[Entry], limit: int = RECENT_LIMIT) -> List[Entry]:
    return entries[:limit]


def group_by_day(entries: Iterable[Entry], year: int, month: int) -> Dict[str, List[Entry]]:
    """
    Group the entries of one month by day.

    Args:
        entries: Entries in stored order
        year: Calendar year
        month: Calendar month (1-12)

    Returns:
        Mapping of ISO day to that day's entries, stored order kept
    """
    days: Dict[str, List[Entry]] = {}
    for entry in entries:
        day = _local_day(entry)
        if day is None or day.year != year or day.month != month:
            continue
        days.setdefault(day.isoformat(), []).append(entry)
    return days


def filter_entries(
    entries: Iterable[Entry],
    query: Optional[str] = None,
    mood: Optional[Mood] = None
) -> List[Entry]:
    """Entries whose content contains ``query`` (case-insensitive) and match ``mood``."""
    needle = query.lower() if query else None
    return [
        entry for entry in entries
        if (needle is None or needle in entry.content.lower())
        and (mood is None or entry.mood == mood)
    ]


def summarize(entries: List[Entry], today: Optional[date] = None) -> MoodSummary:
    """Build the dashboard summary for an entries collection."""
    return MoodSummary(
        total_entries=len(entries),
        this_week=count_this_week(entries, today),
        top_mood=top_mood(entries),
        moods=mood_statistics(entries),
        recent=recent_moods(entries)
    )
