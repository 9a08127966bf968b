"""
Visual memory metrics.

Photo analyses carry the vision model's raw JSON output (``tags`` and
``mood_indicators``). Everything here parses that text leniently: malformed
input yields ``None`` or an empty list, never an exception.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from mirrorhistory.models.db import MoodEntry, Photo, Video
from mirrorhistory.models.views import VisualMetrics, VisualMoodMismatch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoodRange:
    min: float
    max: float

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


# Self-reported mood (1-5) expected for each visual tone
TONE_EXPECTED_MOOD: dict[str, MoodRange] = {
    "joyful": MoodRange(4, 5),
    "energetic": MoodRange(3.5, 5),
    "calm": MoodRange(3, 4),
    "neutral": MoodRange(2.5, 3.5),
    "tense": MoodRange(1, 2.5),
    "melancholic": MoodRange(1, 2),
}

MIN_TONE_CONFIDENCE = 0.5
MISMATCH_TOLERANCE = 0.5
MAX_MISMATCH_SEVERITY = 0.95


def _load_json(raw: Optional[str]) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError):
        logger.debug(f"Ignoring malformed analysis JSON: {raw[:80]!r}")
        return None


def parse_mood_indicators(raw: Optional[str]) -> Optional[dict[str, Any]]:
    """Parse ``mood_indicators`` into a dict, or None if it is not a JSON object."""
    value = _load_json(raw)
    return value if isinstance(value, dict) else None


def parse_tags(raw: Optional[str]) -> List[str]:
    """Parse ``tags`` into a list of strings; anything else becomes []."""
    value = _load_json(raw)
    if not isinstance(value, list):
        return []
    return [str(tag) for tag in value]


def photo_tone(photo: Photo) -> Optional[str]:
    """Visual tone reported for a photo, if its analysis has one."""
    if photo.analysis is None:
        return None
    indicators = parse_mood_indicators(photo.analysis.mood_indicators)
    if not indicators:
        return None
    tone = indicators.get("tone")
    return tone if isinstance(tone, str) and tone else None


def summarize_period(photos: Iterable[Photo], videos: Iterable[Video]) -> VisualMetrics:
    """
    Aggregate visual metrics for the photos and videos of a period.

    Args:
        photos: Photos in the period, with analyses loaded
        videos: Videos in the period

    Returns:
        VisualMetrics with counts, tone distribution, tags and people average
    """
    photos = list(photos)
    mood_distribution: Counter[str] = Counter()
    tags: dict[str, None] = {}
    people_total = 0
    people_samples = 0

    for photo in photos:
        if photo.analysis is None:
            continue
        tone = photo_tone(photo)
        if tone:
            mood_distribution[tone] += 1
        for tag in parse_tags(photo.analysis.tags):
            tags.setdefault(tag, None)
        if photo.analysis.people_count is not None:
            people_total += photo.analysis.people_count
            people_samples += 1

    dominant_mood = "neutral"
    max_count = 0
    for tone, count in mood_distribution.items():
        if count > max_count:
            dominant_mood = tone
            max_count = count

    return VisualMetrics(
        photo_count=len(photos),
        video_count=len(list(videos)),
        dominant_mood=dominant_mood,
        avg_people_count=round(people_total / people_samples, 1) if people_samples else 0.0,
        unique_tags=list(tags),
        mood_distribution=dict(mood_distribution),
    )


def describe_visual_shift(before: VisualMetrics, after: VisualMetrics) -> Optional[str]:
    """Plain-text narrative of how the visual record changed between periods."""
    parts: List[str] = []
    if before.photo_count > 0 or after.photo_count > 0:
        if before.photo_count != after.photo_count:
            direction = "more" if after.photo_count > before.photo_count else "fewer"
            parts.append(
                f"You captured {direction} visual memories "
                f"({before.photo_count} → {after.photo_count})."
            )
        if before.dominant_mood != after.dominant_mood:
            parts.append(
                f"The visual mood shifted from {before.dominant_mood} "
                f"to {after.dominant_mood}."
            )
    return " ".join(parts) or None


def detect_visual_mood_mismatches(
    photos: Iterable[Photo], moods: Iterable[MoodEntry]
) -> List[VisualMoodMismatch]:
    """
    Find photos whose visual tone contradicts the day's reported mood.

    A photo counts when its tone has confidence >= 0.5 and the day's average
    mood lies outside the tone's expected range widened by 0.5 on each side.
    """
    scores = [m.score for m in moods]
    photos = list(photos)
    if not photos or not scores:
        return []
    avg_mood = sum(scores) / len(scores)

    results: List[VisualMoodMismatch] = []
    for photo in photos:
        if photo.analysis is None:
            continue
        indicators = parse_mood_indicators(photo.analysis.mood_indicators)
        if not indicators:
            continue
        tone = indicators.get("tone")
        confidence = indicators.get("confidence")
        if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
            continue
        if not isinstance(tone, str) or confidence < MIN_TONE_CONFIDENCE:
            continue
        expected = TONE_EXPECTED_MOOD.get(tone)
        if expected is None:
            continue

        contradicts = (
            avg_mood < expected.min - MISMATCH_TOLERANCE
            or avg_mood > expected.max + MISMATCH_TOLERANCE
        )
        if not contradicts:
            continue

        direction = (
            "You reported feeling better than you looked."
            if avg_mood > expected.max
            else "You reported feeling worse than you looked."
        )
        severity = min(
            0.5 + confidence * 0.3 + abs(avg_mood - expected.midpoint) * 0.1,
            MAX_MISMATCH_SEVERITY,
        )
        results.append(
            VisualMoodMismatch(
                photo_event_id=photo.event_id,
                photo_path=photo.file_path,
                tone=tone,
                confidence=float(confidence),
                reported_mood=avg_mood,
                description=(
                    f"Photo shows {tone} expression (confidence: {confidence * 100:.0f}%), "
                    f"but reported mood was {avg_mood:.1f}/5. {direction}"
                ),
                severity=severity,
            )
        )
    return results
