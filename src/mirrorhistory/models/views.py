"""
Derived, never-persisted views produced by the correlation engines.

Engines return these dataclasses; the API layer converts them to pydantic
response models.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union
from uuid import UUID

from mirrorhistory.models.db import (
    CalendarEvent,
    Confrontation,
    ConfrontationCategory,
    Event,
    EventType,
    HealthEntry,
    Inconsistency,
    InconsistencyType,
    Location,
    MoneyTransaction,
    MoodEntry,
    Note,
    Photo,
    VoiceMemo,
    Video,
)

Payload = Union[
    MoneyTransaction,
    Location,
    CalendarEvent,
    HealthEntry,
    MoodEntry,
    Note,
    VoiceMemo,
    Photo,
    Video,
]


@dataclass
class EnrichedEvent:
    """An event together with its domain record, if one exists.

    The payload kind is decided by ``event.type``; the typed accessors return
    ``None`` unless the payload is of that kind.
    """

    event: Event
    payload: Optional[Payload] = None

    @property
    def id(self) -> UUID:
        return self.event.id

    @property
    def type(self) -> EventType:
        return self.event.type

    @property
    def timestamp(self) -> datetime:
        return self.event.timestamp

    @property
    def summary(self) -> str:
        return self.event.summary

    def _payload_of(self, kind: type) -> Optional[Payload]:
        return self.payload if isinstance(self.payload, kind) else None

    @property
    def transaction(self) -> Optional[MoneyTransaction]:
        return self._payload_of(MoneyTransaction)

    @property
    def location(self) -> Optional[Location]:
        return self._payload_of(Location)

    @property
    def calendar_event(self) -> Optional[CalendarEvent]:
        return self._payload_of(CalendarEvent)

    @property
    def health_entry(self) -> Optional[HealthEntry]:
        return self._payload_of(HealthEntry)

    @property
    def mood(self) -> Optional[MoodEntry]:
        return self._payload_of(MoodEntry)

    @property
    def note(self) -> Optional[Note]:
        return self._payload_of(Note)

    @property
    def voice_memo(self) -> Optional[VoiceMemo]:
        return self._payload_of(VoiceMemo)

    @property
    def photo(self) -> Optional[Photo]:
        return self._payload_of(Photo)

    @property
    def video(self) -> Optional[Video]:
        return self._payload_of(Video)


# ── Re-do ──


@dataclass
class MomentSnapshot:
    """Every data stream overlaid on one point in time."""

    timestamp: datetime
    location: Optional[Location] = None
    mood: Optional[MoodEntry] = None
    transactions: list[MoneyTransaction] = field(default_factory=list)
    calendar_events: list[CalendarEvent] = field(default_factory=list)
    health_entries: list[HealthEntry] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)
    voice_memos: list[VoiceMemo] = field(default_factory=list)


@dataclass
class HourlySlice:
    hour: int
    label: str
    snapshot: MomentSnapshot
    event_count: int
    dominant_type: Optional[EventType]


@dataclass
class MoodPoint:
    hour: int
    score: int


@dataclass
class RedoDay:
    """A full UTC day reconstructed as 24 hourly slices."""

    date: date
    slices: list[HourlySlice]
    mood_arc: list[MoodPoint]
    total_events: int


# ── Forensic ──


@dataclass
class SimilarMoment:
    event_id: UUID
    date: date
    similarity: float
    summary: str


@dataclass
class SimilarPhoto:
    path: str
    date: date
    similarity: float


@dataclass
class VisualComparison:
    target_photo_path: str
    similar_photo_paths: list[SimilarPhoto]


@dataclass
class ForensicContext:
    """Everything around one event: neighbours, cross-domain state, echoes."""

    event: EnrichedEvent
    before: list[EnrichedEvent]
    after: list[EnrichedEvent]
    cross_domain: MomentSnapshot
    similar_moments: list[SimilarMoment]
    suggested_questions: list[str]
    visual_comparison: Optional[VisualComparison] = None


# ── Moments ──


class MomentType(str, enum.Enum):
    MOOD_DROP = "mood_drop"
    MOOD_SPIKE = "mood_spike"
    STRESSFUL_DAY = "stressful_day"
    ACTIVE_HAPPY = "active_happy"
    DISCOVERY = "discovery"
    PRODUCTIVE_DAY = "productive_day"
    QUIET_DAY = "quiet_day"


@dataclass
class DetectedMoment:
    id: str
    type: MomentType
    date: date
    title: str
    description: str
    icon: str
    score: float
    related_event_ids: list[str]


# ── Confrontations ──


@dataclass
class DataPoint:
    label: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"label": self.label, "value": self.value}


@dataclass
class ConfrontationFinding:
    """A confrontation before it is persisted."""

    title: str
    insight: str
    severity: float
    category: ConfrontationCategory
    data_points: list[DataPoint] = field(default_factory=list)
    related_event_ids: list[str] = field(default_factory=list)


@dataclass
class ConfrontationResult:
    generated: int
    confrontations: list[Confrontation]


# ── Comparison ──


@dataclass
class MoodMetrics:
    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0
    count: int = 0


@dataclass
class MerchantTotal:
    name: str
    total: float


@dataclass
class SpendingMetrics:
    total: float = 0.0
    avg_daily: float = 0.0
    top_merchants: list[MerchantTotal] = field(default_factory=list)


@dataclass
class HealthMetrics:
    avg_steps: float = 0.0
    avg_sleep: float = 0.0
    workout_count: int = 0


@dataclass
class CalendarMetrics:
    event_count: int = 0
    avg_per_day: float = 0.0


@dataclass
class NoteMetrics:
    count: int = 0
    voice_count: int = 0


@dataclass
class LocationMetrics:
    unique_places: int = 0


@dataclass
class VisualMetrics:
    photo_count: int = 0
    video_count: int = 0
    dominant_mood: str = "neutral"
    avg_people_count: float = 0.0
    unique_tags: list[str] = field(default_factory=list)
    mood_distribution: dict[str, int] = field(default_factory=dict)


@dataclass
class PeriodMetrics:
    mood: MoodMetrics
    spending: SpendingMetrics
    health: HealthMetrics
    calendar: CalendarMetrics
    notes: NoteMetrics
    locations: LocationMetrics
    visual: VisualMetrics


@dataclass
class MetricChange:
    domain: str
    metric: str
    period1_value: float
    period2_value: float
    change_pct: float
    direction: str  # up | down | stable


@dataclass
class PeriodSummary:
    start: date
    end: date
    metrics: PeriodMetrics


@dataclass
class ComparisonResult:
    period1: PeriodSummary
    period2: PeriodSummary
    changes: list[MetricChange]
    narrative: Optional[str] = None


# ── Inconsistencies ──


@dataclass
class InconsistencyFinding:
    """An inconsistency before it is persisted."""

    type: InconsistencyType
    severity: float
    title: str
    description: str
    date: date
    evidence_event_ids: list[str] = field(default_factory=list)
    suggested_question: str = ""


@dataclass
class VisualMoodMismatch:
    photo_event_id: UUID
    photo_path: str
    tone: str
    confidence: float
    reported_mood: float
    description: str
    severity: float


@dataclass
class InconsistencyScanResult:
    scanned_days: int
    found: list[Inconsistency]
