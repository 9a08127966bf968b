"""
API schemas for MirrorHistory.

Pydantic models for request/response validation.
"""

from datetime import date, datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator
from sqlalchemy import inspect

from mirrorhistory.models.db import (
    ConfrontationCategory,
    ConfrontationPeriod,
    EventType,
    HealthMetricType,
    InconsistencyType,
)
from mirrorhistory.models.views import EnrichedEvent, ForensicContext, MomentType

# ===== Domain records =====


class TransactionResponse(BaseModel):
    event_id: UUID
    date: date
    merchant: Optional[str] = None
    amount: float
    currency: str
    category: Optional[str] = None

    class Config:
        from_attributes = True


class LocationResponse(BaseModel):
    event_id: UUID
    lat: float
    lng: float
    address: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class CalendarEventResponse(BaseModel):
    event_id: UUID
    title: str
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None

    class Config:
        from_attributes = True


class HealthEntryResponse(BaseModel):
    event_id: UUID
    metric_type: HealthMetricType
    value: float
    unit: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class MoodResponse(BaseModel):
    event_id: UUID
    score: int
    note: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class NoteResponse(BaseModel):
    event_id: UUID
    content: str
    source: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class VoiceMemoResponse(BaseModel):
    event_id: UUID
    transcript: Optional[str] = None
    duration_seconds: Optional[float] = None

    class Config:
        from_attributes = True


class EventResponse(BaseModel):
    """An event with its domain record flattened into ``payload``."""

    id: UUID
    type: EventType
    timestamp: datetime
    summary: str
    payload: Optional[dict[str, Any]] = None

    @classmethod
    def from_enriched(cls, enriched: EnrichedEvent) -> "EventResponse":
        payload = None
        if enriched.payload is not None:
            columns = inspect(enriched.payload).mapper.column_attrs
            payload = {c.key: getattr(enriched.payload, c.key) for c in columns}
        return cls(
            id=enriched.id,
            type=enriched.type,
            timestamp=enriched.timestamp,
            summary=enriched.summary,
            payload=payload,
        )


# ===== Re-do =====


class MomentSnapshotResponse(BaseModel):
    timestamp: datetime
    location: Optional[LocationResponse] = None
    mood: Optional[MoodResponse] = None
    transactions: list[TransactionResponse] = Field(default_factory=list)
    calendar_events: list[CalendarEventResponse] = Field(default_factory=list)
    health_entries: list[HealthEntryResponse] = Field(default_factory=list)
    notes: list[NoteResponse] = Field(default_factory=list)
    voice_memos: list[VoiceMemoResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class HourlySliceResponse(BaseModel):
    hour: int
    label: str  # "HH:00"
    snapshot: MomentSnapshotResponse
    event_count: int
    dominant_type: Optional[EventType] = None

    class Config:
        from_attributes = True


class MoodPointResponse(BaseModel):
    hour: int
    score: int

    class Config:
        from_attributes = True


class RedoDayResponse(BaseModel):
    date: date
    slices: list[HourlySliceResponse]
    mood_arc: list[MoodPointResponse]
    total_events: int

    class Config:
        from_attributes = True


# ===== Forensic =====


class SimilarMomentResponse(BaseModel):
    event_id: UUID
    date: date
    similarity: float
    summary: str

    class Config:
        from_attributes = True


class SimilarPhotoResponse(BaseModel):
    path: str
    date: date
    similarity: float

    class Config:
        from_attributes = True


class VisualComparisonResponse(BaseModel):
    target_photo_path: str
    similar_photo_paths: list[SimilarPhotoResponse]

    class Config:
        from_attributes = True


class ForensicContextResponse(BaseModel):
    event: EventResponse
    before: list[EventResponse]
    after: list[EventResponse]
    cross_domain: MomentSnapshotResponse
    similar_moments: list[SimilarMomentResponse]
    suggested_questions: list[str]
    visual_comparison: Optional[VisualComparisonResponse] = None

    @classmethod
    def from_context(cls, context: ForensicContext) -> "ForensicContextResponse":
        return cls(
            event=EventResponse.from_enriched(context.event),
            before=[EventResponse.from_enriched(e) for e in context.before],
            after=[EventResponse.from_enriched(e) for e in context.after],
            cross_domain=MomentSnapshotResponse.model_validate(context.cross_domain),
            similar_moments=[
                SimilarMomentResponse.model_validate(m) for m in context.similar_moments
            ],
            suggested_questions=context.suggested_questions,
            visual_comparison=(
                VisualComparisonResponse.model_validate(context.visual_comparison)
                if context.visual_comparison
                else None
            ),
        )


# ===== Moments =====


class DetectedMomentResponse(BaseModel):
    id: str  # "{kind}_{YYYY-MM-DD}"
    type: MomentType
    date: date
    title: str
    description: str
    icon: str
    score: float
    related_event_ids: list[str]

    class Config:
        from_attributes = True


# ===== Confrontations =====


class ConfrontationGenerateRequest(BaseModel):
    period: Literal["weekly", "monthly"] = "weekly"


class ConfrontationResponse(BaseModel):
    id: UUID
    period: ConfrontationPeriod
    period_start: date
    period_end: date
    title: str
    insight: str
    severity: float
    category: ConfrontationCategory
    data_points: list[dict[str, str]] = Field(default_factory=list)
    related_event_ids: list[str] = Field(default_factory=list)
    generated_at: datetime

    class Config:
        from_attributes = True


class ConfrontationGenerateResponse(BaseModel):
    generated: int
    confrontations: list[ConfrontationResponse]

    class Config:
        from_attributes = True


# ===== Comparison =====


class CompareRequest(BaseModel):
    period1_start: date
    period1_end: date
    period2_start: date
    period2_end: date

    @model_validator(mode="after")
    def check_ranges(self) -> "CompareRequest":
        if self.period1_end < self.period1_start or self.period2_end < self.period2_start:
            raise ValueError("period end must not be before period start")
        return self


class MoodMetricsResponse(BaseModel):
    avg: float
    min: float
    max: float
    count: int

    class Config:
        from_attributes = True


class MerchantTotalResponse(BaseModel):
    name: str
    total: float

    class Config:
        from_attributes = True


class SpendingMetricsResponse(BaseModel):
    total: float
    avg_daily: float
    top_merchants: list[MerchantTotalResponse]

    class Config:
        from_attributes = True


class HealthMetricsResponse(BaseModel):
    avg_steps: float
    avg_sleep: float
    workout_count: int

    class Config:
        from_attributes = True


class CalendarMetricsResponse(BaseModel):
    event_count: int
    avg_per_day: float

    class Config:
        from_attributes = True


class NoteMetricsResponse(BaseModel):
    count: int
    voice_count: int

    class Config:
        from_attributes = True


class LocationMetricsResponse(BaseModel):
    unique_places: int

    class Config:
        from_attributes = True


class VisualMetricsResponse(BaseModel):
    photo_count: int
    video_count: int
    dominant_mood: str
    avg_people_count: float
    unique_tags: list[str]
    mood_distribution: dict[str, int]

    class Config:
        from_attributes = True


class PeriodMetricsResponse(BaseModel):
    mood: MoodMetricsResponse
    spending: SpendingMetricsResponse
    health: HealthMetricsResponse
    calendar: CalendarMetricsResponse
    notes: NoteMetricsResponse
    locations: LocationMetricsResponse
    visual: VisualMetricsResponse

    class Config:
        from_attributes = True


class PeriodSummaryResponse(BaseModel):
    start: date
    end: date
    metrics: PeriodMetricsResponse

    class Config:
        from_attributes = True


class MetricChangeResponse(BaseModel):
    domain: str
    metric: str
    period1_value: float
    period2_value: float
    change_pct: float
    direction: Literal["up", "down", "stable"]

    class Config:
        from_attributes = True


class ComparisonResponse(BaseModel):
    period1: PeriodSummaryResponse
    period2: PeriodSummaryResponse
    changes: list[MetricChangeResponse]
    narrative: Optional[str] = None

    class Config:
        from_attributes = True


# ===== Inconsistencies =====


class ScanRequest(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_range(self) -> "ScanRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class InconsistencyResponse(BaseModel):
    id: UUID
    type: InconsistencyType
    severity: float
    title: str
    description: str
    evidence_event_ids: list[str] = Field(default_factory=list)
    suggested_question: str
    date: date
    detected_at: datetime

    class Config:
        from_attributes = True


class ScanResponse(BaseModel):
    scanned_days: int
    found: list[InconsistencyResponse]

    class Config:
        from_attributes = True
