"""
SQLAlchemy database models for MirrorHistory.

One ``events`` table is the spine of the journal. Every domain record
(transaction, location, mood, ...) belongs to exactly one Event, and the
engine correlates across domains through event timestamps.
"""

import datetime as dt
import enum
import uuid
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [e.value for e in enum_cls]


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored and returned in UTC.

    SQLite drops tzinfo on the way in and returns naive values, so bound
    values are normalised to UTC and results get UTC attached.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class EventType(str, enum.Enum):
    """Kind of journal event."""

    MONEY_TRANSACTION = "money_transaction"
    SUBSCRIPTION = "subscription"
    PRICE_INCREASE = "price_increase"
    REFUND_PENDING = "refund_pending"
    ANOMALY = "anomaly"
    USER_RULE = "user_rule"
    ACTION_DRAFT = "action_draft"
    REMINDER = "reminder"
    NOTE = "note"
    VOICE_MEMO = "voice_memo"
    THOUGHT = "thought"
    DECISION = "decision"
    OBSERVATION = "observation"
    LOCATION = "location"
    CALENDAR_EVENT = "calendar_event"
    HEALTH_ENTRY = "health_entry"
    MOOD = "mood"
    AI_DIGEST = "ai_digest"
    PHOTO = "photo"
    VIDEO = "video"
    INCONSISTENCY = "inconsistency"
    CONFRONTATION = "confrontation"


# Event types whose payload is a Note row
NOTE_EVENT_TYPES = frozenset(
    {EventType.NOTE, EventType.THOUGHT, EventType.DECISION, EventType.OBSERVATION}
)


class Classification(str, enum.Enum):
    """Privacy classification of an event."""

    LOCAL_PRIVATE = "local_private"
    LOCAL_SENSITIVE = "local_sensitive"


class HealthMetricType(str, enum.Enum):
    STEPS = "steps"
    HEART_RATE = "heart_rate"
    SLEEP_HOURS = "sleep_hours"
    WORKOUT = "workout"
    WEIGHT = "weight"


class ConfrontationPeriod(str, enum.Enum):
    """Scope a batch of confrontations was generated for."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ConfrontationCategory(str, enum.Enum):
    CORRELATION = "correlation"
    TREND = "trend"
    ANOMALY = "anomaly"


class InconsistencyType(str, enum.Enum):
    """Kind of contradiction found in a single day."""

    LOCATION_MISMATCH = "location_mismatch"  # Calendar says X, location says Y
    SCHEDULE_CONFLICT = "schedule_conflict"  # Overlapping calendar events
    MOOD_BEHAVIOR_DISCONNECT = "mood_behavior_disconnect"
    PATTERN_BREAK = "pattern_break"  # Regular routine disrupted
    SPENDING_MOOD_CORRELATION = "spending_mood_correlation"
    TIME_GAP = "time_gap"  # Hours with no data
    VISUAL_MOOD_MISMATCH = "visual_mood_mismatch"  # Photo contradicts mood


class Event(Base):
    """A single timestamped journal entry; the owner of one domain record."""

    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    type: Mapped[EventType] = mapped_column(
        Enum(EventType, native_enum=False, values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    details: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    classification: Mapped[Classification] = mapped_column(
        Enum(Classification, native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=Classification.LOCAL_PRIVATE,
    )
    # Dedup key for importers; unique when present
    content_hash: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, unique=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utc_now
    )

    __table_args__ = (Index("idx_events_type_timestamp", "type", "timestamp"),)

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, type={self.type.value}, timestamp={self.timestamp})>"


class _EventOwned:
    """Columns shared by every domain record."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )


class MoneyTransaction(_EventOwned, Base):
    """A bank or card transaction. Negative amounts are spending."""

    __tablename__ = "money_transactions"

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    merchant: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    account: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="csv_import")

    def __repr__(self) -> str:
        return f"<MoneyTransaction(merchant={self.merchant!r}, amount={self.amount})>"


class Location(_EventOwned, Base):
    __tablename__ = "locations"

    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="manual")

    def __repr__(self) -> str:
        return f"<Location(address={self.address!r}, timestamp={self.timestamp})>"


class CalendarEvent(_EventOwned, Base):
    __tablename__ = "calendar_events"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<CalendarEvent(title={self.title!r}, start_time={self.start_time})>"


class HealthEntry(_EventOwned, Base):
    __tablename__ = "health_entries"

    metric_type: Mapped[HealthMetricType] = mapped_column(
        Enum(HealthMetricType, native_enum=False, values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    value: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="manual")

    def __repr__(self) -> str:
        return f"<HealthEntry(metric_type={self.metric_type.value}, value={self.value})>"


class MoodEntry(_EventOwned, Base):
    """Self-reported mood, scored 1 (worst) to 5 (best)."""

    __tablename__ = "mood_entries"

    score: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<MoodEntry(score={self.score}, timestamp={self.timestamp})>"


class Note(_EventOwned, Base):
    __tablename__ = "notes"

    content: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="manual")
    tags: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utc_now
    )


class VoiceMemo(_EventOwned, Base):
    __tablename__ = "voice_memos"

    transcript: Mapped[str] = mapped_column(Text, nullable=False, default="")
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    file_path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="api")
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utc_now
    )


class Photo(_EventOwned, Base):
    __tablename__ = "photos"

    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    caption: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="import")
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utc_now
    )

    analysis: Mapped[Optional["PhotoAnalysis"]] = relationship(
        back_populates="photo", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Photo(file_path={self.file_path!r})>"


class PhotoAnalysis(Base):
    """Vision-model output for a photo.

    ``tags`` and ``mood_indicators`` hold the raw JSON text the model
    produced and are parsed by ``mirrorhistory.visual.metrics``.
    """

    __tablename__ = "photo_analyses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    photo_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("photos.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    detected_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    mood_indicators: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    people_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    model: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    analyzed_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utc_now
    )

    photo: Mapped["Photo"] = relationship(back_populates="analysis")


class Video(_EventOwned, Base):
    __tablename__ = "videos"

    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    frame_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="import")
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utc_now
    )

    frames: Mapped[list["VideoFrame"]] = relationship(
        back_populates="video",
        cascade="all, delete-orphan",
        order_by="VideoFrame.timestamp_seconds",
    )

    def __repr__(self) -> str:
        return f"<Video(file_path={self.file_path!r}, frames={self.frame_count})>"


class VideoFrame(Base):
    __tablename__ = "video_frames"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    video_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("videos.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    frame_path: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    video: Mapped["Video"] = relationship(back_populates="frames")


class Confrontation(Base):
    """An uncomfortable cross-domain finding for one period scope."""

    __tablename__ = "confrontations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    period: Mapped[ConfrontationPeriod] = mapped_column(
        Enum(ConfrontationPeriod, native_enum=False, values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    period_start: Mapped[dt.date] = mapped_column(Date, nullable=False)
    period_end: Mapped[dt.date] = mapped_column(Date, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    insight: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    data_points: Mapped[list[dict[str, str]]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    related_event_ids: Mapped[list[str]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    category: Mapped[ConfrontationCategory] = mapped_column(
        Enum(ConfrontationCategory, native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    generated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utc_now
    )

    def __repr__(self) -> str:
        return f"<Confrontation(title={self.title!r}, severity={self.severity})>"


class Inconsistency(Base):
    """A contradiction detected within a single UTC day."""

    __tablename__ = "inconsistencies"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    type: Mapped[InconsistencyType] = mapped_column(
        Enum(InconsistencyType, native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    severity: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_event_ids: Mapped[list[str]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    suggested_question: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    detected_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utc_now
    )

    def __repr__(self) -> str:
        return f"<Inconsistency(type={self.type.value}, date={self.date})>"
