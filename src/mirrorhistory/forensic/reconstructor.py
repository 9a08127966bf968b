"""
Forensic zoom: everything around a single event.

Given an event id, collect the neighbouring events before and after it, the
cross-domain snapshot at that moment, historically similar moments and a set
of follow-up questions.
"""

import logging
import uuid
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from mirrorhistory.config import settings
from mirrorhistory.db.repositories import EventRepository, PhotoRepository
from mirrorhistory.exceptions import EventNotFoundError
from mirrorhistory.forensic.questions import generate_questions
from mirrorhistory.models.views import (
    EnrichedEvent,
    ForensicContext,
    SimilarMoment,
    SimilarPhoto,
    VisualComparison,
)
from mirrorhistory.redo.snapshot import SnapshotBuilder
from mirrorhistory.utils.timeutils import as_utc

logger = logging.getLogger(__name__)

# Similarity scoring
BASE_SIMILARITY = 0.3
SAME_MERCHANT_BOOST = 0.4
SIMILAR_AMOUNT_BOOST = 0.1
AMOUNT_RATIO_RANGE = (0.8, 1.2)
SIMILAR_MOOD_BOOST = 0.3
MOOD_SCORE_TOLERANCE = 1
SAME_PLACE_BOOST = 0.4
PLACE_TOLERANCE_DEGREES = 0.005  # roughly 500m
SAME_TITLE_BOOST = 0.4
SAME_TIME_OF_DAY_BOOST = 0.1
HOUR_TOLERANCE = 2

# Number of similar moments whose photos are offered for comparison
VISUAL_COMPARISON_LIMIT = 3


def score_similarity(original: EnrichedEvent, candidate: EnrichedEvent) -> float:
    """
    Score how alike two events of the same type are.

    Starts from a base of 0.3 and adds a boost for each domain detail both
    events share. The result is capped at 1.0.
    """
    similarity = BASE_SIMILARITY

    orig_tx, cand_tx = original.transaction, candidate.transaction
    if orig_tx is not None and cand_tx is not None:
        if cand_tx.merchant == orig_tx.merchant:
            similarity += SAME_MERCHANT_BOOST
        ratio = abs(cand_tx.amount) / max(abs(orig_tx.amount), 0.01)
        low, high = AMOUNT_RATIO_RANGE
        if low <= ratio <= high:
            similarity += SIMILAR_AMOUNT_BOOST

    orig_mood, cand_mood = original.mood, candidate.mood
    if orig_mood is not None and cand_mood is not None:
        if abs(cand_mood.score - orig_mood.score) <= MOOD_SCORE_TOLERANCE:
            similarity += SIMILAR_MOOD_BOOST

    orig_loc, cand_loc = original.location, candidate.location
    if orig_loc is not None and cand_loc is not None:
        if (
            abs(cand_loc.lat - orig_loc.lat) < PLACE_TOLERANCE_DEGREES
            and abs(cand_loc.lng - orig_loc.lng) < PLACE_TOLERANCE_DEGREES
        ):
            similarity += SAME_PLACE_BOOST

    orig_cal, cand_cal = original.calendar_event, candidate.calendar_event
    if orig_cal is not None and cand_cal is not None:
        if cand_cal.title == orig_cal.title:
            similarity += SAME_TITLE_BOOST

    hour_diff = abs(as_utc(original.timestamp).hour - as_utc(candidate.timestamp).hour)
    if hour_diff <= HOUR_TOLERANCE:
        similarity += SAME_TIME_OF_DAY_BOOST

    return min(similarity, 1.0)


class ForensicReconstructor:
    """Builds forensic contexts for individual events."""

    def __init__(self, session: Session):
        self.session = session
        self.events = EventRepository(session)
        self.photos = PhotoRepository(session)
        self.snapshots = SnapshotBuilder(session)

    def get_context(
        self, event_id: uuid.UUID, window_minutes: Optional[int] = None
    ) -> ForensicContext:
        """
        Reconstruct the context around an event.

        Args:
            event_id: Event to examine
            window_minutes: Half-width of the neighbourhood (default from settings)

        Returns:
            ForensicContext for the event

        Raises:
            EventNotFoundError: If no event has this id
        """
        if window_minutes is None:
            window_minutes = settings.forensic_window_minutes

        target = self.events.get_enriched(event_id)
        if target is None:
            raise EventNotFoundError(event_id)

        center = as_utc(target.timestamp)
        delta = timedelta(minutes=window_minutes)

        before: List[EnrichedEvent] = []
        after: List[EnrichedEvent] = []
        for neighbour in self.events.get_enriched_events_in_window(
            center - delta, center + delta
        ):
            if neighbour.id == target.id:
                continue
            if as_utc(neighbour.timestamp) <= center:
                before.append(neighbour)
            else:
                after.append(neighbour)
        before.reverse()

        cross_domain = self.snapshots.build_snapshot(center, window_minutes)
        similar_moments = self.find_similar_moments(target, settings.similar_moment_limit)
        questions = generate_questions(target, before, after, cross_domain)

        logger.debug(
            f"Forensic context for {event_id}: {len(before)} before, {len(after)} after, "
            f"{len(similar_moments)} similar"
        )
        return ForensicContext(
            event=target,
            before=before,
            after=after,
            cross_domain=cross_domain,
            similar_moments=similar_moments,
            suggested_questions=questions,
            visual_comparison=self._visual_comparison(target, similar_moments),
        )

    def find_similar_moments(
        self, target: EnrichedEvent, limit: int = 5
    ) -> List[SimilarMoment]:
        """
        Find events of the same type on other UTC dates that resemble ``target``.

        Returns:
            At most ``limit`` moments scoring above the base similarity,
            highest first
        """
        target_date = as_utc(target.timestamp).date()
        results: List[SimilarMoment] = []

        for candidate_event in self.events.get_events_by_type(target.type):
            if candidate_event.id == target.id:
                continue
            candidate_date = as_utc(candidate_event.timestamp).date()
            if candidate_date == target_date:
                continue

            similarity = score_similarity(target, self.events.enrich(candidate_event))
            if similarity > BASE_SIMILARITY:
                results.append(
                    SimilarMoment(
                        event_id=candidate_event.id,
                        date=candidate_date,
                        similarity=similarity,
                        summary=candidate_event.summary,
                    )
                )

        results.sort(key=lambda moment: moment.similarity, reverse=True)
        return results[:limit]

    def _visual_comparison(
        self, target: EnrichedEvent, similar_moments: List[SimilarMoment]
    ) -> Optional[VisualComparison]:
        photo = target.photo
        if photo is None or not photo.file_path:
            return None

        similar_photos: List[SimilarPhoto] = []
        for moment in similar_moments[:VISUAL_COMPARISON_LIMIT]:
            first_photo = self.photos.get_first_on_date(moment.date)
            if first_photo is not None:
                similar_photos.append(
                    SimilarPhoto(
                        path=first_photo.file_path,
                        date=moment.date,
                        similarity=moment.similarity,
                    )
                )

        if not similar_photos:
            return None
        return VisualComparison(
            target_photo_path=photo.file_path, similar_photo_paths=similar_photos
        )
