"""
Follow-up questions for a forensic zoom.

Questions are produced by domain templates in a fixed order, exact
duplicates are dropped and only the first ``MAX_QUESTIONS`` are kept.
"""

from typing import List

from mirrorhistory.models.db import EventType
from mirrorhistory.models.views import EnrichedEvent, MomentSnapshot
from mirrorhistory.utils.timeutils import as_utc
from mirrorhistory.visual.metrics import photo_tone

MAX_QUESTIONS = 6
LOW_MOOD_SCORE = 2
HIGH_MOOD_SCORE = 4


def generate_questions(
    target: EnrichedEvent,
    before: List[EnrichedEvent],
    after: List[EnrichedEvent],
    cross_domain: MomentSnapshot,
) -> List[str]:
    """
    Build the "dig deeper" prompts for an event.

    Args:
        target: The event being examined, with its payload
        before: Neighbouring events at or before the target (nearest first)
        after: Neighbouring events after the target
        cross_domain: Snapshot of all streams around the target

    Returns:
        Up to six distinct questions, in generation order
    """
    questions: List[str] = []
    timestamp = as_utc(target.timestamp)
    time_label = timestamp.strftime("%H:%M")
    date_label = timestamp.date().isoformat()
    snapshot_mood = cross_domain.mood

    transaction = target.transaction
    if transaction is not None:
        merchant = transaction.merchant
        questions.append(
            f"What were you doing before spending ${abs(transaction.amount):.2f} at {merchant}?"
        )
        questions.append(f"How many times have you been to {merchant} this month?")
        if snapshot_mood is not None:
            questions.append(
                f"Your mood was {snapshot_mood.score}/5 when you spent at {merchant}. "
                "Is there a pattern?"
            )

    mood = target.mood
    if mood is not None:
        if mood.score <= LOW_MOOD_SCORE:
            questions.append(
                f"What happened before your mood dropped to {mood.score}/5 at {time_label}?"
            )
            if cross_domain.transactions:
                questions.append(
                    "You spent money around the same time your mood was low. "
                    "Emotional spending?"
                )
        if mood.score >= HIGH_MOOD_SCORE:
            questions.append(f"What made {time_label} a good moment? Can you recreate it?")

    location = target.location
    if location is not None:
        questions.append(f"What else happened at {location.address or 'this location'}?")
        questions.append("How often do you visit this place?")

    calendar_event = target.calendar_event
    if calendar_event is not None:
        questions.append(f'How did "{calendar_event.title}" affect the rest of your day?')
        if snapshot_mood is not None:
            questions.append(
                f'Your mood was {snapshot_mood.score}/5 during "{calendar_event.title}". Normal?'
            )

    if target.note is not None:
        questions.append(f"What prompted this note at {time_label}?")
    if target.voice_memo is not None:
        questions.append(f"What were you feeling when you recorded this at {time_label}?")

    photo = target.photo
    if photo is not None:
        questions.append(f"What was happening when this photo was taken at {time_label}?")
        tone = photo_tone(photo)
        if tone and snapshot_mood is not None:
            questions.append(
                f"The photo looks {tone}, but your mood was {snapshot_mood.score}/5. "
                "Which was real?"
            )

    if before and after:
        neighbour_types = {e.type for e in before} | {e.type for e in after}
        if EventType.MOOD in neighbour_types:
            questions.append("Did your mood change after this event?")

    if not before and time_label != "00:00":
        questions.append(
            f"There's no recorded activity before {time_label}. What were you doing?"
        )

    questions.append(f"What else was happening on {date_label} around {time_label}?")

    return list(dict.fromkeys(questions))[:MAX_QUESTIONS]
