"""
Scheduler - review processing for card records

Pure scheduling and state updates for a card record (no database calls).

Main workflow:
1. Load card (caller's responsibility)
2. Validate the grade
3. Apply the repetition engine to the card's memory state
4. Advance the lifecycle stage
5. Return updated card + event data dict

Persisting the card and logging the event are left to the caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple, Union

from flashdeck.schemas import Flashcard
from flashdeck.sm17 import grades, memory_state, repetition
from flashdeck.sm17.constants import CardStage, DEFAULT_PARAMS, Grade, GradeLabel, SchedulerParams
from flashdeck.sm17.errors import UnmappedGrade


def process_review(
    card: Flashcard,
    grade: Union[int, str, Grade, GradeLabel],
    timestamp: Optional[datetime] = None,
    params: SchedulerParams = DEFAULT_PARAMS,
    deck_id: Optional[str] = None
) -> Tuple[Flashcard, dict]:
    """
    Process a review and return the updated card + event data.

    The input card is not modified.

    Args:
        card: Flashcard being reviewed
        grade: Numeric grade or qualitative label
        timestamp: Review timestamp (defaults to now)
        params: Algorithm calibration
        deck_id: Owning deck, copied into the event data

    Returns:
        Tuple of (updated_card, event_data_dict)
        event_data_dict is ready to pass to database.log_review_event()

    Raises:
        InvalidGrade: grade is out of range or an unknown label
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)

    numeric_grade = grades.coerce_grade(grade)
    try:
        label = grades.grade_to_label(numeric_grade).value
    except UnmappedGrade:
        label = None

    before = card.memory_state()
    details = repetition.repetition_details(before, numeric_grade, params)
    after = repetition.state_from_details(before, details)

    stage_before = CardStage(card.stage)
    stage_after = memory_state.next_stage(stage_before, numeric_grade, params.passing_grade)

    updated = card.with_memory_state(after, stage_after)

    event_data = {
        'deck_id': deck_id,
        'card_id': card.id,
        'timestamp': timestamp,
        'grade': int(numeric_grade),
        'grade_label': label,
        'stage_before': stage_before.value,
        'stage_after': stage_after.value,
        'interval_before': before.last_interval_days,
        'stability_before': before.stability,
        'difficulty_before': before.difficulty,
        'lapses_before': before.lapses,
        'theory_retrievability': details['theory_retrievability'],
        'retrievability': details['retrievability'],
        'interval_after': after.last_interval_days,
        'stability_after': after.stability,
        'difficulty_after': after.difficulty,
        'lapses_after': after.lapses,
        'session_id': None,  # Will be set by caller if needed
    }

    return updated, event_data
