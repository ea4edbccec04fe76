"""
Study flow - wiring the scheduler to its collaborators.

submit_answer():
1. Load the card from the deck store
2. Ask the evaluator for a label + feedback
3. Translate the label (fails before anything is written)
4. Apply the review (pure)
5. Append the attempt and the evaluator reply, save state, log the event

The evaluator is supplied by the caller; this module never talks to a
language model itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

from pymongo.collection import Collection
from sqlalchemy.exc import SQLAlchemyError

from flashdeck import deck_repo, scheduler
from flashdeck.logging_config import get_logger
from flashdeck.review_queue import (
    DEFAULT_SELECTION,
    DeckSummary,
    DueEntry,
    DueSelection,
    build_queue,
    review_items_from_cards,
    summarize_deck,
)
from flashdeck.schemas import Attempt, Author, ChatMessage, Flashcard
from flashdeck.sm17 import database, grades
from flashdeck.sm17.constants import DEFAULT_PARAMS, SchedulerParams
from flashdeck.sm17.errors import InvalidGrade

logger = get_logger(__name__)


@dataclass(frozen=True)
class Evaluation:
    """What the evaluator returns for one answer."""
    label: str
    feedback: str = ""


class Evaluator(Protocol):
    def __call__(self, expected_answer: str, user_answer: str) -> Evaluation:
        ...


@dataclass(frozen=True)
class StudyResult:
    """Outcome of one submitted answer."""
    card: Flashcard
    attempt: Attempt
    event: dict
    event_logged: bool = False


def submit_answer(
    deck_id: str,
    card_id: str,
    user_answer: str,
    evaluate: Evaluator,
    timestamp: Optional[datetime] = None,
    params: SchedulerParams = DEFAULT_PARAMS,
    session_id: Optional[str] = None,
    log_event: bool = True,
    collection: Optional[Collection] = None
) -> StudyResult:
    """
    Grade an answer and reschedule the card.

    Args:
        deck_id: Deck holding the card
        card_id: Card being answered
        user_answer: Learner's free-text answer
        evaluate: Callable(expected_answer, user_answer) -> Evaluation
        timestamp: Submission time (defaults to now)
        params: Algorithm calibration
        session_id: Optional study session id, stored on the event
        log_event: Write the review event to the SQL log
        collection: Override the shared deck collection

    The card (attempt, evaluator message, memory state, stage) is written in
    one atomic update. The review event is logged afterwards; a failure to
    log is reported through the logger and StudyResult.event_logged, and
    never undoes or repeats the card update.

    Returns:
        StudyResult with the updated card, the stored attempt and the event

    Raises:
        DeckNotFound / CardNotFound: unknown deck or card
        InvalidGrade: evaluator produced a label outside the vocabulary
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)

    card = deck_repo.get_flashcard(deck_id, card_id, collection)
    evaluation = evaluate(card.answer, user_answer)

    try:
        label = grades.parse_label(evaluation.label)
    except InvalidGrade:
        logger.warning(
            "Could not score answer for card %s in deck %s: evaluator returned %r",
            card_id, deck_id, evaluation.label
        )
        raise

    updated, event = scheduler.process_review(
        card, label, timestamp=timestamp, params=params, deck_id=deck_id
    )
    event['session_id'] = session_id

    attempt = Attempt(
        user_answer=user_answer,
        feedback=evaluation.feedback,
        grade=label,
        timestamp=timestamp,
    )

    message = None
    if evaluation.feedback:
        message = ChatMessage(timestamp=timestamp, text=evaluation.feedback, author=Author.AI)
    deck_repo.record_review(deck_id, updated, attempt, message, collection)

    event_logged = False
    if log_event:
        try:
            database.log_review_event(event)
            event_logged = True
        except (SQLAlchemyError, ValueError):
            logger.exception("Review of card %s in deck %s saved but not logged", card_id, deck_id)

    logger.info(
        "Reviewed card %s in deck %s: grade=%d stage=%s interval=%.2fd",
        card_id, deck_id, event['grade'], event['stage_after'], updated.last_interval_days
    )

    updated = updated.model_copy(update={"attempts": [*card.attempts, attempt]})
    return StudyResult(card=updated, attempt=attempt, event=event, event_logged=event_logged)


def get_review_queue(
    deck_id: str,
    now: Optional[datetime] = None,
    selection: DueSelection = DEFAULT_SELECTION,
    collection: Optional[Collection] = None
) -> list[DueEntry]:
    """
    Ordered review queue for a deck; each entry's item is a Flashcard.

    Raises:
        DeckNotFound: unknown deck
        MissingHistory: a reviewed card has lost its attempt history
    """
    deck = deck_repo.get_deck(deck_id, collection)
    return build_queue(review_items_from_cards(deck.flashcards), now=now, selection=selection)


def get_deck_summary(
    deck_id: str,
    now: Optional[datetime] = None,
    selection: DueSelection = DEFAULT_SELECTION,
    collection: Optional[Collection] = None
) -> DeckSummary:
    """New / learning / lapsed / due counts for a deck."""
    deck = deck_repo.get_deck(deck_id, collection)
    return summarize_deck(review_items_from_cards(deck.flashcards), now=now, selection=selection)
