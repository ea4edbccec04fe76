"""
Review queue builder.

Computes a signed due offset for every reviewed item in a deck snapshot and
returns the items that pass the inclusion predicate, sorted ascending by offset.

due_offset = last attempt timestamp + last interval - now
- negative: the scheduled review point has passed (overdue)
- positive: the scheduled review point is still ahead

Which side counts as "due" is a DueSelection. UPCOMING (offset > 0) is what
the deck screen has always shown and stays the default until product decides;
OVERDUE (offset <= 0) is the conventional review queue.

No DB calls: callers pass a consistent snapshot and get fresh entries back
on every call.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Union

from flashdeck.sm17.constants import CardStage, MAX_INTERVAL_DAYS
from flashdeck.sm17.errors import MissingHistory


class DueSelection(str, Enum):
    """Which due offsets make an item part of the queue."""
    UPCOMING = "upcoming"  # due_offset > 0
    OVERDUE = "overdue"    # due_offset <= 0


DEFAULT_SELECTION = DueSelection.UPCOMING


@dataclass(frozen=True)
class ReviewItem:
    """
    Queue input for one card.

    attempts must be in submission order; only the last timestamp is read.
    stage=None means "unknown": an empty history is then treated as a new card.
    """
    item: Any
    attempts: Sequence[Any]
    last_interval_days: float
    stage: Optional[CardStage] = None


@dataclass(frozen=True)
class DueEntry:
    """Transient pairing of an item and its due offset. Never persisted."""
    item: Any
    due_offset: timedelta

    @property
    def due_days(self) -> float:
        return self.due_offset.total_seconds() / 86400.0


@dataclass(frozen=True)
class DeckSummary:
    """Counts shown next to a deck."""
    new_count: int
    learning_count: int
    lapsed_count: int
    due_count: int


QueueInput = Union[ReviewItem, tuple]


def _as_review_item(entry: QueueInput) -> ReviewItem:
    if isinstance(entry, ReviewItem):
        return entry
    item, attempts, last_interval_days = entry
    return ReviewItem(item=item, attempts=attempts, last_interval_days=last_interval_days)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _attempt_timestamp(attempt: Any) -> datetime:
    timestamp = attempt["timestamp"] if isinstance(attempt, dict) else attempt.timestamp
    return _as_utc(timestamp)


def _is_new(review_item: ReviewItem) -> bool:
    """
    True for items that belong to the new-card intake path.

    Raises:
        MissingHistory: stage says the item was reviewed but attempts is empty
    """
    if review_item.attempts:
        return False
    if review_item.stage is None or CardStage(review_item.stage) == CardStage.NEW:
        return True
    raise MissingHistory(review_item.item)


def due_offset(
    review_item: ReviewItem,
    now: datetime,
) -> timedelta:
    """
    Signed time between the scheduled review point and now.

    Intervals longer than MAX_INTERVAL_DAYS (records written before the
    engine capped them) are read as MAX_INTERVAL_DAYS.

    Raises:
        MissingHistory: the item has no attempts to read a timestamp from
    """
    if not review_item.attempts:
        raise MissingHistory(review_item.item)
    last_attempt = _attempt_timestamp(review_item.attempts[-1])
    interval_days = min(review_item.last_interval_days, MAX_INTERVAL_DAYS)
    return last_attempt + timedelta(days=interval_days) - _as_utc(now)


def is_selected(offset: timedelta, selection: DueSelection = DEFAULT_SELECTION) -> bool:
    """Apply the inclusion predicate to a due offset."""
    if DueSelection(selection) == DueSelection.OVERDUE:
        return offset <= timedelta(0)
    return offset > timedelta(0)


def build_queue(
    items: Iterable[QueueInput],
    now: Optional[datetime] = None,
    selection: DueSelection = DEFAULT_SELECTION,
) -> list[DueEntry]:
    """
    Build the ordered review queue for a deck snapshot.

    Args:
        items: ReviewItem values or (item, attempts, last_interval_days) tuples
        now: Reference time (defaults to current UTC time)
        selection: Inclusion predicate for due offsets

    Returns:
        DueEntry list sorted ascending by due_offset (stable for ties)

    Raises:
        MissingHistory: an item marked as reviewed has no attempts
    """
    if now is None:
        now = datetime.now(timezone.utc)

    queue: list[DueEntry] = []
    for entry in items:
        review_item = _as_review_item(entry)
        if _is_new(review_item):
            continue
        offset = due_offset(review_item, now)
        if is_selected(offset, selection):
            queue.append(DueEntry(item=review_item.item, due_offset=offset))

    queue.sort(key=lambda e: e.due_offset)
    return queue


def summarize_deck(
    items: Iterable[QueueInput],
    now: Optional[datetime] = None,
    selection: DueSelection = DEFAULT_SELECTION,
) -> DeckSummary:
    """
    Count new, learning, lapsed and due items in a deck snapshot.

    Items without a stage are counted as new when they have no attempts and
    are otherwise only counted towards due.
    """
    review_items = [_as_review_item(entry) for entry in items]
    stages = [
        CardStage(r.stage) if r.stage is not None else None
        for r in review_items
    ]
    new_count = sum(
        1 for r, stage in zip(review_items, stages)
        if stage == CardStage.NEW or (stage is None and not r.attempts)
    )
    return DeckSummary(
        new_count=new_count,
        learning_count=stages.count(CardStage.LEARNING),
        lapsed_count=stages.count(CardStage.LAPSED),
        due_count=len(build_queue(review_items, now=now, selection=selection)),
    )


def review_items_from_cards(cards: Iterable[Any]) -> list[ReviewItem]:
    """
    Wrap Flashcard records as queue input.

    Works with anything exposing attempts, last_interval_days and stage.
    """
    return [
        ReviewItem(
            item=card,
            attempts=card.attempts,
            last_interval_days=card.last_interval_days,
            stage=card.stage,
        )
        for card in cards
    ]
