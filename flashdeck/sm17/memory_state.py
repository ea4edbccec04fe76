"""
Memory State - per-card SM-17 state and retrievability

Key concepts:
- Stability (S): how slowly memory decays (larger = slower)
- Difficulty (D): intrinsic item hardness, 0-1
- Retrievability (R): probability of recall after an interval

Difficulty is a continuous model parameter and is never mixed up with the
discrete grade scale.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

from flashdeck.sm17.constants import (
    CardStage,
    DEFAULT_PARAMS,
    GradeLabel,
    INITIAL_INTERVAL_DAYS,
    INITIAL_LAPSES,
    INITIAL_STABILITY,
    PASSING_GRADE,
    SchedulerParams,
)
from flashdeck.sm17.grades import is_lapse, label_to_grade


@dataclass(frozen=True)
class ItemState:
    """
    Memory state for a single card.

    Owned by the card record; replaced (never mutated) by the engine.
    """
    last_interval_days: float = INITIAL_INTERVAL_DAYS
    stability: float = INITIAL_STABILITY
    difficulty: float = 0.5
    lapses: int = INITIAL_LAPSES


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def initial_difficulty(label: Union[str, GradeLabel] = GradeLabel.NEW) -> float:
    """
    Starting difficulty for a card created with the given label.

    Uses the same grade -> target mapping as the difficulty update,
    so "new" (grade 3) starts at 0.4.
    """
    grade = label_to_grade(label)
    return clamp(1.0 - int(grade) / 5.0)


def new_item_state(label: Union[str, GradeLabel] = GradeLabel.NEW) -> ItemState:
    """
    Initialize memory state for a card that has never been reviewed.

    Args:
        label: Initial qualitative label (default: new)

    Returns:
        ItemState with interval 1 day, stability 1, lapses 0
    """
    return ItemState(
        last_interval_days=INITIAL_INTERVAL_DAYS,
        stability=INITIAL_STABILITY,
        difficulty=initial_difficulty(label),
        lapses=INITIAL_LAPSES,
    )


def theoretical_retrievability(
    stability: float,
    interval_days: float,
    params: SchedulerParams = DEFAULT_PARAMS
) -> float:
    """
    Retrievability predicted by the forgetting curve.

    Formula: R = exp(-k * interval / S), with k = -ln(0.9)

    A stability of 0 means "not yet estimated" and yields 0.

    Args:
        stability: Prior stability
        interval_days: Interval that elapsed (the last scheduled interval)
        params: Algorithm calibration

    Returns:
        Retrievability between 0 and 1
    """
    if stability <= 0:
        return 0.0
    return math.exp(-params.decay_constant * (interval_days / stability))


def next_stage(
    stage: Union[str, CardStage],
    grade: int,
    passing_grade: int = PASSING_GRADE
) -> CardStage:
    """
    Advance the card lifecycle after a review.

    - any stage + lapse -> LAPSED
    - NEW / LAPSED + pass -> LEARNING
    - LEARNING / REVIEW + pass -> REVIEW

    passing_grade must match the one the engine used for the same review
    (SchedulerParams.passing_grade), or stage and lapse count disagree.
    """
    stage = CardStage(stage)
    if is_lapse(grade, passing_grade):
        return CardStage.LAPSED
    if stage in (CardStage.NEW, CardStage.LAPSED):
        return CardStage.LEARNING
    return CardStage.REVIEW
