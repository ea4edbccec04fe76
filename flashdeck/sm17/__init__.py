"""
SM-17 style spaced repetition core.

This package implements the pure scheduling core:
- Grade translation between evaluator labels and 0-5 grades
- Exponential forgetting curve: R = exp(-k * interval / S)
- Stability blended from three estimators, reset on a lapse
- Difficulty drifting toward a grade-derived target

Quick start:
    from flashdeck import sm17

    state = sm17.new_item_state()
    grade = sm17.label_to_grade("good")
    state = sm17.apply_repetition(state, grade)

The review-event log (sm17.database) is imported on demand so the core
stays free of database dependencies.
"""

# Core algorithm
from flashdeck.sm17.repetition import (
    apply_repetition,
    blended_retrievability,
    forgetting_index_term,
    grade_retrievability,
    repetition_details,
    stability_increase,
    state_from_details,
    update_difficulty,
)

# Grade translation
from flashdeck.sm17.grades import (
    coerce_grade,
    grade_to_label,
    is_lapse,
    label_to_grade,
    parse_label,
)

# Constants and parameters
from flashdeck.sm17.constants import (
    CardStage,
    DEFAULT_PARAMS,
    Grade,
    GradeLabel,
    SchedulerParams,
)

# Memory state
from flashdeck.sm17.memory_state import (
    ItemState,
    initial_difficulty,
    new_item_state,
    next_stage,
    theoretical_retrievability,
)

# Errors
from flashdeck.sm17.errors import (
    InvalidGrade,
    MissingHistory,
    SchedulingError,
    UnmappedGrade,
)


__all__ = [
    # Core algorithm
    "apply_repetition",
    "blended_retrievability",
    "forgetting_index_term",
    "grade_retrievability",
    "repetition_details",
    "stability_increase",
    "state_from_details",
    "update_difficulty",

    # Grade translation
    "coerce_grade",
    "grade_to_label",
    "is_lapse",
    "label_to_grade",
    "parse_label",

    # Enums and parameters
    "CardStage",
    "DEFAULT_PARAMS",
    "Grade",
    "GradeLabel",
    "SchedulerParams",

    # Memory state
    "ItemState",
    "initial_difficulty",
    "new_item_state",
    "next_stage",
    "theoretical_retrievability",

    # Errors
    "InvalidGrade",
    "MissingHistory",
    "SchedulingError",
    "UnmappedGrade",
]
