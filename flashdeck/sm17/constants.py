"""
SM-17 Constants and Parameters

All tunable parameters for the repetition algorithm in one place.
The defaults are collected into SchedulerParams so callers can swap in
a different calibration without touching the update formulas.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Tuple


# ---- Grades ----

class Grade(IntEnum):
    """Numeric recall grade (0-5). Anything below PASSING_GRADE is a lapse."""
    BLACKOUT = 0   # No recall at all
    INCORRECT = 1  # Wrong, but recognised the answer
    AGAIN = 2      # Wrong, answer felt familiar
    HARD = 3       # Recalled with serious effort
    GOOD = 4       # Recalled after some hesitation
    EASY = 5       # Recalled fluently


class GradeLabel(str, Enum):
    """Qualitative labels produced by the answer evaluator."""
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"
    NEW = "new"  # Lifecycle label for never-reviewed cards, not a real grade


class CardStage(str, Enum):
    """Explicit card lifecycle stage."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    LAPSED = "lapsed"


PASSING_GRADE = Grade.HARD


# ---- Initial Card State ----

INITIAL_INTERVAL_DAYS = 1.0
INITIAL_STABILITY = 1.0
INITIAL_LAPSES = 0


# ---- Lapse Reset ----

LAPSE_INTERVAL_DAYS = 1.0
LAPSE_STABILITY = 1.0


# ---- Forgetting Curve ----

# k = -ln(0.9): a stability/interval ratio of 1 maps to 90% retention
DECAY_CONSTANT_K = -math.log(0.9)

FORGETTING_INDEX = 10  # Acceptable forgetting at review time (percent)


# ---- Grade-Implied Retrievability ----
# Assumed recall probability behind each grade outcome, indexed by grade 0-5

GRADE_RETRIEVABILITY = (0.02, 0.15, 0.40, 0.75, 0.90, 0.98)


# ---- Blending Weights ----

THEORETICAL_WEIGHT = 0.8  # R = 0.8 * Rt + 0.2 * Rg
GRADE_WEIGHT = 0.2

RETRIEVE_WEIGHT = 0.4  # stability estimators
SINC_WEIGHT = 0.3
INTERVAL_WEIGHT = 0.3


# ---- Stability Increase f(R, S) ----

F_RS_MIN = 0.01
F_RS_MAX = 6.0
F_RS_R_EXPONENT = 0.9
F_RS_SIGMOID_SLOPE = 12.0
F_RS_SIGMOID_MIDPOINT = 0.6
F_RS_S_DECAY = 0.08


# ---- Difficulty Update ----

DIFFICULTY_LEARNING_RATE = 0.25
TRUST_BASE = 0.6
TRUST_SLOPE = 0.4
TRUST_MIN = 0.2
TRUST_MAX = 1.0


# ---- Interval Ceiling ----

MAX_INTERVAL_DAYS = 36500.0  # 100 years; keeps due dates representable


# Denominators smaller than this are treated as zero
EPSILON = 1e-12


@dataclass(frozen=True)
class SchedulerParams:
    """
    Calibration for the repetition algorithm.

    Every magic number the update formulas use is a field here, so a tuned
    parameter set can be passed per call instead of editing the module.
    Fields are immutable values, so instances are hashable.
    """
    decay_constant: float = DECAY_CONSTANT_K
    forgetting_index: float = FORGETTING_INDEX
    grade_retrievability: Tuple[float, ...] = GRADE_RETRIEVABILITY
    theoretical_weight: float = THEORETICAL_WEIGHT
    grade_weight: float = GRADE_WEIGHT
    retrieve_weight: float = RETRIEVE_WEIGHT
    sinc_weight: float = SINC_WEIGHT
    interval_weight: float = INTERVAL_WEIGHT
    f_rs_min: float = F_RS_MIN
    f_rs_max: float = F_RS_MAX
    f_rs_r_exponent: float = F_RS_R_EXPONENT
    f_rs_sigmoid_slope: float = F_RS_SIGMOID_SLOPE
    f_rs_sigmoid_midpoint: float = F_RS_SIGMOID_MIDPOINT
    f_rs_s_decay: float = F_RS_S_DECAY
    difficulty_learning_rate: float = DIFFICULTY_LEARNING_RATE
    trust_base: float = TRUST_BASE
    trust_slope: float = TRUST_SLOPE
    trust_min: float = TRUST_MIN
    trust_max: float = TRUST_MAX
    passing_grade: int = int(PASSING_GRADE)
    lapse_interval_days: float = LAPSE_INTERVAL_DAYS
    lapse_stability: float = LAPSE_STABILITY
    max_interval_days: float = MAX_INTERVAL_DAYS


DEFAULT_PARAMS = SchedulerParams()
