"""
Repetition Engine - SM-17 style memory state updates

Applies one graded repetition to an item's memory state.

Key principles:
- Retrievability is a blend of the forgetting curve and what the grade implies
- New stability is a weighted blend of three independent estimators
- A lapse (grade < 3) resets stability and interval instead of blending
- Difficulty drifts toward a grade-derived target, less so when the curve
  already predicted a failure

The engine is total: degenerate inputs are clamped or guarded, never raised.
"""

from __future__ import annotations

import math
from dataclasses import replace

from flashdeck.sm17.constants import DEFAULT_PARAMS, EPSILON, SchedulerParams
from flashdeck.sm17.memory_state import ItemState, clamp, theoretical_retrievability


def _clamp_grade(grade: int) -> int:
    return int(clamp(int(grade), 0, 5))


def _safe_div(numerator: float, denominator: float) -> float:
    """Divide, returning 0 when the denominator is (near) zero or the result is not finite."""
    if not math.isfinite(denominator) or abs(denominator) < EPSILON:
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def forgetting_index_term(params: SchedulerParams = DEFAULT_PARAMS) -> float:
    """
    Interval scaling for the target forgetting index.

    Formula: ln(1 - FI/100) / ln(0.9)   (exactly 1.0 for FI = 10%)
    """
    return math.log(1.0 - params.forgetting_index / 100.0) / math.log(0.9)


def grade_retrievability(grade: int, params: SchedulerParams = DEFAULT_PARAMS) -> float:
    """Recall probability implied by a grade outcome."""
    return params.grade_retrievability[_clamp_grade(grade)]


def _blend(r_theory: float, r_grade: float, params: SchedulerParams) -> float:
    return params.theoretical_weight * r_theory + params.grade_weight * r_grade


def blended_retrievability(
    state: ItemState,
    grade: int,
    params: SchedulerParams = DEFAULT_PARAMS
) -> float:
    """
    Retrievability used by the update.

    Formula: R = 0.8 * Rt + 0.2 * Rg

    Where:
        - Rt = forgetting-curve prediction for the prior interval
        - Rg = probability implied by the grade
    """
    r_theory = theoretical_retrievability(state.stability, state.last_interval_days, params)
    return _blend(r_theory, grade_retrievability(grade, params), params)


def f_rs(retrievability: float, stability: float, params: SchedulerParams = DEFAULT_PARAMS) -> float:
    """
    Smooth stand-in for the data-fitted f(R, S) of SM-17.

    Increases with R (sigmoid emphasis on mid-to-high R) and decays mildly
    with log(1 + S). Clamped to [0.01, 6.0].
    """
    r = max(retrievability, 0.0)
    s = max(stability, 0.0)
    r_part = math.pow(r, params.f_rs_r_exponent) / (
        1.0 + math.exp(-params.f_rs_sigmoid_slope * (r - params.f_rs_sigmoid_midpoint))
    )
    s_part = 1.0 / (1.0 + params.f_rs_s_decay * math.log1p(s))
    return clamp(r_part * s_part, params.f_rs_min, params.f_rs_max)


def stability_increase(
    difficulty: float,
    stability: float,
    retrievability: float,
    params: SchedulerParams = DEFAULT_PARAMS
) -> float:
    """
    Stability increase factor SInc(D, S, R).

    Formula: SInc = (5 * (1 - D) + 1) * f(R, S) + 1

    Answers "by what multiple should stability grow" given item hardness
    and how well it was recalled. Always >= 1 for D in [0, 1].
    """
    factor = 5.0 * (1.0 - difficulty) + 1.0
    return factor * f_rs(retrievability, stability, params) + 1.0


def update_difficulty(
    difficulty: float,
    grade: int,
    theory_retrievability: float,
    params: SchedulerParams = DEFAULT_PARAMS
) -> float:
    """
    Move difficulty toward the grade-implied target.

    Formula:
        target = clamp(1 - grade / 5)
        trust = clamp(0.6 + 0.4 * Rt, 0.2, 1.0)
        D_new = clamp(D + 0.25 * trust * (target - D))

    A low Rt means the curve already expected a lapse, so the grade is
    trusted less and the step is smaller.

    Args:
        difficulty: Prior difficulty (0-1)
        grade: Numeric grade (0-5)
        theory_retrievability: Forgetting-curve retrievability before the review
        params: Algorithm calibration

    Returns:
        New difficulty, clamped to [0, 1]
    """
    target = clamp(1.0 - _clamp_grade(grade) / 5.0)
    trust = clamp(
        params.trust_base + params.trust_slope * theory_retrievability,
        params.trust_min,
        params.trust_max,
    )
    learning_rate = params.difficulty_learning_rate * trust
    return clamp(difficulty + learning_rate * (target - difficulty))


def repetition_details(
    state: ItemState,
    grade: int,
    params: SchedulerParams = DEFAULT_PARAMS
) -> dict:
    """
    Run the full update and return every intermediate quantity.

    Returns:
        Dict with theory_retrievability, grade_retrievability, retrievability,
        sinc, retrieve_stability, sinc_stability, interval_stability,
        stability, interval_days, difficulty, lapses
    """
    grade = _clamp_grade(grade)
    k = params.decay_constant
    fi_term = forgetting_index_term(params)

    prev_stability = state.stability
    prev_interval = state.last_interval_days
    lapse = grade < params.passing_grade

    r_theory = theoretical_retrievability(prev_stability, prev_interval, params)
    r_grade = grade_retrievability(grade, params)
    retrievability = _blend(r_theory, r_grade, params)

    # Stability that would have produced the observed R after prev_interval
    log_r = math.log(retrievability) if retrievability > 0 else float("-inf")
    retrieve_stability = 0.0 if log_r >= -EPSILON else _safe_div(-k * prev_interval, log_r)

    sinc = stability_increase(state.difficulty, prev_stability, retrievability, params)
    sinc_stability = prev_stability * sinc
    interval_stability = _safe_div(prev_interval, sinc) * fi_term

    if lapse:
        stability = params.lapse_stability
    else:
        stability = (
            params.retrieve_weight * retrieve_stability
            + params.sinc_weight * sinc_stability
            + params.interval_weight * interval_stability
        )
        if not math.isfinite(stability) or stability < 0:
            stability = params.lapse_stability

    next_sinc = stability_increase(state.difficulty, stability, retrievability, params)
    if lapse:
        interval_days = params.lapse_interval_days
    else:
        interval_days = stability * next_sinc * fi_term
        if not math.isfinite(interval_days) or interval_days <= 0:
            interval_days = params.lapse_interval_days
        interval_days = min(interval_days, params.max_interval_days)

    return {
        "theory_retrievability": r_theory,
        "grade_retrievability": r_grade,
        "retrievability": retrievability,
        "sinc": sinc,
        "next_sinc": next_sinc,
        "retrieve_stability": retrieve_stability,
        "sinc_stability": sinc_stability,
        "interval_stability": interval_stability,
        "stability": stability,
        "interval_days": interval_days,
        "difficulty": update_difficulty(state.difficulty, grade, r_theory, params),
        "lapses": state.lapses + (1 if lapse else 0),
    }


def state_from_details(state: ItemState, details: dict) -> ItemState:
    """New ItemState carrying the results of repetition_details()."""
    return replace(
        state,
        last_interval_days=details["interval_days"],
        stability=details["stability"],
        difficulty=details["difficulty"],
        lapses=details["lapses"],
    )


def apply_repetition(
    state: ItemState,
    grade: int,
    params: SchedulerParams = DEFAULT_PARAMS
) -> ItemState:
    """
    Apply one graded repetition and return the new memory state.

    Pure: the input state is left untouched.

    Args:
        state: Prior memory state
        grade: Numeric grade 0-5 (validate upstream with grades.coerce_grade)
        params: Algorithm calibration

    Returns:
        New ItemState
    """
    return state_from_details(state, repetition_details(state, grade, params))
