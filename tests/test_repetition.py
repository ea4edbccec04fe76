import math

import pytest

from flashdeck.sm17.constants import DEFAULT_PARAMS, MAX_INTERVAL_DAYS, SchedulerParams
from flashdeck.sm17.memory_state import ItemState
from flashdeck.sm17.repetition import (
    apply_repetition,
    blended_retrievability,
    f_rs,
    forgetting_index_term,
    repetition_details,
    stability_increase,
    state_from_details,
)

K = -math.log(0.9)

STATES = [
    ItemState(last_interval_days=1.0, stability=1.0, difficulty=0.5, lapses=0),
    ItemState(last_interval_days=12.0, stability=8.0, difficulty=0.1, lapses=2),
    ItemState(last_interval_days=3.0, stability=0.0, difficulty=0.9, lapses=5),
    ItemState(last_interval_days=40.0, stability=90.0, difficulty=1.0, lapses=0),
]


def _expected_good_review(interval, stability, difficulty):
    """Step-by-step evaluation of the update for grade 4."""
    def f(r, s):
        r_part = r ** 0.9 / (1 + math.exp(-12 * (r - 0.6)))
        s_part = 1 / (1 + 0.08 * math.log1p(s))
        return min(6.0, max(0.01, r_part * s_part))

    def sinc(d, s, r):
        return (5 * (1 - d) + 1) * f(r, s) + 1

    fi = math.log(1 - 0.10) / math.log(0.9)
    r_theory = math.exp(-K * interval / stability)
    r = 0.8 * r_theory + 0.2 * 0.90
    s_retrieve = -K * interval / math.log(r)
    s_sinc = stability * sinc(difficulty, stability, r)
    s_interval = interval / sinc(difficulty, stability, r) * fi
    new_stability = 0.4 * s_retrieve + 0.3 * s_sinc + 0.3 * s_interval
    new_interval = new_stability * sinc(difficulty, new_stability, r) * fi
    trust = min(1.0, max(0.2, 0.6 + 0.4 * r_theory))
    new_difficulty = difficulty + 0.25 * trust * ((1 - 4 / 5) - difficulty)
    return new_interval, new_stability, new_difficulty


def test_good_review_matches_formula(base_state):
    updated = apply_repetition(base_state, 4)
    interval, stability, difficulty = _expected_good_review(1.0, 1.0, 0.5)

    assert updated.stability == pytest.approx(stability, rel=1e-12)
    assert updated.last_interval_days == pytest.approx(interval, rel=1e-12)
    assert updated.difficulty == pytest.approx(difficulty, rel=1e-12)
    assert updated.last_interval_days > 1
    assert updated.difficulty < base_state.difficulty
    assert updated.lapses == 0


def test_good_review_known_values(base_state):
    # Rt = 0.9 at interval == stability, so R = 0.9 and the retrieval estimator is exactly 1
    details = repetition_details(base_state, 4)
    assert details["theory_retrievability"] == pytest.approx(0.9)
    assert details["retrievability"] == pytest.approx(0.9)
    assert details["retrieve_stability"] == pytest.approx(1.0)
    assert details["stability"] == pytest.approx(1.657, abs=5e-3)
    assert details["interval_days"] == pytest.approx(6.419, abs=5e-3)
    assert details["difficulty"] == pytest.approx(0.428)


def test_failed_review_resets(base_state):
    updated = apply_repetition(base_state, 1)

    assert updated.last_interval_days == 1
    assert updated.stability == 1
    assert updated.lapses == 1
    assert updated.difficulty > base_state.difficulty
    assert updated.difficulty == pytest.approx(0.572)


@pytest.mark.parametrize("state", STATES)
@pytest.mark.parametrize("grade", range(6))
def test_lapse_counting(state, grade):
    updated = apply_repetition(state, grade)
    if grade >= 3:
        assert updated.lapses == state.lapses
    else:
        assert updated.lapses == state.lapses + 1
        assert updated.last_interval_days == 1.0
        assert updated.stability == 1.0


@pytest.mark.parametrize("difficulty", [0.0, 0.25, 0.5, 0.75, 1.0])
@pytest.mark.parametrize("stability", [0.0, 1.0, 50.0])
@pytest.mark.parametrize("grade", range(6))
def test_difficulty_stays_in_unit_interval(difficulty, stability, grade):
    state = ItemState(last_interval_days=5.0, stability=stability, difficulty=difficulty, lapses=0)
    updated = apply_repetition(state, grade)
    assert 0.0 <= updated.difficulty <= 1.0


@pytest.mark.parametrize("state", STATES)
def test_blended_retrievability_monotonic_in_grade(state):
    values = [blended_retrievability(state, g) for g in range(2, 6)]
    assert values == sorted(values)


@pytest.mark.parametrize("state", STATES)
@pytest.mark.parametrize("grade", range(6))
def test_results_are_finite(state, grade):
    updated = apply_repetition(state, grade)
    assert math.isfinite(updated.stability)
    assert math.isfinite(updated.last_interval_days)
    assert updated.last_interval_days > 0
    assert updated.stability >= 0


def test_repeated_grade_is_path_dependent(base_state):
    once = apply_repetition(base_state, 4)
    twice = apply_repetition(once, 4)

    assert twice != once
    assert twice.last_interval_days != once.last_interval_days
    assert twice.difficulty < once.difficulty


def test_input_state_untouched(base_state):
    before = ItemState(**vars(base_state))
    apply_repetition(base_state, 5)
    assert base_state == before


def test_unestimated_stability_has_zero_theoretical_retrievability():
    state = ItemState(last_interval_days=3.0, stability=0.0, difficulty=0.5, lapses=0)
    details = repetition_details(state, 4)

    assert details["theory_retrievability"] == 0.0
    assert details["retrievability"] == pytest.approx(0.2 * 0.90)
    assert details["sinc_stability"] == 0.0
    assert details["stability"] > 0


def test_retrievability_of_one_skips_retrieval_estimator():
    params = SchedulerParams(theoretical_weight=1.0, grade_weight=0.0)
    state = ItemState(last_interval_days=1.0, stability=1e18, difficulty=0.5, lapses=0)
    details = repetition_details(state, 5, params)

    assert details["retrievability"] == 1.0
    assert details["retrieve_stability"] == 0.0
    assert math.isfinite(details["stability"])
    assert math.isfinite(details["interval_days"])


def test_out_of_range_grade_is_clamped(base_state):
    assert apply_repetition(base_state, 9) == apply_repetition(base_state, 5)
    assert apply_repetition(base_state, -3) == apply_repetition(base_state, 0)


def test_f_rs_is_clamped_and_increasing_in_r():
    assert f_rs(0.0, 1.0) == 0.01
    values = [f_rs(r / 10, 5.0) for r in range(11)]
    assert values == sorted(values)
    assert f_rs(0.9, 100.0) < f_rs(0.9, 1.0)


def test_stability_increase_at_least_one():
    for d in (0.0, 0.5, 1.0):
        for r in (0.0, 0.5, 1.0):
            assert stability_increase(d, 10.0, r) >= 1.0


def test_forgetting_index_term_default_is_one():
    assert forgetting_index_term() == pytest.approx(1.0)


def test_custom_params_are_used(base_state):
    lenient = SchedulerParams(forgetting_index=20)
    default = apply_repetition(base_state, 4)
    custom = apply_repetition(base_state, 4, lenient)

    assert forgetting_index_term(lenient) > 1.0
    assert custom.last_interval_days > default.last_interval_days


def test_custom_lapse_reset():
    params = SchedulerParams(lapse_stability=0.5, lapse_interval_days=0.25)
    state = ItemState(last_interval_days=10.0, stability=10.0, difficulty=0.3, lapses=0)
    updated = apply_repetition(state, 0, params)

    assert updated.stability == 0.5
    assert updated.last_interval_days == 0.25


def test_long_run_of_easy_reviews_stays_within_interval_ceiling():
    state = ItemState()
    for _ in range(60):
        state = apply_repetition(state, 5)
        assert 0 < state.last_interval_days <= MAX_INTERVAL_DAYS
        assert math.isfinite(state.stability)
    assert state.last_interval_days == MAX_INTERVAL_DAYS


def test_interval_ceiling_is_a_parameter(base_state):
    params = SchedulerParams(max_interval_days=3.0)
    assert apply_repetition(base_state, 5, params).last_interval_days == 3.0


@pytest.mark.parametrize("state", STATES)
@pytest.mark.parametrize("grade", range(6))
def test_details_agree_with_helpers(state, grade):
    details = repetition_details(state, grade)

    assert details["retrievability"] == blended_retrievability(state, grade)
    assert state_from_details(state, details) == apply_repetition(state, grade)


def test_params_are_hashable():
    assert hash(DEFAULT_PARAMS) == hash(SchedulerParams())
    assert {DEFAULT_PARAMS: "default"}[SchedulerParams()] == "default"
    assert SchedulerParams(passing_grade=4) != DEFAULT_PARAMS
