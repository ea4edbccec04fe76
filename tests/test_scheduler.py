import pytest

from flashdeck.scheduler import process_review
from flashdeck.schemas import Flashcard
from flashdeck.sm17.constants import CardStage, SchedulerParams
from flashdeck.sm17.errors import InvalidGrade
from flashdeck.sm17.repetition import apply_repetition, repetition_details


@pytest.fixture
def card():
    return Flashcard(id="card-1", text="de hond", answer="the dog")


def test_new_card_good_review(card, now):
    updated, event = process_review(card, "good", timestamp=now, deck_id="deck-1")

    expected = apply_repetition(card.memory_state(), 4)
    assert updated.memory_state() == expected
    assert updated.stage == CardStage.LEARNING
    assert updated.id == card.id

    assert event["deck_id"] == "deck-1"
    assert event["card_id"] == "card-1"
    assert event["timestamp"] == now
    assert event["grade"] == 4
    assert event["grade_label"] == "good"
    assert event["stage_before"] == "new"
    assert event["stage_after"] == "learning"
    assert event["interval_before"] == 1.0
    assert event["difficulty_before"] == pytest.approx(0.4)
    assert event["interval_after"] == expected.last_interval_days
    assert event["stability_after"] == expected.stability
    assert event["lapses_after"] == 0
    assert event["session_id"] is None


def test_input_card_is_not_modified(card, now):
    process_review(card, 5, timestamp=now)

    assert card.stage == CardStage.NEW
    assert card.last_interval_days == 1.0
    assert card.stability == 1.0
    assert card.lapses == 0


def test_lapse_moves_card_to_lapsed(now):
    card = Flashcard(
        text="q", answer="a", stage=CardStage.REVIEW,
        last_interval_days=20.0, stability=15.0, difficulty=0.3, lapses=1,
    )
    updated, event = process_review(card, "again", timestamp=now)

    assert updated.stage == CardStage.LAPSED
    assert updated.lapses == 2
    assert updated.last_interval_days == 1.0
    assert updated.stability == 1.0
    assert event["grade"] == 2
    assert event["stage_before"] == "review"
    assert event["lapses_before"] == 1


def test_lapsed_card_relearns(now):
    card = Flashcard(text="q", answer="a", stage=CardStage.LAPSED, lapses=1)
    updated, _ = process_review(card, "hard", timestamp=now)
    assert updated.stage == CardStage.LEARNING

    updated, _ = process_review(updated, "easy", timestamp=now)
    assert updated.stage == CardStage.REVIEW


@pytest.mark.parametrize("grade", [0, 1])
def test_unlabelled_grades_are_logged_without_label(card, grade, now):
    updated, event = process_review(card, grade, timestamp=now)

    assert event["grade"] == grade
    assert event["grade_label"] is None
    assert updated.stage == CardStage.LAPSED


def test_new_label_is_recorded_as_hard(card, now):
    _, event = process_review(card, "new", timestamp=now)
    assert event["grade"] == 3
    assert event["grade_label"] == "hard"


@pytest.mark.parametrize("grade", ["meh", 7, -1, 2.5])
def test_invalid_grade_raises(card, grade):
    with pytest.raises(InvalidGrade):
        process_review(card, grade)


def test_timestamp_defaults_to_now(card):
    _, event = process_review(card, "good")
    assert event["timestamp"].tzinfo is not None


def test_custom_passing_grade_applies_to_stage(now):
    card = Flashcard(text="q", answer="a", stage=CardStage.REVIEW, last_interval_days=8.0, stability=6.0)
    updated, event = process_review(card, 3, timestamp=now, params=SchedulerParams(passing_grade=4))

    assert updated.lapses == 1
    assert updated.stability == 1.0
    assert updated.stage == CardStage.LAPSED
    assert event["stage_after"] == "lapsed"


def test_event_matches_single_engine_pass(card, now):
    updated, event = process_review(card, "easy", timestamp=now)
    details = repetition_details(card.memory_state(), 5)

    assert event["theory_retrievability"] == details["theory_retrievability"]
    assert event["retrievability"] == details["retrievability"]
    assert updated.last_interval_days == details["interval_days"]
