"""
Grade Translator - qualitative labels <-> numeric grades.

The evaluator speaks in labels (again/hard/good/easy), the engine in
numbers (0-5). This module is the only place the two meet.
"""

from __future__ import annotations

from typing import Union

from flashdeck.sm17.constants import Grade, GradeLabel, PASSING_GRADE
from flashdeck.sm17.errors import InvalidGrade, UnmappedGrade


LABEL_TO_GRADE = {
    GradeLabel.EASY: Grade.EASY,
    GradeLabel.GOOD: Grade.GOOD,
    GradeLabel.HARD: Grade.HARD,
    GradeLabel.NEW: Grade.HARD,
    GradeLabel.AGAIN: Grade.AGAIN,
}

# NEW is left out on purpose: it shares grade 3 with HARD
GRADE_TO_LABEL = {
    Grade.AGAIN: GradeLabel.AGAIN,
    Grade.HARD: GradeLabel.HARD,
    Grade.GOOD: GradeLabel.GOOD,
    Grade.EASY: GradeLabel.EASY,
}


def parse_label(label: Union[str, GradeLabel]) -> GradeLabel:
    """Normalise a label string into GradeLabel, raising InvalidGrade if unknown."""
    if isinstance(label, GradeLabel):
        return label
    if not isinstance(label, str):
        raise InvalidGrade(label)
    try:
        return GradeLabel(label.strip().lower())
    except ValueError:
        raise InvalidGrade(label) from None


def label_to_grade(label: Union[str, GradeLabel]) -> Grade:
    """
    Translate a qualitative label into a numeric grade.

    Args:
        label: One of easy, good, hard, new, again (case-insensitive)

    Returns:
        Grade value

    Raises:
        InvalidGrade: label is not in the vocabulary
    """
    return LABEL_TO_GRADE[parse_label(label)]


def grade_to_label(grade: int) -> GradeLabel:
    """
    Translate a numeric grade back into its qualitative label.

    Only grades 2-5 have labels; 0 and 1 are never produced by the evaluator.

    Raises:
        UnmappedGrade: grade has no label
    """
    if isinstance(grade, bool) or not isinstance(grade, int):
        raise UnmappedGrade(grade)
    try:
        return GRADE_TO_LABEL[Grade(grade)]
    except (ValueError, KeyError):
        raise UnmappedGrade(grade) from None


def coerce_grade(value: Union[int, str, Grade, GradeLabel]) -> Grade:
    """
    Validate anything grade-like and return a Grade.

    Accepts a Grade, an integer 0-5 (or an integral float), or a label.
    This is where out-of-range input is stopped before it reaches the engine.

    Raises:
        InvalidGrade: value is not a valid grade or label
    """
    if isinstance(value, Grade):
        return value
    if isinstance(value, (str, GradeLabel)):
        return label_to_grade(value)
    if isinstance(value, bool):
        raise InvalidGrade(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidGrade(value)
        value = int(value)
    if not isinstance(value, int):
        raise InvalidGrade(value)
    try:
        return Grade(value)
    except ValueError:
        raise InvalidGrade(value) from None


def is_lapse(grade: int, passing_grade: int = PASSING_GRADE) -> bool:
    """True for a failed recall (grade below passing_grade, 3 by default)."""
    return int(grade) < int(passing_grade)
