"""
Exceptions raised by the scheduling core.

All of them are deterministic input-validation failures: callers should
surface them (e.g. "could not score this answer") rather than retry.
"""


class SchedulingError(ValueError):
    """Base exception for the scheduling core."""
    pass


class InvalidGrade(SchedulingError):
    """
    A qualitative label or numeric grade outside the known vocabulary.
    Raised before anything reaches the repetition engine.
    """
    def __init__(self, value):
        self.value = value
        super().__init__(f"Unrecognised grade: {value!r}")


class UnmappedGrade(SchedulingError):
    """
    A numeric grade with no qualitative label (0 and 1 have none).
    """
    def __init__(self, grade):
        self.grade = grade
        super().__init__(f"Grade {grade!r} has no qualitative label")


class MissingHistory(SchedulingError, LookupError):
    """
    An item that claims to have been reviewed but has no attempt history.
    """
    def __init__(self, item):
        self.item = item
        super().__init__(f"Item {item!r} is marked as reviewed but has no attempts")
