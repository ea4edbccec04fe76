"""
SQLAlchemy ORM Models for the review log

Defines the ReviewEvent model: an append-only record of every graded
repetition with the memory state before and after.
"""

from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ReviewEvent(Base):
    """
    Log entry for a single review of a flashcard.

    Captures the grade and the memory state around the update.
    """
    __tablename__ = 'review_events'

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Card identifiers
    deck_id = Column(String(255), nullable=True)
    card_id = Column(String(255), nullable=False, index=True)

    # Timing and grade
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    grade = Column(Integer, nullable=False)  # 0-5
    grade_label = Column(String(16), nullable=True)  # again/hard/good/easy, null for 0-1

    # Lifecycle
    stage_before = Column(String(16), nullable=False)
    stage_after = Column(String(16), nullable=False)

    # State before review
    interval_before = Column(Float, nullable=False)
    stability_before = Column(Float, nullable=False)
    difficulty_before = Column(Float, nullable=False)
    lapses_before = Column(Integer, nullable=False)
    theory_retrievability = Column(Float, nullable=True)
    retrievability = Column(Float, nullable=True)  # Blended R used by the update

    # State after review
    interval_after = Column(Float, nullable=False)
    stability_after = Column(Float, nullable=False)
    difficulty_after = Column(Float, nullable=False)
    lapses_after = Column(Integer, nullable=False)

    # Session context (optional, for analytics)
    session_id = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<ReviewEvent(id={self.id}, {self.card_id}, grade={self.grade})>"
