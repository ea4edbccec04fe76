"""
Pydantic models for decks, flashcards and their review history.

These models define the structure of MongoDB deck documents. The memory
state fields on Flashcard are owned by the repetition engine; everything
else is written by the study flow.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from flashdeck.sm17.constants import (
    CardStage,
    GradeLabel,
    INITIAL_INTERVAL_DAYS,
    INITIAL_LAPSES,
    INITIAL_STABILITY,
)
from flashdeck.sm17.memory_state import ItemState, initial_difficulty


ID_BYTES = 10  # 20 hex characters


def generate_id(n_bytes: int = ID_BYTES) -> str:
    """Random hex identifier for decks and cards."""
    return secrets.token_hex(n_bytes)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Author(str, Enum):
    """Who wrote a chat message."""
    USER = "user"
    AI = "ai"


# ---- History ----

class Attempt(BaseModel):
    """One submitted answer. Appended once, never edited."""
    user_answer: str = Field(..., description="What the learner answered")
    feedback: str = Field(default="", description="Evaluator's free-text reply")
    grade: GradeLabel = Field(..., description="Qualitative grade from the evaluator")
    timestamp: datetime = Field(default_factory=utc_now, description="When the answer was submitted")

    class Config:
        use_enum_values = True
        frozen = True


class ChatMessage(BaseModel):
    """A message in the per-card conversation."""
    timestamp: datetime = Field(default_factory=utc_now)
    text: str
    author: Author = Field(default=Author.USER, validate_default=True)

    class Config:
        use_enum_values = True


# ---- Flashcard ----

class Flashcard(BaseModel):
    """
    A single card inside a deck document.

    Memory state is stored flat (last_interval_days, stability, difficulty,
    lapses) next to the explicit lifecycle stage.
    """
    id: str = Field(default_factory=generate_id)
    text: str = Field(..., description="Question shown to the learner")
    answer: str = Field(..., description="Expected answer")
    image: Optional[str] = None

    stage: CardStage = Field(default=CardStage.NEW, validate_default=True, description="Lifecycle stage")

    # Memory state
    last_interval_days: float = Field(default=INITIAL_INTERVAL_DAYS, gt=0)
    stability: float = Field(default=INITIAL_STABILITY, ge=0)
    difficulty: float = Field(default_factory=initial_difficulty, ge=0, le=1)
    lapses: int = Field(default=INITIAL_LAPSES, ge=0)

    attempts: list[Attempt] = Field(default_factory=list)
    chat: list[ChatMessage] = Field(default_factory=list)

    class Config:
        use_enum_values = True

    def memory_state(self) -> ItemState:
        """Current memory state as the engine's value type."""
        return ItemState(
            last_interval_days=self.last_interval_days,
            stability=self.stability,
            difficulty=self.difficulty,
            lapses=self.lapses,
        )

    def with_memory_state(self, state: ItemState, stage: Optional[CardStage] = None) -> Flashcard:
        """Copy of this card carrying a new memory state (and optionally stage)."""
        update = {
            "last_interval_days": state.last_interval_days,
            "stability": state.stability,
            "difficulty": state.difficulty,
            "lapses": state.lapses,
        }
        if stage is not None:
            update["stage"] = CardStage(stage).value
        return self.model_copy(update=update)


# ---- Deck ----

class Deck(BaseModel):
    """One document per deck in the decks collection."""
    id: str = Field(default_factory=generate_id)
    name: str
    created_at: datetime = Field(default_factory=utc_now)
    flashcards: list[Flashcard] = Field(default_factory=list)

    def get_flashcard(self, card_id: str) -> Optional[Flashcard]:
        return next((card for card in self.flashcards if card.id == card_id), None)
