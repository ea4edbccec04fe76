"""
flashdeck - spaced-repetition scheduling for flashcard decks.

Subpackages and modules:
- sm17: grade translation, memory state and the repetition engine
- scheduler: applies a review to a flashcard record
- review_queue: due offsets and review ordering for a deck snapshot
- deck_repo / study: MongoDB deck store and the submit-answer flow
"""

__version__ = "0.1.0"
