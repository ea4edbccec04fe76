"""
MongoDB repository for decks and flashcards.

One document per deck, flashcards embedded. Attempt history is only ever
appended ($push); memory state is written back with targeted $set updates
so concurrent attempt appends are never overwritten.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.collection import Collection

from flashdeck.logging_config import get_logger
from flashdeck.schemas import Attempt, ChatMessage, Deck, Flashcard
from flashdeck.sm17.constants import CardStage

# Load environment
load_dotenv()

logger = get_logger(__name__)

# Configuration
DEFAULT_DB_NAME = "flashdeck"
COLLECTION_NAME = "decks"
NO_ID = {"_id": 0}

# Global connection pool (reused across requests)
_client: Optional[MongoClient] = None
_collection: Optional[Collection] = None


class DeckNotFound(LookupError):
    """No deck with the requested id."""
    def __init__(self, deck_id: str):
        self.deck_id = deck_id
        super().__init__(f"Deck not found: {deck_id}")


class CardNotFound(LookupError):
    """No flashcard with the requested id in the deck."""
    def __init__(self, deck_id: str, card_id: str):
        self.deck_id = deck_id
        self.card_id = card_id
        super().__init__(f"Flashcard {card_id} not found in deck {deck_id}")


# ---- Connection Management ----

def get_collection() -> Collection:
    """
    Get the MongoDB decks collection.

    Uses a persistent connection pool that's reused across requests.

    Returns:
        MongoDB collection object
    """
    global _client, _collection

    if _collection is not None:
        return _collection

    mongo_uri = os.getenv("MONGO_URI")
    if not mongo_uri:
        raise ValueError("MONGO_URI not found in environment variables")

    db_name = os.getenv("MONGO_DB", DEFAULT_DB_NAME)
    _client = MongoClient(
        mongo_uri,
        maxPoolSize=10,
        minPoolSize=1,
        maxIdleTimeMS=60000
    )
    _collection = _client[db_name][COLLECTION_NAME]
    logger.info("Connected to deck store %s.%s", db_name, COLLECTION_NAME)

    return _collection


def close() -> None:
    """Close the shared client (e.g. at process shutdown)."""
    global _client, _collection
    if _client is not None:
        _client.close()
    _client = None
    _collection = None


# ---- Decks ----

def create_deck(
    name: str,
    deck_id: Optional[str] = None,
    collection: Optional[Collection] = None
) -> Deck:
    """
    Create an empty deck.

    Args:
        name: Display name
        deck_id: Explicit id (random hex if omitted)
        collection: Override the shared collection

    Returns:
        The created Deck
    """
    collection = collection if collection is not None else get_collection()
    deck = Deck(name=name) if deck_id is None else Deck(id=deck_id, name=name)
    collection.insert_one(deck.model_dump())
    logger.info("Created deck %s (%s)", deck.id, name)
    return deck


def get_deck(deck_id: str, collection: Optional[Collection] = None) -> Deck:
    """
    Load a deck with all of its flashcards.

    Raises:
        DeckNotFound: no deck with this id
    """
    collection = collection if collection is not None else get_collection()
    doc = collection.find_one({"id": deck_id}, NO_ID)
    if doc is None:
        raise DeckNotFound(deck_id)
    return Deck.model_validate(doc)


def get_all_decks(collection: Optional[Collection] = None) -> list[Deck]:
    """Load every deck."""
    collection = collection if collection is not None else get_collection()
    return [Deck.model_validate(doc) for doc in collection.find({}, NO_ID)]


# ---- Flashcards ----

def get_flashcard(
    deck_id: str,
    card_id: str,
    collection: Optional[Collection] = None
) -> Flashcard:
    """
    Load a single flashcard.

    Raises:
        DeckNotFound: no deck with this id
        CardNotFound: deck has no card with this id
    """
    card = get_deck(deck_id, collection).get_flashcard(card_id)
    if card is None:
        raise CardNotFound(deck_id, card_id)
    return card


def add_flashcard(
    deck_id: str,
    text: str,
    answer: str,
    image: Optional[str] = None,
    collection: Optional[Collection] = None
) -> Flashcard:
    """
    Add a new card with default memory state and stage NEW.

    Raises:
        DeckNotFound: no deck with this id
    """
    collection = collection if collection is not None else get_collection()
    card = Flashcard(text=text, answer=answer, image=image)
    result = collection.update_one(
        {"id": deck_id},
        {"$push": {"flashcards": card.model_dump()}}
    )
    if result.matched_count == 0:
        raise DeckNotFound(deck_id)
    logger.debug("Added flashcard %s to deck %s", card.id, deck_id)
    return card


def _update_card(
    collection: Collection,
    deck_id: str,
    card_id: str,
    update: dict
) -> None:
    result = collection.update_one(
        {"id": deck_id, "flashcards.id": card_id},
        update
    )
    if result.matched_count == 0:
        raise CardNotFound(deck_id, card_id)


def append_attempt(
    deck_id: str,
    card_id: str,
    attempt: Attempt,
    collection: Optional[Collection] = None
) -> None:
    """
    Append an attempt to a card's history.

    Raises:
        CardNotFound: deck/card pair does not exist
    """
    collection = collection if collection is not None else get_collection()
    _update_card(
        collection, deck_id, card_id,
        {"$push": {"flashcards.$.attempts": attempt.model_dump()}}
    )


def add_chat_message(
    deck_id: str,
    card_id: str,
    message: ChatMessage,
    collection: Optional[Collection] = None
) -> None:
    """
    Append a message to a card's chat.

    Raises:
        CardNotFound: deck/card pair does not exist
    """
    collection = collection if collection is not None else get_collection()
    _update_card(
        collection, deck_id, card_id,
        {"$push": {"flashcards.$.chat": message.model_dump()}}
    )


def save_card_state(
    deck_id: str,
    card: Flashcard,
    collection: Optional[Collection] = None
) -> None:
    """
    Write a card's memory state and stage back to the deck.

    Only the scheduling fields are touched; text, attempts and chat are left
    alone.

    Raises:
        CardNotFound: deck/card pair does not exist
    """
    collection = collection if collection is not None else get_collection()
    _update_card(collection, deck_id, card.id, {"$set": _state_fields(card)})


def _state_fields(card: Flashcard) -> dict:
    return {
        "flashcards.$.last_interval_days": card.last_interval_days,
        "flashcards.$.stability": card.stability,
        "flashcards.$.difficulty": card.difficulty,
        "flashcards.$.lapses": card.lapses,
        "flashcards.$.stage": CardStage(card.stage).value,
    }


def record_review(
    deck_id: str,
    card: Flashcard,
    attempt: Attempt,
    message: Optional[ChatMessage] = None,
    collection: Optional[Collection] = None
) -> None:
    """
    Store one review in a single update: the attempt (and evaluator message)
    is appended and the new memory state and stage are set together.

    A single-document update is atomic in MongoDB, so a failure leaves the
    card exactly as it was.

    Raises:
        CardNotFound: deck/card pair does not exist
    """
    collection = collection if collection is not None else get_collection()
    push = {"flashcards.$.attempts": attempt.model_dump()}
    if message is not None:
        push["flashcards.$.chat"] = message.model_dump()
    _update_card(
        collection, deck_id, card.id,
        {"$push": push, "$set": _state_fields(card)}
    )


def delete_flashcard(
    deck_id: str,
    card_id: str,
    collection: Optional[Collection] = None
) -> None:
    """
    Remove a card (and with it its memory state and history).

    Raises:
        CardNotFound: deck has no card with this id
    """
    collection = collection if collection is not None else get_collection()
    result = collection.update_one(
        {"id": deck_id, "flashcards.id": card_id},
        {"$pull": {"flashcards": {"id": card_id}}}
    )
    if result.matched_count == 0:
        raise CardNotFound(deck_id, card_id)
    logger.info("Deleted flashcard %s from deck %s", card_id, deck_id)
