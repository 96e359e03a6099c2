"""
Indian Rummy - Test Configuration and Fixtures

Common fixtures and test data for all test modules.
"""

import itertools
import random
from datetime import datetime, timezone

import pytest

from indian_rummy.config.settings import Settings
from indian_rummy.database.store import InMemoryDocumentStore
from indian_rummy.engine.base import (
    Card,
    GameState,
    GameStatus,
    Meld,
    MeldType,
    Player,
    Rank,
    Suit,
)
from indian_rummy.engine.deck import DeckEngine
from indian_rummy.services.game_service import GameService


CREATED_AT = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# CARD FACTORIES
# =============================================================================

@pytest.fixture
def card():
    """
    Factory for natural (or wild) cards with unique ids.

    Usage: card("7", "hearts"), card("K", "spades", wild=True)
    """
    counter = itertools.count()

    def make(rank: str, suit: str = "hearts", *, wild: bool = False) -> Card:
        return Card(
            id=f"{suit}-{rank}-t{next(counter)}",
            suit=Suit(suit),
            rank=Rank(rank),
            is_wild_joker=wild,
        )

    return make


@pytest.fixture
def joker():
    """Factory for printed jokers with unique ids."""
    counter = itertools.count()

    def make() -> Card:
        return Card(
            id=f"joker-JOKER-t{next(counter)}",
            suit=Suit.JOKER,
            rank=Rank.JOKER,
            is_printed_joker=True,
        )

    return make


# =============================================================================
# RIGGED GAME STATE
# =============================================================================

# Alice's hand: A-2-3 of hearts, 5-8 of spades, three 9s and three Ks.
WINNING_HAND = (
    ("hearts", "A"), ("hearts", "2"), ("hearts", "3"),
    ("spades", "5"), ("spades", "6"), ("spades", "7"), ("spades", "8"),
    ("hearts", "9"), ("diamonds", "9"), ("clubs", "9"),
    ("hearts", "K"), ("spades", "K"), ("diamonds", "K"),
)


def _take(deck: list[Card], suit: str, rank: str) -> Card:
    for i, c in enumerate(deck):
        if c.suit.value == suit and c.rank.value == rank:
            return deck.pop(i)
    raise LookupError(f"No {rank} of {suit} left in deck")


@pytest.fixture
def rigged_state() -> GameState:
    """
    Three-player game where alice holds a declarable hand.

    Fours are wild. Turn order is alice, bob, carol and it is alice's turn.
    """
    deck = DeckEngine.mark_wild_jokers(DeckEngine.create_deck(), Rank.FOUR)
    alice_hand = tuple(_take(deck, suit, rank) for suit, rank in WINNING_HAND)

    players = {
        "alice": Player(id="alice", display_name="Alice", hand=alice_hand),
        "bob": Player(id="bob", display_name="Bob", hand=tuple(deck[:13])),
        "carol": Player(id="carol", display_name="Carol", hand=tuple(deck[13:26])),
    }
    return GameState(
        game_id="game-1",
        lobby_id="lobby-1",
        status=GameStatus.IN_PROGRESS,
        current_turn="alice",
        turn_order=("alice", "bob", "carol"),
        wild_joker_rank=Rank.FOUR,
        closed_pile=tuple(deck[27:]),
        open_pile=(deck[26],),
        players=players,
        created_at=CREATED_AT,
    )


@pytest.fixture
def winning_melds(rigged_state: GameState) -> list[Meld]:
    """A valid declaration built from alice's hand in the rigged game."""
    hand = rigged_state.players["alice"].hand
    return [
        Meld.of(MeldType.PURE_SEQUENCE, hand[0:3]),
        Meld.of(MeldType.SEQUENCE, hand[3:7]),
        Meld.of(MeldType.SET, hand[7:10]),
        Meld.of(MeldType.SET, hand[10:13]),
    ]


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings for the in-memory backend, isolated from the environment."""
    return Settings(
        _env_file=None,
        store_backend="memory",
        max_transaction_retries=3,
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def service(store: InMemoryDocumentStore, settings: Settings) -> GameService:
    return GameService(store, settings=settings)


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible deals."""
    return random.Random(1234)
