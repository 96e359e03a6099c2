"""
Indian Rummy - Deck Engine

Deck construction, shuffling, wild joker selection and dealing.

Two standard 52-card decks plus two printed jokers make the 106-card game
deck. Card ids come from an explicit CardIdGenerator so that ids stay
unique across the merged decks without any process-wide counter.

All methods are stateless class methods operating on immutable data.
Randomness comes from an injectable `random.Random`; pass a seeded one
for reproducible deals.
"""

import itertools
import random
from collections import Counter
from dataclasses import dataclass, replace
from typing import ClassVar, Sequence, TypeVar

from indian_rummy.engine.base import DECK_SIZE, HAND_SIZE, Card, Rank, Suit
from indian_rummy.engine.errors import ConsistencyError

T = TypeVar("T")


class CardIdGenerator:
    """
    Per-game source of card ids.

    Ids look like ``hearts-A-0`` with a counter that keeps increasing for the
    lifetime of the generator, so the second standard deck never reuses an
    id from the first.
    """

    def __init__(self, start: int = 0) -> None:
        self._counter = itertools.count(start)

    def __call__(self, suit: Suit, rank: Rank) -> str:
        return f"{suit.value}-{rank.value}-{next(self._counter)}"


@dataclass(frozen=True)
class DealResult:
    """
    Partition of a deck after dealing.

    Attributes:
        hands: One hand per player, in deal order
        open_pile: Face-up discard stock (a single card after the deal)
        closed_pile: Face-down draw stock; the last card is the top
    """
    hands: tuple[tuple[Card, ...], ...]
    open_pile: tuple[Card, ...]
    closed_pile: tuple[Card, ...]

    @property
    def card_count(self) -> int:
        return sum(len(h) for h in self.hands) + len(self.open_pile) + len(self.closed_pile)


class DeckEngine:
    """Stateless engine for deck construction and dealing."""

    STANDARD_DECKS: ClassVar[int] = 2
    PRINTED_JOKERS: ClassVar[int] = 2
    SUIT_ORDER: ClassVar[dict[Suit, int]] = {
        Suit.HEARTS: 0,
        Suit.DIAMONDS: 1,
        Suit.CLUBS: 2,
        Suit.SPADES: 3,
        Suit.JOKER: 4,
    }
    RANK_ORDER: ClassVar[dict[Rank, int]] = {
        **{rank: i + 1 for i, rank in enumerate(Rank.standard())},
        Rank.JOKER: 14,
    }

    @classmethod
    def create_single_deck(cls, id_source: CardIdGenerator) -> list[Card]:
        """Create one standard 52-card deck."""
        return [
            Card(id=id_source(suit, rank), suit=suit, rank=rank)
            for suit in Suit.standard()
            for rank in Rank.standard()
        ]

    @classmethod
    def create_deck(cls, id_source: CardIdGenerator | None = None) -> list[Card]:
        """
        Create the full 106-card game deck.

        Args:
            id_source: Id generator for this game (a fresh one if omitted)

        Returns:
            Two standard decks followed by two printed jokers

        Raises:
            ConsistencyError: If the card count or id uniqueness is violated
        """
        if id_source is None:
            id_source = CardIdGenerator()

        deck: list[Card] = []
        for _ in range(cls.STANDARD_DECKS):
            deck.extend(cls.create_single_deck(id_source))
        for _ in range(cls.PRINTED_JOKERS):
            deck.append(Card(
                id=id_source(Suit.JOKER, Rank.JOKER),
                suit=Suit.JOKER,
                rank=Rank.JOKER,
                is_printed_joker=True,
            ))

        cls.check_deck(deck)
        return deck

    @classmethod
    def check_deck(cls, cards: Sequence[Card], expected_size: int = DECK_SIZE) -> None:
        """Raise ConsistencyError unless `cards` has the expected size and unique ids."""
        if len(cards) != expected_size:
            raise ConsistencyError(
                f"Card count mismatch: {len(cards)} (expected {expected_size})"
            )
        counts = Counter(c.id for c in cards)
        duplicates = sorted(card_id for card_id, n in counts.items() if n > 1)
        if duplicates:
            raise ConsistencyError(f"Duplicate card ids: {duplicates}")

    @classmethod
    def shuffle(cls, items: Sequence[T], rng: random.Random | None = None) -> list[T]:
        """
        Fisher-Yates shuffle into a new list.

        The input is not mutated.
        """
        rng = rng or random
        shuffled = list(items)
        for i in range(len(shuffled) - 1, 0, -1):
            j = rng.randrange(i + 1)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    @classmethod
    def select_wild_joker_rank(cls, rng: random.Random | None = None) -> Rank:
        """Pick the wild rank uniformly from the 13 standard ranks."""
        return (rng or random).choice(Rank.standard())

    @classmethod
    def mark_wild_jokers(cls, deck: Sequence[Card], rank: Rank) -> list[Card]:
        """Return a deck where every non-printed card of `rank` is a wild joker."""
        return [
            replace(card, is_wild_joker=not card.is_printed_joker and card.rank is rank)
            for card in deck
        ]

    @classmethod
    def deal_cards(
        cls,
        deck: Sequence[Card],
        player_count: int,
        hand_size: int = HAND_SIZE,
        rng: random.Random | None = None,
    ) -> DealResult:
        """
        Shuffle and deal.

        Each player receives `hand_size` consecutive cards of the shuffled
        deck, the next card opens the discard pile and the rest become the
        closed pile.

        Args:
            deck: Cards to deal
            player_count: Number of hands to deal
            hand_size: Cards per hand
            rng: Random source for the shuffle

        Returns:
            DealResult partitioning every input card exactly once

        Raises:
            ValueError: If the deck is too small for the requested deal
        """
        if player_count < 1:
            raise ValueError(f"Player count must be positive, got {player_count}.")
        needed = player_count * hand_size + 1
        if needed > len(deck):
            raise ValueError(
                f"Cannot deal {hand_size} cards to {player_count} players "
                f"from a deck of {len(deck)} (need {needed})."
            )

        shuffled = cls.shuffle(deck, rng)
        hands = tuple(
            tuple(shuffled[i * hand_size:(i + 1) * hand_size])
            for i in range(player_count)
        )
        dealt = player_count * hand_size
        result = DealResult(
            hands=hands,
            open_pile=(shuffled[dealt],),
            closed_pile=tuple(shuffled[dealt + 1:]),
        )

        if result.card_count != len(deck):
            raise ConsistencyError(
                f"Deal lost cards: {result.card_count} dealt from {len(deck)}"
            )
        return result

    @classmethod
    def sort_hand(cls, hand: Sequence[Card]) -> list[Card]:
        """Display ordering: by suit, then by rank (Ace low, joker last)."""
        return sorted(
            hand,
            key=lambda c: (cls.SUIT_ORDER[c.suit], cls.RANK_ORDER[c.rank]),
        )
