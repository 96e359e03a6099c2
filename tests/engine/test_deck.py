"""
Tests for deck construction and dealing.
"""

import random
from collections import Counter

import pytest

from indian_rummy.engine.base import Card, Rank, Suit
from indian_rummy.engine.deck import CardIdGenerator, DeckEngine
from indian_rummy.engine.errors import ConsistencyError


class TestCardIdGenerator:
    def test_ids_keep_increasing(self):
        """Test each id gets the next counter value."""
        ids = CardIdGenerator()
        assert ids(Suit.HEARTS, Rank.ACE) == "hearts-A-0"
        assert ids(Suit.HEARTS, Rank.ACE) == "hearts-A-1"

    def test_independent_generators(self):
        """Test generators do not share a counter."""
        first, second = CardIdGenerator(), CardIdGenerator()
        first(Suit.CLUBS, Rank.TWO)
        assert second(Suit.CLUBS, Rank.TWO) == "clubs-2-0"

    def test_custom_start(self):
        """Test the counter can start at a given value."""
        assert CardIdGenerator(start=500)(Suit.SPADES, Rank.KING) == "spades-K-500"


class TestCreateDeck:
    """Tests for the 106-card game deck."""

    def test_single_deck(self):
        """Test one standard deck has 52 distinct cards."""
        deck = DeckEngine.create_single_deck(CardIdGenerator())
        assert len(deck) == 52
        assert len({(c.suit, c.rank) for c in deck}) == 52

    def test_deck_size_and_unique_ids(self):
        """Test the game deck has 106 cards with unique ids."""
        deck = DeckEngine.create_deck()
        assert len(deck) == 106
        assert len({c.id for c in deck}) == 106

    def test_two_of_every_standard_card(self):
        """Test every suit and rank appears exactly twice."""
        deck = DeckEngine.create_deck()
        counts = Counter((c.suit, c.rank) for c in deck if not c.is_printed_joker)
        assert len(counts) == 52
        assert set(counts.values()) == {2}

    def test_two_printed_jokers(self):
        """Test the deck carries two printed jokers."""
        jokers = [c for c in DeckEngine.create_deck() if c.is_printed_joker]
        assert len(jokers) == 2
        assert all(c.suit is Suit.JOKER and c.rank is Rank.JOKER for c in jokers)

    def test_no_wild_jokers_before_marking(self):
        """Test a fresh deck has no wild jokers."""
        assert not any(c.is_wild_joker for c in DeckEngine.create_deck())

    def test_repeated_decks_are_each_unique(self):
        """Test successive decks from fresh generators are individually consistent."""
        for _ in range(3):
            DeckEngine.check_deck(DeckEngine.create_deck())


class TestCheckDeck:
    def test_wrong_size(self):
        """Test a short deck fails the count check."""
        with pytest.raises(ConsistencyError, match="Card count mismatch: 105"):
            DeckEngine.check_deck(DeckEngine.create_deck()[:-1])

    def test_duplicate_ids(self):
        """Test a repeated card id fails the check."""
        deck = DeckEngine.create_deck()
        deck[-1] = deck[0]
        with pytest.raises(ConsistencyError, match="Duplicate card ids"):
            DeckEngine.check_deck(deck)

    def test_custom_size(self):
        """Test the expected size can be overridden."""
        DeckEngine.check_deck(DeckEngine.create_single_deck(CardIdGenerator()), expected_size=52)


class TestShuffle:
    def test_is_a_permutation(self):
        """Test shuffling keeps every item."""
        items = list(range(50))
        shuffled = DeckEngine.shuffle(items, random.Random(3))
        assert sorted(shuffled) == items

    def test_input_not_mutated(self):
        """Test shuffling returns a new list."""
        items = list(range(10))
        DeckEngine.shuffle(items, random.Random(3))
        assert items == list(range(10))

    def test_seeded_shuffle_is_reproducible(self):
        """Test the same seed gives the same order."""
        items = list(range(20))
        assert DeckEngine.shuffle(items, random.Random(9)) == DeckEngine.shuffle(
            items, random.Random(9)
        )


class TestWildJokers:
    def test_select_wild_rank_is_standard(self):
        """Test the wild rank is never the joker rank."""
        rng = random.Random(0)
        for _ in range(50):
            assert DeckEngine.select_wild_joker_rank(rng) in Rank.standard()

    def test_mark_wild_jokers(self):
        """Test all eight cards of the wild rank become jokers."""
        deck = DeckEngine.mark_wild_jokers(DeckEngine.create_deck(), Rank.SEVEN)
        wild = [c for c in deck if c.is_wild_joker]
        assert len(wild) == 8
        assert all(c.rank is Rank.SEVEN for c in wild)
        assert not any(c.is_printed_joker and c.is_wild_joker for c in deck)

    def test_mark_wild_jokers_clears_previous_rank(self):
        """Test re-marking moves the wild flag to the new rank."""
        deck = DeckEngine.mark_wild_jokers(DeckEngine.create_deck(), Rank.SEVEN)
        deck = DeckEngine.mark_wild_jokers(deck, Rank.TWO)
        assert {c.rank for c in deck if c.is_wild_joker} == {Rank.TWO}


class TestDealCards:
    """Tests for dealing hands and piles."""

    def test_partition_preserves_every_card(self):
        """Test hands + open + closed equal the input deck exactly."""
        deck = DeckEngine.create_deck()
        deal = DeckEngine.deal_cards(deck, 4, rng=random.Random(42))

        dealt = [c for hand in deal.hands for c in hand]
        dealt += list(deal.open_pile) + list(deal.closed_pile)
        assert Counter(dealt) == Counter(deck)

    @pytest.mark.parametrize("players", [2, 3, 6])
    def test_pile_sizes(self, players):
        """Test hand and pile sizes for different table sizes."""
        deal = DeckEngine.deal_cards(DeckEngine.create_deck(), players, rng=random.Random(1))
        assert len(deal.hands) == players
        assert all(len(hand) == 13 for hand in deal.hands)
        assert len(deal.open_pile) == 1
        assert len(deal.closed_pile) == 106 - 13 * players - 1
        assert deal.card_count == 106

    def test_deck_too_small(self):
        """Test dealing more hands than the deck holds fails."""
        with pytest.raises(ValueError, match="Cannot deal"):
            DeckEngine.deal_cards(DeckEngine.create_deck(), 9)

    def test_needs_a_player(self):
        """Test dealing to zero players fails."""
        with pytest.raises(ValueError, match="must be positive"):
            DeckEngine.deal_cards(DeckEngine.create_deck(), 0)

    def test_custom_hand_size(self):
        """Test dealing a smaller hand size."""
        deal = DeckEngine.deal_cards(DeckEngine.create_deck(), 2, hand_size=10,
                                     rng=random.Random(1))
        assert [len(h) for h in deal.hands] == [10, 10]


class TestSortHand:
    def test_suit_then_rank_with_joker_last(self, card, joker):
        """Test hands sort by suit, then rank, with jokers at the end."""
        hand = [joker(), card("K", "spades"), card("A", "spades"), card("10", "hearts"),
                card("2", "diamonds")]
        ordered = DeckEngine.sort_hand(hand)
        assert [str(c) for c in ordered] == [
            "10 of hearts",
            "2 of diamonds",
            "A of spades",
            "K of spades",
            "JOKER",
        ]

    def test_sort_returns_new_list(self, card):
        """Test sorting leaves the input hand in place."""
        hand = [card("3"), card("2")]
        DeckEngine.sort_hand(hand)
        assert [c.rank for c in hand] == [Rank.THREE, Rank.TWO]

    def test_cards_are_hashable(self, card):
        """Test cards can key counters (used for deal conservation checks)."""
        c: Card = card("5")
        assert Counter([c, c])[c] == 2
