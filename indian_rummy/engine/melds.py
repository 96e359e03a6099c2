"""
Indian Rummy - Meld Validation

Pure functions deciding whether cards form a legal set, sequence or pure
sequence, and whether a full 13-card declaration is legal. Every function
is total over any sequence of cards and has no side effects.
"""

from dataclasses import dataclass
from typing import Sequence

from indian_rummy.engine.base import HAND_SIZE, Card, Meld, MeldType, Rank

MIN_MELD_SIZE = 3
MAX_SET_SIZE = 4
MAX_SEQUENCE_SIZE = 13
MIN_SEQUENCES = 2

# Ace is low for sequence building; J/Q/K follow 10.
_RANK_VALUES: dict[Rank, int] = {rank: i + 1 for i, rank in enumerate(Rank.standard())}

_SEQUENCE_TYPES = frozenset({MeldType.SEQUENCE, MeldType.PURE_SEQUENCE})


@dataclass(frozen=True)
class DeclarationResult:
    """
    Outcome of validating a declaration.

    Attributes:
        valid: Whether the declaration is legal
        reason: First violated rule, None when valid
        invalid_meld_index: Zero-based index of the first failing meld, if any
    """
    valid: bool
    reason: str | None = None
    invalid_meld_index: int | None = None

    def __bool__(self) -> bool:
        return self.valid


def is_joker(card: Card) -> bool:
    """True if the card is a printed or wild joker."""
    return card.is_joker


def rank_value(rank: Rank) -> int:
    """
    Sequence position of a rank: A=1 ... K=13.

    Raises:
        ValueError: For the JOKER rank, which has no position
    """
    try:
        return _RANK_VALUES[rank]
    except KeyError:
        raise ValueError(f"Rank {rank.value} has no sequence value.") from None


def _split_jokers(cards: Sequence[Card]) -> tuple[list[Card], int]:
    naturals = [c for c in cards if not is_joker(c)]
    return naturals, len(cards) - len(naturals)


def validate_set(cards: Sequence[Card]) -> bool:
    """
    3-4 cards of one rank in distinct suits, jokers substituting freely.

    Duplicate suits among the non-joker cards invalidate the set even when
    jokers are present.
    """
    if not MIN_MELD_SIZE <= len(cards) <= MAX_SET_SIZE:
        return False

    naturals, _ = _split_jokers(cards)
    if not naturals:
        return False

    if len({c.rank for c in naturals}) != 1:
        return False

    suits = [c.suit for c in naturals]
    return len(set(suits)) == len(suits)


def validate_sequence(cards: Sequence[Card]) -> bool:
    """
    3+ consecutive cards of one suit, jokers filling interior gaps.

    The jokers must fill the gaps between the lowest and highest natural
    card exactly: the run spans precisely ``len(cards)`` ranks.
    """
    if len(cards) < MIN_MELD_SIZE:
        return False

    naturals, jokers = _split_jokers(cards)
    if not naturals:
        return False

    if len({c.suit for c in naturals}) != 1:
        return False

    values = sorted(rank_value(c.rank) for c in naturals)
    for low, high in zip(values, values[1:]):
        gap = high - low - 1
        if gap < 0:
            # two cards cannot occupy the same slot
            return False
        jokers -= gap
        if jokers < 0:
            return False

    run_length = values[-1] - values[0] + 1
    return run_length == len(cards) and MIN_MELD_SIZE <= run_length <= MAX_SEQUENCE_SIZE


def validate_pure_sequence(cards: Sequence[Card]) -> bool:
    """A sequence with no joker substitution at all."""
    if any(is_joker(c) for c in cards):
        return False
    return validate_sequence(cards)


_VALIDATORS = {
    MeldType.SEQUENCE: validate_sequence,
    MeldType.PURE_SEQUENCE: validate_pure_sequence,
    MeldType.SET: validate_set,
}


def validate_meld(meld: Meld) -> bool:
    """Validate a meld against its declared type."""
    return _VALIDATORS[meld.type](meld.cards)


def validate_declaration(melds: Sequence[Meld]) -> DeclarationResult:
    """
    Validate a complete declaration.

    Rules are checked in priority order and the first failure is reported:

    1. The melds hold exactly 13 cards.
    2. Every meld is valid for its declared type.
    3. At least two melds are sequences (pure or not).
    4. At least one meld is a pure sequence.

    Args:
        melds: Proposed groupings covering the hand

    Returns:
        DeclarationResult describing the first violated rule, if any
    """
    total_cards = sum(len(m.cards) for m in melds)
    if total_cards != HAND_SIZE:
        return DeclarationResult(
            valid=False,
            reason=f"Must use all {HAND_SIZE} cards (got {total_cards})",
        )

    for index, meld in enumerate(melds):
        if not validate_meld(meld):
            return DeclarationResult(
                valid=False,
                reason=f"Meld {index + 1} is not a valid {meld.type.value} "
                       f"({len(meld.cards)} cards)",
                invalid_meld_index=index,
            )

    sequences = sum(1 for m in melds if m.type in _SEQUENCE_TYPES)
    if sequences < MIN_SEQUENCES:
        return DeclarationResult(
            valid=False,
            reason=f"Need at least {MIN_SEQUENCES} sequences",
        )

    if not any(m.type is MeldType.PURE_SEQUENCE for m in melds):
        return DeclarationResult(valid=False, reason="Need at least 1 pure sequence")

    return DeclarationResult(valid=True)


def review_melds(melds: Sequence[Meld], unassigned: Sequence[Card] = ()) -> list[str]:
    """
    List what still blocks a declaration that is being assembled.

    Unlike `validate_declaration` this reports every problem at once and
    counts only melds that are actually valid toward the sequence rules.
    Empty melds are ignored.

    Returns:
        Human-readable problems; empty when the hand can be declared
    """
    problems: list[str] = []
    sequences = 0
    has_pure = False

    for index, meld in enumerate(melds):
        if not meld.cards:
            continue
        if not validate_meld(meld):
            problems.append(f"Meld {index + 1} is invalid")
            continue
        if meld.type in _SEQUENCE_TYPES:
            sequences += 1
        if meld.type is MeldType.PURE_SEQUENCE:
            has_pure = True

    if any(m.cards for m in melds):
        if not has_pure:
            problems.append("Need at least 1 pure sequence")
        if sequences < MIN_SEQUENCES:
            problems.append(f"Need at least {MIN_SEQUENCES} sequences total")

    if unassigned:
        problems.append(f"All {HAND_SIZE} cards must be assigned to melds")

    return problems
