"""
Indian Rummy - Game Engine Base Classes

This module defines the foundational data structures and enums used throughout
the game engine. All classes are immutable (frozen dataclasses) so a game
snapshot can be handed to any number of concurrent transaction attempts
without coordination. Each class converts to and from the plain dict shape
stored in the shared game document.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping


HAND_SIZE = 13
DECK_SIZE = 106


class Suit(Enum):
    """Card suits. Printed jokers carry the JOKER suit."""
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"
    JOKER = "joker"

    @classmethod
    def standard(cls) -> tuple["Suit", ...]:
        """The four playing suits, in display order."""
        return (cls.HEARTS, cls.DIAMONDS, cls.CLUBS, cls.SPADES)


class Rank(Enum):
    """Card ranks. Printed jokers carry the JOKER rank."""
    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    JOKER = "JOKER"

    @classmethod
    def standard(cls) -> tuple["Rank", ...]:
        """The thirteen playing ranks, Ace low."""
        return tuple(rank for rank in cls if rank is not cls.JOKER)


class MeldType(Enum):
    """Declared type of a proposed card grouping."""
    SEQUENCE = "sequence"
    PURE_SEQUENCE = "pure-sequence"
    SET = "set"


class GameStatus(Enum):
    """Lifecycle of a game document."""
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not GameStatus.IN_PROGRESS


class DeclarationType(Enum):
    """How a player's final score came about."""
    VALID = "valid"
    INVALID = "invalid"
    FIRST_DROP = "first-drop"
    MIDDLE_DROP = "middle-drop"


def _enum_or_none(enum_cls: type[Enum], value: Any) -> Any:
    return enum_cls(value) if value is not None else None


@dataclass(frozen=True)
class Card:
    """
    Immutable playing card.

    Attributes:
        id: Identifier unique across the whole 106-card game deck
        suit: Card suit (JOKER for printed jokers)
        rank: Card rank (JOKER for printed jokers)
        is_printed_joker: True only for the two printed jokers
        is_wild_joker: True when the card's rank is the game's wild rank
    """
    id: str
    suit: Suit
    rank: Rank
    is_printed_joker: bool = False
    is_wild_joker: bool = False

    def __post_init__(self) -> None:
        """Validate the printed/wild joker invariants."""
        joker_face = self.suit is Suit.JOKER or self.rank is Rank.JOKER
        if joker_face and not (
            self.suit is Suit.JOKER and self.rank is Rank.JOKER and self.is_printed_joker
        ):
            raise ValueError(
                f"Card {self.id}: joker suit/rank requires a printed joker "
                f"with both suit and rank JOKER."
            )
        if self.is_printed_joker and not joker_face:
            raise ValueError(f"Card {self.id}: printed joker must have joker suit and rank.")
        if self.is_printed_joker and self.is_wild_joker:
            raise ValueError(f"Card {self.id}: a printed joker cannot be a wild joker.")

    @property
    def is_joker(self) -> bool:
        """True if the card substitutes for any other card in melds."""
        return self.is_printed_joker or self.is_wild_joker

    def __str__(self) -> str:
        if self.is_printed_joker:
            return "JOKER"
        return f"{self.rank.value} of {self.suit.value}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Card":
        """Create a Card from its document form."""
        return cls(
            id=data["id"],
            suit=Suit(data["suit"]),
            rank=Rank(data["rank"]),
            is_printed_joker=bool(data.get("is_printed_joker", False)),
            is_wild_joker=bool(data.get("is_wild_joker", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to document form."""
        return {
            "id": self.id,
            "suit": self.suit.value,
            "rank": self.rank.value,
            "is_printed_joker": self.is_printed_joker,
            "is_wild_joker": self.is_wild_joker,
        }


@dataclass(frozen=True)
class Meld:
    """
    A proposed grouping of cards under a declared type.

    A meld only gains meaning once validated against its type.
    """
    type: MeldType
    cards: tuple[Card, ...]

    def __len__(self) -> int:
        return len(self.cards)

    @classmethod
    def of(cls, meld_type: MeldType, cards: Iterable[Card]) -> "Meld":
        """Create a Meld from any iterable of cards."""
        return cls(type=meld_type, cards=tuple(cards))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Meld":
        return cls(
            type=MeldType(data["type"]),
            cards=tuple(Card.from_dict(c) for c in data.get("cards") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "cards": [c.to_dict() for c in self.cards]}


@dataclass(frozen=True)
class Player:
    """
    Per-player slice of the game state.

    Attributes:
        id: Stable player identifier from the identity provider
        display_name: Name shown to other players
        hand: Cards held (13 between turns, 14 after a draw)
        score: Final or penalty score for this game
        has_drawn: Player drew this turn and must discard next
        has_declared: Player submitted a declaration
        has_dropped: Player left the hand
        melds: Final declared groupings
        drop_type: FIRST_DROP or MIDDLE_DROP once dropped
    """
    id: str
    display_name: str
    hand: tuple[Card, ...] = field(default_factory=tuple)
    score: int = 0
    has_drawn: bool = False
    has_declared: bool = False
    has_dropped: bool = False
    melds: tuple[Meld, ...] = field(default_factory=tuple)
    drop_type: DeclarationType | None = None

    @property
    def is_active(self) -> bool:
        """Still contesting the hand (neither dropped nor declared)."""
        return not (self.has_dropped or self.has_declared)

    def find_card(self, card_id: str) -> Card | None:
        """Return the card with the given id from this hand, if held."""
        for card in self.hand:
            if card.id == card_id:
                return card
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Player":
        return cls(
            id=data["id"],
            display_name=data.get("display_name") or "Player",
            hand=tuple(Card.from_dict(c) for c in data.get("hand") or ()),
            score=int(data.get("score", 0)),
            has_drawn=bool(data.get("has_drawn", False)),
            has_declared=bool(data.get("has_declared", False)),
            has_dropped=bool(data.get("has_dropped", False)),
            melds=tuple(Meld.from_dict(m) for m in data.get("melds") or ()),
            drop_type=_enum_or_none(DeclarationType, data.get("drop_type")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "hand": [c.to_dict() for c in self.hand],
            "score": self.score,
            "has_drawn": self.has_drawn,
            "has_declared": self.has_declared,
            "has_dropped": self.has_dropped,
            "melds": [m.to_dict() for m in self.melds],
            "drop_type": self.drop_type.value if self.drop_type else None,
        }


@dataclass(frozen=True)
class GameScore:
    """One player's line in the final result, produced once at completion."""
    player_id: str
    player_name: str
    score: int
    melds: tuple[Meld, ...] = field(default_factory=tuple)
    is_winner: bool = False
    declaration_type: DeclarationType | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameScore":
        return cls(
            player_id=data["player_id"],
            player_name=data.get("player_name") or "Player",
            score=int(data["score"]),
            melds=tuple(Meld.from_dict(m) for m in data.get("melds") or ()),
            is_winner=bool(data.get("is_winner", False)),
            declaration_type=_enum_or_none(DeclarationType, data.get("declaration_type")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "score": self.score,
            "melds": [m.to_dict() for m in self.melds],
            "is_winner": self.is_winner,
            "declaration_type": (
                self.declaration_type.value if self.declaration_type else None
            ),
        }


@dataclass(frozen=True)
class GameState:
    """
    Authoritative snapshot of one game.

    `turn_order` is the source of truth for sequencing; `players` is used
    for lookup only. Treat `players` as read-only: transitions build a new
    mapping through `with_player`.
    """
    game_id: str
    lobby_id: str
    status: GameStatus
    current_turn: str
    turn_order: tuple[str, ...]
    wild_joker_rank: Rank
    closed_pile: tuple[Card, ...]
    open_pile: tuple[Card, ...]
    players: Mapping[str, Player]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    winner: str | None = None
    scores: tuple[GameScore, ...] | None = None

    @property
    def card_count(self) -> int:
        """Cards across both piles and all hands."""
        return (
            len(self.closed_pile)
            + len(self.open_pile)
            + sum(len(p.hand) for p in self.players.values())
        )

    def ordered_players(self) -> list[Player]:
        """Players in turn order."""
        return [self.players[pid] for pid in self.turn_order]

    def active_players(self) -> list[Player]:
        """Players in turn order who have neither dropped nor declared."""
        return [p for p in self.ordered_players() if p.is_active]

    def with_player(self, player: Player, **changes: Any) -> "GameState":
        """Return a new state with one player replaced."""
        players = dict(self.players)
        players[player.id] = player
        return replace(self, players=players, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameState":
        """Create a GameState from the stored document."""
        scores = data.get("scores")
        return cls(
            game_id=data["game_id"],
            lobby_id=data["lobby_id"],
            status=GameStatus(data["status"]),
            current_turn=data["current_turn"],
            turn_order=tuple(data["turn_order"]),
            wild_joker_rank=Rank(data["wild_joker_rank"]),
            closed_pile=tuple(Card.from_dict(c) for c in data.get("closed_pile") or ()),
            open_pile=tuple(Card.from_dict(c) for c in data.get("open_pile") or ()),
            players={
                pid: Player.from_dict(p) for pid, p in (data.get("players") or {}).items()
            },
            created_at=datetime.fromisoformat(data["created_at"]),
            winner=data.get("winner"),
            scores=(
                tuple(GameScore.from_dict(s) for s in scores) if scores is not None else None
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored document shape."""
        data: dict[str, Any] = {
            "game_id": self.game_id,
            "lobby_id": self.lobby_id,
            "status": self.status.value,
            "current_turn": self.current_turn,
            "turn_order": list(self.turn_order),
            "wild_joker_rank": self.wild_joker_rank.value,
            "closed_pile": [c.to_dict() for c in self.closed_pile],
            "open_pile": [c.to_dict() for c in self.open_pile],
            "players": {pid: p.to_dict() for pid, p in self.players.items()},
            "created_at": self.created_at.isoformat(),
            "winner": self.winner,
        }
        if self.scores is not None:
            data["scores"] = [s.to_dict() for s in self.scores]
        return data
