"""
Indian Rummy - Scoring Engine

Deadwood points, declaration/drop penalties, final score lines and the
running per-lobby tally.

Lower is better: the winner scores 0, everyone else collects points.
Ace is worth 10 here even though it is low for sequence adjacency; the two
numeric meanings are independent.

All methods are stateless class methods operating on immutable data.
"""

from dataclasses import dataclass, replace
from typing import Any, ClassVar, Iterable, Mapping, Sequence

from indian_rummy.engine.base import (
    Card,
    DeclarationType,
    GameScore,
    Meld,
    Player,
    Rank,
)


@dataclass(frozen=True)
class LobbyScore:
    """
    Running totals for one player across the games of a lobby.

    Attributes:
        total_score: Sum of game scores (lower is better)
        games_played: Games with a recorded result
        games_won: Games won
        best_hand: Lowest single-game score, None before the first game
    """
    total_score: int = 0
    games_played: int = 0
    games_won: int = 0
    best_hand: int | None = None

    @property
    def win_rate(self) -> float:
        """Fraction of games won, 0.0 before the first game."""
        if self.games_played == 0:
            return 0.0
        return self.games_won / self.games_played

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LobbyScore":
        return cls(
            total_score=int(data.get("total_score", 0)),
            games_played=int(data.get("games_played", 0)),
            games_won=int(data.get("games_won", 0)),
            best_hand=data.get("best_hand"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_score": self.total_score,
            "games_played": self.games_played,
            "games_won": self.games_won,
            "best_hand": self.best_hand,
        }


class ScoringEngine:
    """Stateless engine for card points and end-of-game scoring."""

    FACE_CARD_POINTS: ClassVar[int] = 10
    HIGH_RANKS: ClassVar[frozenset[Rank]] = frozenset(
        {Rank.JACK, Rank.QUEEN, Rank.KING, Rank.ACE}
    )
    INVALID_DECLARATION_PENALTY: ClassVar[int] = 80
    FIRST_DROP_PENALTY: ClassVar[int] = 20
    MIDDLE_DROP_PENALTY: ClassVar[int] = 40
    WINNER_SCORE: ClassVar[int] = 0

    @classmethod
    def card_points(cls, card: Card) -> int:
        """
        Deadwood value of a card.

        Jokers (printed or wild) are 0, J/Q/K/A are 10, 2-10 are face value.
        """
        if card.is_joker:
            return 0
        if card.rank in cls.HIGH_RANKS:
            return cls.FACE_CARD_POINTS
        return int(card.rank.value)

    @classmethod
    def calculate_deadwood(cls, cards: Iterable[Card]) -> int:
        """Sum of card points over cards not assigned to any meld."""
        return sum(cls.card_points(c) for c in cards)

    @classmethod
    def calculate_meld_points(cls, cards: Iterable[Card]) -> int:
        """Point value of a meld's cards (shown alongside declarations)."""
        return cls.calculate_deadwood(cards)

    @classmethod
    def drop_penalty(cls, drop_type: DeclarationType) -> int:
        """
        Penalty for leaving the hand.

        Raises:
            ValueError: If `drop_type` is not a drop
        """
        if drop_type is DeclarationType.FIRST_DROP:
            return cls.FIRST_DROP_PENALTY
        if drop_type is DeclarationType.MIDDLE_DROP:
            return cls.MIDDLE_DROP_PENALTY
        raise ValueError(f"{drop_type.value} is not a drop type.")

    @classmethod
    def hand_score(cls, hand: Sequence[Card], melds: Sequence[Meld] = ()) -> int:
        """Deadwood of a hand after removing the cards in its own melds."""
        melded = {c.id for m in melds for c in m.cards}
        return cls.calculate_deadwood(c for c in hand if c.id not in melded)

    @classmethod
    def _dropped_line(cls, player: Player) -> GameScore:
        return GameScore(
            player_id=player.id,
            player_name=player.display_name,
            score=player.score,
            is_winner=False,
            declaration_type=player.drop_type,
        )

    @classmethod
    def score_valid_declaration(
        cls,
        players: Sequence[Player],
        winner_id: str,
        winner_melds: Sequence[Meld],
    ) -> tuple[GameScore, ...]:
        """
        Final scores after a valid declaration.

        The winner scores 0, dropped players keep their drop penalty and
        every other player scores the deadwood of their own hand.

        Args:
            players: All players, in turn order
            winner_id: The declaring player
            winner_melds: The winning declaration

        Returns:
            One GameScore per player, in the given order
        """
        lines = []
        for player in players:
            if player.id == winner_id:
                lines.append(GameScore(
                    player_id=player.id,
                    player_name=player.display_name,
                    score=cls.WINNER_SCORE,
                    melds=tuple(winner_melds),
                    is_winner=True,
                    declaration_type=DeclarationType.VALID,
                ))
            elif player.has_dropped:
                lines.append(cls._dropped_line(player))
            else:
                lines.append(GameScore(
                    player_id=player.id,
                    player_name=player.display_name,
                    score=cls.hand_score(player.hand, player.melds),
                    melds=player.melds,
                ))
        return tuple(lines)

    @classmethod
    def score_invalid_declaration(
        cls,
        players: Sequence[Player],
        declarer_id: str,
        melds: Sequence[Meld],
    ) -> tuple[GameScore, ...]:
        """Final scores after a failed declaration: 80 to the declarer, 0 to all others."""
        return tuple(
            GameScore(
                player_id=p.id,
                player_name=p.display_name,
                score=cls.INVALID_DECLARATION_PENALTY if p.id == declarer_id else 0,
                melds=tuple(melds) if p.id == declarer_id else (),
                is_winner=False,
                declaration_type=DeclarationType.INVALID if p.id == declarer_id else None,
            )
            for p in players
        )

    @classmethod
    def score_last_survivor(
        cls,
        players: Sequence[Player],
        survivor_id: str,
    ) -> tuple[GameScore, ...]:
        """Final scores when every other player has dropped."""
        lines = []
        for player in players:
            if player.id == survivor_id:
                lines.append(GameScore(
                    player_id=player.id,
                    player_name=player.display_name,
                    score=cls.WINNER_SCORE,
                    is_winner=True,
                    declaration_type=DeclarationType.VALID,
                ))
            else:
                lines.append(cls._dropped_line(player))
        return tuple(lines)

    @classmethod
    def tally_lobby_scores(
        cls,
        existing: Mapping[str, LobbyScore],
        scores: Iterable[GameScore],
    ) -> dict[str, LobbyScore]:
        """
        Fold one game's results into the lobby totals.

        Args:
            existing: Current totals by player id
            scores: Final score lines of a completed game

        Returns:
            New totals; players absent from `scores` are carried over unchanged
        """
        totals = dict(existing)
        for line in scores:
            current = totals.get(line.player_id, LobbyScore())
            best = line.score if current.best_hand is None else min(current.best_hand, line.score)
            totals[line.player_id] = replace(
                current,
                total_score=current.total_score + line.score,
                games_played=current.games_played + 1,
                games_won=current.games_won + (1 if line.is_winner else 0),
                best_hand=best,
            )
        return totals
