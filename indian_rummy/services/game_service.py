"""
Indian Rummy - Game Service

The interface the presentation layer calls. Each operation reads the game
document, runs a pure TurnEngine transition on that snapshot and commits
the result with a compare-and-set. On a version conflict the whole
read-validate-write cycle is retried from scratch, up to
`max_transaction_retries` times.

GameRuleErrors raised by a transition abort the attempt without writing
and reach the caller unchanged.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Callable, Sequence

from indian_rummy.config.settings import Settings, get_settings
from indian_rummy.database.store import CommitResult, DocumentStore
from indian_rummy.engine.base import GameState, GameStatus, Meld
from indian_rummy.engine.errors import (
    ConsistencyError,
    GameExistsError,
    GameNotFoundError,
    GameRuleError,
    InvalidDeclarationError,
    TransactionConflictError,
)
from indian_rummy.engine.melds import DeclarationResult
from indian_rummy.engine.scoring import LobbyScore, ScoringEngine
from indian_rummy.engine.turns import TurnEngine
from indian_rummy.realtime.events import EventPayload, describe_game_change

logger = logging.getLogger(__name__)

Document = dict[str, Any]


class GameService:
    """Applies turn transitions to game documents in a shared store."""

    def __init__(self, store: DocumentStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    # -- Paths -----------------------------------------------------------

    def _game_path(self, game_id: str) -> str:
        return f"{self.settings.games_table}/{game_id}"

    def _lobby_scores_path(self, lobby_id: str) -> str:
        return f"{self.settings.lobby_scores_table}/{lobby_id}"

    # -- Transactions ----------------------------------------------------

    def _commit(self, path: str, update: Callable[[Document | None], Document]) -> None:
        """Run `update` as an optimistic transaction, retrying on conflict."""
        attempts = self.settings.max_transaction_retries
        for attempt in range(1, attempts + 1):
            if self.store.write_atomic(path, update) is CommitResult.COMMITTED:
                return
            logger.warning("Conflict on %s (attempt %d/%d)", path, attempt, attempts)
        raise TransactionConflictError(
            f"Could not commit {path} after {attempts} attempts"
        )

    def _transact(
        self,
        game_id: str,
        transition: Callable[[GameState], GameState],
    ) -> GameState:
        """Apply a pure transition to the latest snapshot of a game."""
        committed: list[GameState] = []

        def update(current: Document | None) -> Document:
            if current is None:
                raise GameNotFoundError(f"Game {game_id} not found")
            try:
                next_state = transition(GameState.from_dict(current))
            except ConsistencyError:
                logger.exception("Invariant violated in game %s, nothing committed", game_id)
                raise
            committed[:] = [next_state]
            return next_state.to_dict()

        self._commit(self._game_path(game_id), update)
        return committed[0]

    # -- Operations ------------------------------------------------------

    def initialize_game(
        self,
        game_id: str,
        lobby_id: str,
        players: Sequence[tuple[str, str]],
        *,
        rng: random.Random | None = None,
        shuffle_turn_order: bool = True,
    ) -> GameState:
        """
        Deal a new game and create its document in the store.

        A game is created once; an existing document under `game_id`,
        finished or not, is never replaced.

        Args:
            game_id: Identifier of the new game document
            lobby_id: Lobby the game belongs to
            players: (player_id, display_name) pairs from the lobby
            rng: Random source (for reproducible deals)
            shuffle_turn_order: Randomize seating

        Raises:
            InsufficientPlayersError: Fewer than 2 players
            GameExistsError: `game_id` is already taken
        """
        state = TurnEngine.initialize_game(
            game_id,
            lobby_id,
            players,
            rng=rng,
            shuffle_turn_order=shuffle_turn_order,
        )

        def create(current: Document | None) -> Document:
            if current is not None:
                raise GameExistsError(f"Game {game_id} already exists")
            return state.to_dict()

        self._commit(self._game_path(game_id), create)
        logger.info(
            "Game %s dealt to %d players (wild joker %s, first turn %s)",
            game_id, len(state.turn_order), state.wild_joker_rank.value, state.current_turn,
        )
        return state

    def get_game(self, game_id: str) -> GameState | None:
        """Read the current snapshot of a game."""
        document = self.store.read(self._game_path(game_id))
        return GameState.from_dict(document) if document else None

    def draw_from_closed(self, game_id: str, player_id: str) -> GameState:
        state = self._transact(game_id, lambda s: TurnEngine.draw_from_closed(s, player_id))
        logger.info("Game %s: %s drew from the closed pile", game_id, player_id)
        return state

    def draw_from_open(self, game_id: str, player_id: str) -> GameState:
        state = self._transact(game_id, lambda s: TurnEngine.draw_from_open(s, player_id))
        logger.info("Game %s: %s drew from the open pile", game_id, player_id)
        return state

    def discard(self, game_id: str, player_id: str, card_id: str) -> GameState:
        state = self._transact(
            game_id, lambda s: TurnEngine.discard(s, player_id, card_id)
        )
        logger.info(
            "Game %s: %s discarded %s, turn passes to %s",
            game_id, player_id, card_id, state.current_turn,
        )
        return state

    def declare(self, game_id: str, player_id: str, melds: Sequence[Meld]) -> GameState:
        """
        Declare and end the game.

        Raises:
            InvalidDeclarationError: The declaration failed validation. The
                game has still been completed with the declarer penalized.
        """
        outcome: list[DeclarationResult] = []

        def transition(state: GameState) -> GameState:
            next_state, result = TurnEngine.declare(state, player_id, melds)
            outcome[:] = [result]
            return next_state

        state = self._transact(game_id, transition)
        result = outcome[0]
        if not result.valid:
            logger.info(
                "Game %s: %s declared invalid hand (%s)", game_id, player_id, result.reason
            )
            raise InvalidDeclarationError(result.reason or "Invalid declaration")

        logger.info("Game %s: %s declared and won", game_id, player_id)
        return state

    def drop(self, game_id: str, player_id: str) -> GameState:
        state = self._transact(game_id, lambda s: TurnEngine.drop(s, player_id))
        dropped = state.players[player_id]
        logger.info(
            "Game %s: %s dropped (%s, %d points)",
            game_id, player_id, dropped.drop_type.value, dropped.score,
        )
        if state.status is GameStatus.COMPLETED:
            logger.info("Game %s: %s wins as last player standing", game_id, state.winner)
        return state

    def cancel(self, game_id: str) -> GameState:
        state = self._transact(game_id, TurnEngine.cancel)
        logger.info("Game %s cancelled", game_id)
        return state

    # -- Lobby tally -----------------------------------------------------

    def record_lobby_scores(self, game_id: str) -> dict[str, LobbyScore]:
        """
        Add a completed game's scores to its lobby's running totals.

        Recording the same game twice has no further effect.

        Raises:
            GameNotFoundError: Unknown game
            GameRuleError: The game has no final scores yet
        """
        state = self.get_game(game_id)
        if state is None:
            raise GameNotFoundError(f"Game {game_id} not found")
        if state.status is not GameStatus.COMPLETED or state.scores is None:
            raise GameRuleError(f"Game {game_id} has no final scores yet")

        totals: dict[str, LobbyScore] = {}

        def update(current: Document | None) -> Document:
            current = current or {"recorded_games": [], "players": {}}
            existing = {
                pid: LobbyScore.from_dict(data)
                for pid, data in (current.get("players") or {}).items()
            }
            recorded = list(current.get("recorded_games") or [])
            if game_id not in recorded:
                existing = ScoringEngine.tally_lobby_scores(existing, state.scores)
                recorded.append(game_id)
            totals.clear()
            totals.update(existing)
            return {
                "recorded_games": recorded,
                "players": {pid: score.to_dict() for pid, score in existing.items()},
            }

        self._commit(self._lobby_scores_path(state.lobby_id), update)
        logger.info("Lobby %s totals updated from game %s", state.lobby_id, game_id)
        return totals

    def get_lobby_scores(self, lobby_id: str) -> dict[str, LobbyScore]:
        document = self.store.read(self._lobby_scores_path(lobby_id)) or {}
        return {
            pid: LobbyScore.from_dict(data)
            for pid, data in (document.get("players") or {}).items()
        }

    # -- Subscriptions ---------------------------------------------------

    def subscribe(
        self,
        game_id: str,
        on_change: Callable[[GameState | None], None],
    ) -> Callable[[], None]:
        """
        Watch a game document.

        `on_change` receives the latest GameState, or None when the game
        does not exist, immediately and after every change.

        Returns:
            A function that cancels the subscription
        """
        def deliver(document: Document | None) -> None:
            on_change(GameState.from_dict(document) if document else None)

        handle = self.store.subscribe(self._game_path(game_id), deliver)
        return lambda: self.store.unsubscribe(handle)

    def subscribe_events(
        self,
        game_id: str,
        on_event: Callable[[EventPayload], None],
    ) -> Callable[[], None]:
        """
        Watch a game as a stream of classified events.

        The first delivery is GAME_STARTED if the game already exists.

        Returns:
            A function that cancels the subscription
        """
        last: list[Document | None] = [None]

        def deliver(document: Document | None) -> None:
            payload = describe_game_change(game_id, document, last[0])
            last[0] = document
            if payload is not None:
                on_event(payload)

        handle = self.store.subscribe(self._game_path(game_id), deliver)
        return lambda: self.store.unsubscribe(handle)
