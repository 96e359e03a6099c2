"""
Indian Rummy - Turn Engine

The turn/draw/discard state machine expressed as pure transitions:
``(GameState, intent) -> GameState`` or a raised GameRuleError. The
service layer runs each transition inside a store transaction, so nothing
here touches storage or shared state.

Game states:
- in-progress: entered only through `initialize_game`
- completed / cancelled: terminal, every transition is rejected

Per-player sub-state while in progress:
- awaiting-draw (has_drawn=False) -> awaiting-discard (has_drawn=True)
  -> awaiting-draw for the next player
"""

import random
from dataclasses import replace
from datetime import datetime, timezone
from typing import Sequence

from indian_rummy.engine.base import (
    DECK_SIZE,
    HAND_SIZE,
    DeclarationType,
    GameScore,
    GameState,
    GameStatus,
    Meld,
    Player,
)
from indian_rummy.engine.deck import CardIdGenerator, DeckEngine
from indian_rummy.engine.errors import (
    AlreadyDrawnError,
    AlreadyDroppedError,
    CardNotInHandError,
    ConsistencyError,
    GameOverError,
    InsufficientPlayersError,
    MustDrawFirstError,
    NotYourTurnError,
    PileEmptyError,
    PlayerNotInGameError,
)
from indian_rummy.engine.melds import DeclarationResult, validate_declaration
from indian_rummy.engine.scoring import ScoringEngine

MIN_PLAYERS = 2


class TurnEngine:
    """
    Stateless engine for game initialization and turn transitions.

    All methods are class methods operating on immutable data.
    State is passed in and returned, never stored.
    """

    # -- Initialization --------------------------------------------------

    @classmethod
    def initialize_game(
        cls,
        game_id: str,
        lobby_id: str,
        players: Sequence[tuple[str, str]],
        *,
        rng: random.Random | None = None,
        id_source: CardIdGenerator | None = None,
        shuffle_turn_order: bool = True,
        created_at: datetime | None = None,
    ) -> GameState:
        """
        Build the opening state: deck, wild joker, deal and turn order.

        Args:
            game_id: Identifier of the new game document
            lobby_id: Lobby the game belongs to
            players: (player_id, display_name) pairs from the lobby
            rng: Random source for wild joker, shuffle and turn order
            id_source: Card id generator for this game
            shuffle_turn_order: Randomize seating; otherwise keep `players` order
            created_at: Creation timestamp (now, if omitted)

        Returns:
            A new in-progress GameState

        Raises:
            InsufficientPlayersError: Fewer than 2 players
            ValueError: Duplicate player ids, or too many players for one deck
        """
        if len(players) < MIN_PLAYERS:
            raise InsufficientPlayersError(
                f"Need at least {MIN_PLAYERS} players to start a game, got {len(players)}"
            )
        ids = [pid for pid, _ in players]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate player ids: {ids}")

        names = dict(players)
        turn_order = tuple(DeckEngine.shuffle(ids, rng) if shuffle_turn_order else ids)

        deck = DeckEngine.create_deck(id_source)
        wild_rank = DeckEngine.select_wild_joker_rank(rng)
        deck = DeckEngine.mark_wild_jokers(deck, wild_rank)
        deal = DeckEngine.deal_cards(deck, len(turn_order), HAND_SIZE, rng)

        seated = {
            pid: Player(
                id=pid,
                display_name=names[pid],
                hand=tuple(DeckEngine.sort_hand(hand)),
            )
            for pid, hand in zip(turn_order, deal.hands)
        }

        state = GameState(
            game_id=game_id,
            lobby_id=lobby_id,
            status=GameStatus.IN_PROGRESS,
            current_turn=turn_order[0],
            turn_order=turn_order,
            wild_joker_rank=wild_rank,
            closed_pile=deal.closed_pile,
            open_pile=deal.open_pile,
            players=seated,
            created_at=created_at or datetime.now(timezone.utc),
        )
        cls.verify_invariants(state)
        return state

    # -- Preconditions ---------------------------------------------------

    @classmethod
    def _require_in_progress(cls, state: GameState) -> None:
        if state.status.is_terminal:
            raise GameOverError(f"Game {state.game_id} is {state.status.value}")

    @classmethod
    def _require_player(cls, state: GameState, player_id: str) -> Player:
        player = state.players.get(player_id)
        if player is None:
            raise PlayerNotInGameError(f"Player {player_id} is not in game {state.game_id}")
        return player

    @classmethod
    def _require_turn(cls, state: GameState, player_id: str) -> Player:
        cls._require_in_progress(state)
        player = cls._require_player(state, player_id)
        if state.current_turn != player_id:
            raise NotYourTurnError(
                f"Not your turn: current turn is {state.current_turn}"
            )
        return player

    # -- Turn order ------------------------------------------------------

    @classmethod
    def next_turn(cls, state: GameState, player_id: str) -> str:
        """
        The next player after `player_id` in turn order who has not dropped.

        Wraps from the last seat back to the first. Returns `player_id`
        itself when nobody else is left.
        """
        order = state.turn_order
        start = order.index(player_id)
        for step in range(1, len(order)):
            candidate = order[(start + step) % len(order)]
            if not state.players[candidate].has_dropped:
                return candidate
        return player_id

    # -- Draw / discard --------------------------------------------------

    @classmethod
    def _draw(cls, state: GameState, player_id: str, from_open: bool) -> GameState:
        player = cls._require_turn(state, player_id)
        if player.has_drawn:
            raise AlreadyDrawnError()

        pile = state.open_pile if from_open else state.closed_pile
        if not pile:
            raise PileEmptyError(f"{'Open' if from_open else 'Closed'} pile is empty")

        # The top of either pile is its last card.
        card = pile[-1]
        drawn = replace(player, hand=player.hand + (card,), has_drawn=True)
        pile_update = {"open_pile" if from_open else "closed_pile": pile[:-1]}
        new_state = state.with_player(drawn, **pile_update)

        cls._check_hand_size(drawn, HAND_SIZE + 1)
        cls.verify_invariants(new_state)
        return new_state

    @classmethod
    def draw_from_closed(cls, state: GameState, player_id: str) -> GameState:
        """Take the top card of the face-down pile."""
        return cls._draw(state, player_id, from_open=False)

    @classmethod
    def draw_from_open(cls, state: GameState, player_id: str) -> GameState:
        """Take the top card of the face-up discard pile."""
        return cls._draw(state, player_id, from_open=True)

    @classmethod
    def discard(cls, state: GameState, player_id: str, card_id: str) -> GameState:
        """
        Discard a card to the open pile and pass the turn.

        Raises:
            NotYourTurnError, MustDrawFirstError, CardNotInHandError
        """
        player = cls._require_turn(state, player_id)
        if not player.has_drawn:
            raise MustDrawFirstError()

        card = player.find_card(card_id)
        if card is None:
            raise CardNotInHandError(card_id)

        hand = tuple(c for c in player.hand if c.id != card_id)
        discarded = replace(player, hand=hand, has_drawn=False)
        cls._check_hand_size(discarded, HAND_SIZE)

        new_state = state.with_player(discarded, open_pile=state.open_pile + (card,))
        new_state = replace(new_state, current_turn=cls.next_turn(new_state, player_id))
        cls.verify_invariants(new_state)
        return new_state

    # -- Terminal transitions --------------------------------------------

    @classmethod
    def _resolve_melds(cls, player: Player, melds: Sequence[Meld]) -> tuple[Meld, ...]:
        """
        Replace meld cards with the declarer's own copies, matched by id.

        Each hand card may be used once; anything else is not in hand.
        """
        available = {c.id: c for c in player.hand}
        resolved = []
        for meld in melds:
            cards = []
            for card in meld.cards:
                held = available.pop(card.id, None)
                if held is None:
                    raise CardNotInHandError(card.id)
                cards.append(held)
            resolved.append(Meld(type=meld.type, cards=tuple(cards)))
        return tuple(resolved)

    @classmethod
    def _complete(
        cls,
        state: GameState,
        scores: tuple[GameScore, ...],
        winner: str | None,
    ) -> GameState:
        """Close the game, copying each final score onto its player."""
        by_id = {line.player_id: line.score for line in scores}
        players = {
            pid: replace(p, score=by_id.get(pid, p.score)) for pid, p in state.players.items()
        }
        return replace(
            state,
            status=GameStatus.COMPLETED,
            players=players,
            winner=winner,
            scores=scores,
        )

    @classmethod
    def declare(
        cls,
        state: GameState,
        player_id: str,
        melds: Sequence[Meld],
    ) -> tuple[GameState, DeclarationResult]:
        """
        Submit a declaration. Either way, the game ends.

        A valid declaration wins with 0 points and everyone else is scored.
        An invalid one costs the declarer the fixed penalty, everyone else
        scores 0 and there is no winner. The caller decides how to surface
        an invalid result; the returned state must be committed regardless.

        Returns:
            (completed state, validation result)

        Raises:
            GameOverError, NotYourTurnError, CardNotInHandError
        """
        player = cls._require_turn(state, player_id)
        resolved = cls._resolve_melds(player, melds)
        result = validate_declaration(resolved)

        declared = state.with_player(replace(player, has_declared=True, melds=resolved))
        seated = declared.ordered_players()
        if result.valid:
            scores = ScoringEngine.score_valid_declaration(seated, player_id, resolved)
            new_state = cls._complete(declared, scores, winner=player_id)
        else:
            scores = ScoringEngine.score_invalid_declaration(seated, player_id, resolved)
            new_state = cls._complete(declared, scores, winner=None)

        cls.verify_invariants(new_state)
        return new_state, result

    @classmethod
    def drop_type_for(cls, state: GameState) -> DeclarationType:
        """First drop while the turn is still with the first seat, middle drop after."""
        if state.current_turn == state.turn_order[0]:
            return DeclarationType.FIRST_DROP
        return DeclarationType.MIDDLE_DROP

    @classmethod
    def drop(cls, state: GameState, player_id: str) -> GameState:
        """
        Leave the hand, taking the drop penalty.

        When only one contesting player remains, that player wins with 0
        and the game completes. If the dropping player held the turn, the
        turn passes on.

        Raises:
            GameOverError, PlayerNotInGameError, AlreadyDroppedError
        """
        cls._require_in_progress(state)
        player = cls._require_player(state, player_id)
        if player.has_dropped:
            raise AlreadyDroppedError()

        drop_type = cls.drop_type_for(state)
        dropped = replace(
            player,
            has_dropped=True,
            drop_type=drop_type,
            score=ScoringEngine.drop_penalty(drop_type),
        )
        new_state = state.with_player(dropped)

        remaining = new_state.active_players()
        if len(remaining) == 1:
            survivor = remaining[0]
            scores = ScoringEngine.score_last_survivor(
                new_state.ordered_players(), survivor.id
            )
            new_state = cls._complete(new_state, scores, winner=survivor.id)
        elif state.current_turn == player_id:
            new_state = replace(new_state, current_turn=cls.next_turn(new_state, player_id))

        cls.verify_invariants(new_state)
        return new_state

    @classmethod
    def cancel(cls, state: GameState) -> GameState:
        """Abandon an in-progress game without scoring."""
        cls._require_in_progress(state)
        return replace(state, status=GameStatus.CANCELLED)

    # -- Invariants ------------------------------------------------------

    @classmethod
    def _check_hand_size(cls, player: Player, expected: int) -> None:
        if len(player.hand) != expected:
            raise ConsistencyError(
                f"Invalid hand size for {player.id}: {len(player.hand)} (expected {expected})"
            )

    @classmethod
    def verify_invariants(cls, state: GameState) -> None:
        """
        Audit a state before it is committed.

        Checks card conservation, id uniqueness, seating and hand sizes
        (13 cards, or 14 between a draw and the following discard).

        Raises:
            ConsistencyError: On the first violated invariant
        """
        all_cards = [
            *state.closed_pile,
            *state.open_pile,
            *(c for p in state.players.values() for c in p.hand),
        ]
        DeckEngine.check_deck(all_cards, DECK_SIZE)

        if set(state.turn_order) != set(state.players) or len(state.turn_order) != len(state.players):
            raise ConsistencyError(
                f"Turn order {list(state.turn_order)} does not match players {sorted(state.players)}"
            )
        if state.current_turn not in state.turn_order:
            raise ConsistencyError(f"Current turn {state.current_turn} is not seated")

        for player in state.players.values():
            cls._check_hand_size(player, HAND_SIZE + (1 if player.has_drawn else 0))
