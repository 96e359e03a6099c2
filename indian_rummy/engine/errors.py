"""
Indian Rummy - Engine Errors

Three kinds of failure leave the engine:

- GameRuleError: an expected, caller-recoverable rejection of a player
  intent. Reported to the presentation layer verbatim, never retried.
- ConsistencyError: an invariant broke (card conservation, duplicate card
  id, hand size). A programming defect; nothing is committed.
- TransactionConflictError: the store kept rejecting the compare-and-set.
  Safe to retry later.
"""


class RummyError(Exception):
    """Base exception for errors raised deliberately by this package."""

    code = "RUMMY_ERROR"
    default_message = "Rummy engine error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class GameRuleError(RummyError, ValueError):
    """A player intent that the current game state does not allow."""

    code = "RULE_VIOLATION"
    default_message = "Action not allowed"


class NotYourTurnError(GameRuleError):
    code = "NOT_YOUR_TURN"
    default_message = "Not your turn"


class AlreadyDrawnError(GameRuleError):
    code = "ALREADY_DRAWN"
    default_message = "Already drawn this turn"


class MustDrawFirstError(GameRuleError):
    code = "MUST_DRAW_FIRST"
    default_message = "Must draw a card first"


class CardNotInHandError(GameRuleError):
    code = "CARD_NOT_IN_HAND"
    default_message = "Card not in hand"

    def __init__(self, card_id: str, message: str | None = None) -> None:
        self.card_id = card_id
        super().__init__(message or f"Card {card_id} is not in hand")


class PileEmptyError(GameRuleError):
    code = "PILE_EMPTY"
    default_message = "Pile is empty"


class InvalidDeclarationError(GameRuleError):
    """
    Declaration failed validation.

    The game has already ended when this is raised: the failed attempt is
    committed with the invalid-declaration penalty.
    """

    code = "INVALID_DECLARATION"
    default_message = "Invalid declaration"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InsufficientPlayersError(GameRuleError):
    code = "INSUFFICIENT_PLAYERS"
    default_message = "Need at least 2 players to start a game"


class GameNotFoundError(GameRuleError):
    code = "GAME_NOT_FOUND"
    default_message = "Game not found"


class GameExistsError(GameRuleError):
    code = "GAME_EXISTS"
    default_message = "A game with this id already exists"


class GameOverError(GameRuleError):
    code = "GAME_OVER"
    default_message = "Game is no longer in progress"


class PlayerNotInGameError(GameRuleError):
    code = "PLAYER_NOT_IN_GAME"
    default_message = "Player not in game"


class AlreadyDroppedError(GameRuleError):
    code = "ALREADY_DROPPED"
    default_message = "Player has already dropped"


class ConsistencyError(RummyError, RuntimeError):
    """An engine invariant does not hold."""

    code = "CONSISTENCY_ERROR"
    default_message = "Game state invariant violated"


class TransactionConflictError(RummyError):
    """Optimistic-concurrency retries exhausted."""

    code = "TRANSACTION_CONFLICT"
    default_message = "Game was modified concurrently; try again"
    retryable = True


class ConfigurationError(RummyError):
    code = "CONFIGURATION_ERROR"
    default_message = "Invalid configuration"
