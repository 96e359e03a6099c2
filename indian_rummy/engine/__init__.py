"""
Indian Rummy Game Engine.

Pure Python rule engine with zero UI/database dependencies.
Handles deck construction and dealing, meld validation with joker
substitution, scoring and penalties, and the turn state machine.
"""

from indian_rummy.engine.base import (
    Card,
    DeclarationType,
    GameScore,
    GameState,
    GameStatus,
    Meld,
    MeldType,
    Player,
    Rank,
    Suit,
)
from indian_rummy.engine.deck import CardIdGenerator, DealResult, DeckEngine
from indian_rummy.engine.melds import DeclarationResult, validate_declaration
from indian_rummy.engine.scoring import LobbyScore, ScoringEngine
from indian_rummy.engine.turns import TurnEngine

__all__ = [
    # Data Classes
    "Card",
    "DealResult",
    "DeclarationResult",
    "GameScore",
    "GameState",
    "LobbyScore",
    "Meld",
    "Player",
    # Enums
    "DeclarationType",
    "GameStatus",
    "MeldType",
    "Rank",
    "Suit",
    # Engines
    "CardIdGenerator",
    "DeckEngine",
    "ScoringEngine",
    "TurnEngine",
    "validate_declaration",
]
