"""
Indian Rummy - Realtime Event Definitions

Event types and payloads for game document changes.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class GameEvent(Enum):
    """Events that can occur during a game."""

    GAME_STARTED = auto()
    CARD_DRAWN = auto()
    CARD_DISCARDED = auto()
    TURN_ADVANCED = auto()
    PLAYER_DROPPED = auto()
    GAME_COMPLETED = auto()
    GAME_CANCELLED = auto()
    GAME_REMOVED = auto()
    STATE_UPDATED = auto()


@dataclass
class EventPayload:
    """Wrapper for realtime event data."""

    event: GameEvent
    game_id: str
    player_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


# Map terminal status transitions to game events
_STATUS_EVENT_MAP: dict[str, GameEvent] = {
    "completed": GameEvent.GAME_COMPLETED,
    "cancelled": GameEvent.GAME_CANCELLED,
}


def _player_flag_raised(
    record: dict[str, Any], old_record: dict[str, Any], flag: str
) -> str | None:
    """Id of the first player whose boolean `flag` went from false to true."""
    old_players = old_record.get("players") or {}
    for pid, player in (record.get("players") or {}).items():
        if player.get(flag) and not (old_players.get(pid) or {}).get(flag):
            return pid
    return None


def classify_game_change(
    record: dict[str, Any] | None, old_record: dict[str, Any] | None
) -> tuple[GameEvent, str | None] | None:
    """
    Determine the game event, and the acting player, from a document change.

    Args:
        record: Document after the change (None when deleted)
        old_record: Document before the change (None when created)

    Returns:
        (event, player id or None), or None when nothing changed
    """
    if record is None:
        return (GameEvent.GAME_REMOVED, None) if old_record is not None else None
    if old_record is None:
        return GameEvent.GAME_STARTED, record.get("current_turn")
    if record == old_record:
        return None

    new_status = record.get("status")
    if new_status != old_record.get("status") and new_status in _STATUS_EVENT_MAP:
        return _STATUS_EVENT_MAP[new_status], record.get("winner")

    dropped = _player_flag_raised(record, old_record, "has_dropped")
    if dropped:
        return GameEvent.PLAYER_DROPPED, dropped

    drawn = _player_flag_raised(record, old_record, "has_drawn")
    if drawn:
        return GameEvent.CARD_DRAWN, drawn

    if len(record.get("open_pile") or []) > len(old_record.get("open_pile") or []):
        return GameEvent.CARD_DISCARDED, old_record.get("current_turn")

    if record.get("current_turn") != old_record.get("current_turn"):
        return GameEvent.TURN_ADVANCED, record.get("current_turn")

    return GameEvent.STATE_UPDATED, None


def describe_game_change(
    game_id: str, record: dict[str, Any] | None, old_record: dict[str, Any] | None
) -> EventPayload | None:
    """Build the EventPayload for a document change, if there is one."""
    classified = classify_game_change(record, old_record)
    if classified is None:
        return None
    event, player_id = classified

    data: dict[str, Any] = {"record": record, "old_record": old_record}
    if event is GameEvent.CARD_DRAWN:
        old_open = len((old_record or {}).get("open_pile") or [])
        new_open = len((record or {}).get("open_pile") or [])
        data["source"] = "open" if new_open < old_open else "closed"
    return EventPayload(event=event, game_id=game_id, player_id=player_id, data=data)
