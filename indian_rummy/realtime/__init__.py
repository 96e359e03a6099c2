"""
Indian Rummy Real-time Sync.

WebSocket subscriptions, polling fallback and event classification for
live game documents.
"""

from indian_rummy.realtime.events import (
    EventPayload,
    GameEvent,
    classify_game_change,
    describe_game_change,
)
from indian_rummy.realtime.subscriptions import ChannelManager
from indian_rummy.realtime.sync_manager import RealtimeManager

__all__ = [
    "ChannelManager",
    "EventPayload",
    "GameEvent",
    "RealtimeManager",
    "classify_game_change",
    "describe_game_change",
]
