from indian_rummy.services.factory import create_game_service, create_store
from indian_rummy.services.game_service import GameService

__all__ = ["GameService", "create_game_service", "create_store"]
