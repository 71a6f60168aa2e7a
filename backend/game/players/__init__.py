"""Player identity registry: name -> stable identity and profile."""

from game.players.models import PlayerProfile, normalize_name, player_id_for
from game.players.registry import PlayerRegistry

__all__ = [
    "PlayerProfile",
    "PlayerRegistry",
    "normalize_name",
    "player_id_for",
]
