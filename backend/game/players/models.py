"""Player profile model and identity derivation."""

import uuid
from datetime import datetime

from pydantic import BaseModel

# Fixed namespace so the same name always maps to the same player id,
# including after an identity is deleted and registered again.
_PLAYER_ID_NAMESPACE = uuid.UUID("6f1c2a52-8d0e-4f4b-9a57-3e1d0c4b7a21")
_PLAYER_ID_LENGTH = 12


def normalize_name(name: str) -> str:
    """Lookup key for a display name: trimmed, inner whitespace collapsed, case-folded."""
    return " ".join(name.split()).casefold()


def player_id_for(name: str) -> str:
    """Derive the stable player id for a display name."""
    return uuid.uuid5(_PLAYER_ID_NAMESPACE, normalize_name(name)).hex[:_PLAYER_ID_LENGTH]


class PlayerProfile(BaseModel, frozen=True):
    """Identity record owned by the registry."""

    player_id: str
    name: str  # display name as first registered
    avatar: str | None = None
    created_at: datetime
    last_seen: datetime
    login_count: int = 0
