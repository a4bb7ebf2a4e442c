"""Key-value access to the saved login record.

Where and how the record is persisted is the caller's business; clients only
see ``get``/``set``.
"""

import logging
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from .models.auth import AuthSession

logger = logging.getLogger(__name__)

SETTINGS_KEY = "PlexSettings"


class SettingsStore(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...


class MemorySettingsStore:
    """Dictionary-backed store, used by the tool server and tests."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


def load_auth(store: SettingsStore) -> AuthSession:
    """Read the saved login, or an empty one if nothing usable is stored."""
    raw = store.get(SETTINGS_KEY)
    if not raw:
        return AuthSession()
    try:
        return AuthSession.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring unreadable saved settings: {e.error_count()} error(s)")
        return AuthSession()


def save_auth(store: SettingsStore, auth: AuthSession) -> None:
    store.set(SETTINGS_KEY, auth.model_dump(mode="json"))
