"""File-backed key/value storage, the server-side stand-in for browser local storage."""

import json
import logging
import os
from typing import Any, Optional

logger = logging.getLogger(__name__)

TOKEN_KEY = "fast-meuble-token"
USER_KEY = "fast-meuble-user"
CART_KEY = "fast-meuble-cart"
COOKIE_CONSENT_KEY = "fast-meuble-cookie-consent"


class LocalStorage:
    """Persists JSON-serializable values under string keys in a single file."""

    def __init__(self, path: Optional[str] = None) -> None:
        """
        Initialize storage.

        Args:
            path: JSON file to persist to. When None, values live in memory only.
        """
        self.path = path
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        """Load stored values from file if it exists."""
        if self.path and os.path.exists(self.path):
            try:
                with open(self.path, "r") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
                logger.warning(f"Ignoring storage file {self.path}: not a JSON object")
            except (json.JSONDecodeError, OSError) as e:
                # Corrupted file, start fresh
                logger.warning(f"Could not load storage from {self.path}: {e}")
        return {}

    def _save(self) -> None:
        if not self.path:
            return
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2, default=str)
        # Holds the bearer token
        os.chmod(self.path, 0o600)

    def get_item(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set_item(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def remove_item(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def keys(self) -> list[str]:
        return list(self._data)
