"""Authentication state: bearer token and current user."""

import logging
from typing import Optional

from pydantic import ValidationError

from .models import User
from .storage import TOKEN_KEY, USER_KEY, LocalStorage

logger = logging.getLogger(__name__)


class AuthManager:
    """Manages the bearer token and its persistence in local storage."""

    def __init__(self, storage: LocalStorage) -> None:
        """
        Initialize the authentication manager.

        Args:
            storage: Local storage holding the token and cached user
        """
        self.storage = storage
        self.user: Optional[User] = self._load_user()
        if self.is_authenticated():
            logger.info("Loaded existing session from storage")

    def _load_user(self) -> Optional[User]:
        data = self.storage.get_item(USER_KEY)
        if not data:
            return None
        try:
            return User.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding cached user: {e}")
            self.storage.remove_item(USER_KEY)
            return None

    def save_session(self, token: str, user: Optional[User] = None) -> None:
        """
        Save an authenticated session.

        Args:
            token: Bearer token returned by login or register
            user: User the token belongs to
        """
        self.storage.set_item(TOKEN_KEY, token)
        self.set_user(user)
        logger.info(f"Session saved for {user.email if user else 'unknown user'}")

    def set_user(self, user: Optional[User]) -> None:
        self.user = user
        if user is None:
            self.storage.remove_item(USER_KEY)
        else:
            self.storage.set_item(USER_KEY, user.model_dump(mode="json"))

    def clear_session(self) -> None:
        """Drop the token and cached user."""
        self.storage.remove_item(TOKEN_KEY)
        self.storage.remove_item(USER_KEY)
        self.user = None
        logger.info("Session cleared")

    def get_token(self) -> Optional[str]:
        return self.storage.get_item(TOKEN_KEY) or None

    def is_authenticated(self) -> bool:
        """A token is present. Its validity is only known to the backend."""
        return self.get_token() is not None

    def is_admin(self) -> bool:
        return self.is_authenticated() and self.user is not None and self.user.role == "admin"
