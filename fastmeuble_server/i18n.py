"""Locale routing and translated strings."""

import json
import logging
from functools import lru_cache
from importlib import resources
from typing import Any

logger = logging.getLogger(__name__)

LOCALES = ("fr", "en")
DEFAULT_LOCALE = "fr"
LOCALE_NAMES = {"fr": "Français", "en": "English"}


class UnknownLocale(LookupError):
    """Raised for a path prefix that is not a supported locale."""

    def __init__(self, locale: str) -> None:
        super().__init__(f"Unknown locale: {locale}")
        self.locale = locale


def resolve_locale(segment: str) -> str:
    """Validate a locale path segment such as "fr" or "en"."""
    locale = segment.lower()
    if locale not in LOCALES:
        raise UnknownLocale(segment)
    return locale


def split_locale_path(path: str) -> tuple[str, str]:
    """
    Split "/en/shop/42" into ("en", "/shop/42").

    Raises:
        UnknownLocale: If the first segment is missing or not a locale
    """
    segment, _, rest = path.lstrip("/").partition("/")
    return resolve_locale(segment), "/" + rest


@lru_cache(maxsize=None)
def load_messages(locale: str) -> dict[str, Any]:
    """Load the translation bundle shipped with the package."""
    bundle = resources.files("fastmeuble_server").joinpath("messages").joinpath(f"{locale}.json")
    with bundle.open("r", encoding="utf-8") as f:
        return json.load(f)


class Translator:
    """Looks up dotted keys in a locale's bundle."""

    def __init__(self, locale: str = DEFAULT_LOCALE) -> None:
        self.locale = resolve_locale(locale)
        self.messages = load_messages(self.locale)

    def t(self, key: str, **values: Any) -> str:
        """
        Translate a key such as "cart.empty".

        Missing keys come back unchanged so a gap in a bundle stays visible
        without breaking output.
        """
        node: Any = self.messages
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                logger.debug(f"Missing translation {self.locale}:{key}")
                return key
            node = node[part]
        if not isinstance(node, str):
            return key
        return node.format(**values) if values else node
