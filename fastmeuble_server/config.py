"""Server configuration loaded from environment variables."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .models import AuthCredentials

DEFAULT_API_URL = "https://fastmeuble-backend.onrender.com/api"
DEFAULT_WHATSAPP_NUMBER = "237654366920"


class ServerConfig(BaseModel):
    """Runtime settings shared by the MCP and HTTP servers."""

    api_url: str = Field(DEFAULT_API_URL, description="Backend base URL including the /api prefix")
    storage_file: Optional[str] = Field(
        default_factory=lambda: str(Path.home() / ".fastmeuble_storage.json"),
        description="JSON file used as local storage; None keeps it in memory",
    )
    locale: str = Field("fr", description="Default locale for tool output")
    whatsapp_number: str = DEFAULT_WHATSAPP_NUMBER
    cart_clear_delay: float = Field(5.0, description="Seconds between a placed order and the cart being cleared")
    timeout: float = Field(30.0, description="HTTP timeout in seconds")
    credentials: Optional[AuthCredentials] = None

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Build the configuration from FASTMEUBLE_* environment variables."""
        values: dict = {}

        api_url = os.environ.get("FASTMEUBLE_API_URL")
        if api_url:
            values["api_url"] = api_url.rstrip("/")

        storage_file = os.environ.get("FASTMEUBLE_STORAGE_FILE")
        if storage_file:
            values["storage_file"] = os.path.expanduser(storage_file)

        locale = os.environ.get("FASTMEUBLE_LOCALE")
        if locale:
            values["locale"] = locale

        whatsapp_number = os.environ.get("FASTMEUBLE_WHATSAPP_NUMBER")
        if whatsapp_number:
            values["whatsapp_number"] = whatsapp_number

        clear_delay = os.environ.get("FASTMEUBLE_CART_CLEAR_DELAY")
        if clear_delay:
            values["cart_clear_delay"] = float(clear_delay)

        timeout = os.environ.get("FASTMEUBLE_TIMEOUT")
        if timeout:
            values["timeout"] = float(timeout)

        email = os.environ.get("FASTMEUBLE_EMAIL")
        password = os.environ.get("FASTMEUBLE_PASSWORD")
        if email and password:
            values["credentials"] = AuthCredentials(email=email, password=password)

        return cls(**values)
