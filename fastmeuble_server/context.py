"""Shared state for one storefront session, handed to the server surfaces."""

import logging
from typing import Literal, Optional

import httpx

from .admin import (
    AdminDashboard,
    CategoriesAdmin,
    FeaturedSectionsAdmin,
    OrdersAdmin,
    ProductsAdmin,
    SettingsAdmin,
)
from .auth import AuthManager
from .cart import CartStore
from .checkout import CheckoutPipeline
from .config import ServerConfig
from .fastmeuble_client import ApiError, FastMeubleClient
from .i18n import Translator
from .models import AuthResponse, CartItem
from .storage import COOKIE_CONSENT_KEY, LocalStorage

logger = logging.getLogger(__name__)

CookieConsent = Literal["accepted", "rejected"]


class AdminAccessDenied(ApiError):
    """Raised when a non-admin account logs in to the admin console."""

    def __init__(self) -> None:
        super().__init__("Access denied. Admin privileges required.", status_code=403)


class StoreContext:
    """Owns the storage, auth, API client, cart, checkout and admin screens."""

    def __init__(self, config: ServerConfig, transport: Optional[httpx.BaseTransport] = None) -> None:
        """
        Wire up a session.

        Args:
            config: Server configuration
            transport: Optional httpx transport for the API client, used by tests
        """
        self.config = config
        self.storage = LocalStorage(config.storage_file)
        self.auth_manager = AuthManager(self.storage)
        self.client = FastMeubleClient(
            self.auth_manager,
            base_url=config.api_url,
            timeout=config.timeout,
            transport=transport,
        )
        self.cart = CartStore(self.storage)
        self.checkout = CheckoutPipeline(
            self.cart, self.auth_manager, self.client, clear_delay=config.cart_clear_delay
        )
        self.products_admin = ProductsAdmin(self.client)
        self.categories_admin = CategoriesAdmin(self.client)
        self.featured_sections_admin = FeaturedSectionsAdmin(self.client)
        self.orders_admin = OrdersAdmin(self.client)
        self.settings_admin = SettingsAdmin(self.client)
        self.dashboard = AdminDashboard(self.client)
        self.translator = Translator(config.locale)

    def set_locale(self, locale: str) -> None:
        self.translator = Translator(locale)

    def ensure_authenticated(self) -> bool:
        """Return True when a token is present, logging in with configured credentials if needed."""
        if self.auth_manager.is_authenticated():
            return True

        credentials = self.config.credentials
        if credentials:
            try:
                logger.info("Auto-logging in with configured credentials...")
                self.client.login(credentials.email, credentials.password)
                logger.info("Auto-login successful")
                return True
            except ApiError as e:
                logger.warning(f"Auto-login failed: {e}")

        return False

    def admin_login(self, email: str, password: str) -> AuthResponse:
        """
        Log in to the admin console.

        Raises:
            AdminAccessDenied: If the account is not an admin; the session is dropped
        """
        auth = self.client.login(email, password)
        if auth.user.role != "admin":
            self.client.logout()
            raise AdminAccessDenied()
        return auth

    def add_product_to_cart(self, product_id: str, quantity: int = 1) -> CartItem:
        """
        Look up a product and add ``quantity`` units, one add at a time.

        Raises:
            ValueError: If quantity is below 1
            ApiError: If the product cannot be fetched
        """
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        product = self.client.get_product(product_id)
        item = CartItem(
            id=product.id,
            name=product.name,
            price=product.price,
            image=product.image,
            category=product.category,
        )
        line = item
        for _ in range(quantity):
            line = self.cart.add_to_cart(item)
        return line

    def get_cookie_consent(self) -> Optional[CookieConsent]:
        return self.storage.get_item(COOKIE_CONSENT_KEY)

    def set_cookie_consent(self, choice: CookieConsent) -> None:
        if choice not in ("accepted", "rejected"):
            raise ValueError("Cookie consent must be 'accepted' or 'rejected'")
        self.storage.set_item(COOKIE_CONSENT_KEY, choice)

    def close(self) -> None:
        self.checkout.shutdown()
        self.client.close()
