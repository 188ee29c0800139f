"""Fast Meuble backend API client."""

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .auth import AuthManager
from .config import DEFAULT_API_URL
from .models import (
    AuthResponse,
    Category,
    ContactMessage,
    FeaturedSection,
    Order,
    OrderDraft,
    OrderFilters,
    OrderStats,
    OrderStatus,
    Product,
    ProductFilters,
    ProductStats,
    Review,
    StoreSettings,
    User,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ApiError(Exception):
    """Raised for any failed backend call. The message is meant for the user."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FastMeubleClient:
    """Client for the Fast Meuble REST API."""

    def __init__(
        self,
        auth_manager: AuthManager,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            auth_manager: Authentication manager holding the bearer token
            base_url: Backend base URL, including the /api prefix
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.auth_manager = auth_manager
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            follow_redirects=True,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Any] = None,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """
        Perform one API call.

        Returns:
            The decoded JSON body, or {"data": None, "message": "Success"} when
            the backend answers without JSON

        Raises:
            ApiError: On network failure or a non-2xx status
        """
        request_headers = dict(headers or {})
        token = self.auth_manager.get_token()
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        logger.info(f"{method} {endpoint}")
        try:
            response = self.client.request(
                method, endpoint, json=json, params=params, headers=request_headers
            )
        except httpx.TransportError as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            raise ApiError(
                f"Cannot connect to backend server. Please ensure the backend is running on {self.base_url}"
            ) from e

        if not response.is_success:
            message = "An error occurred"
            try:
                error_data = response.json()
            except ValueError:
                message = f"Server error: {response.status_code} {response.reason_phrase}"
            else:
                if isinstance(error_data, dict):
                    message = error_data.get("message") or error_data.get("error") or message
            logger.error(f"{method} {endpoint} -> {response.status_code}: {message}")
            raise ApiError(message, status_code=response.status_code)

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return {"data": None, "message": "Success"}

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Malformed response from {endpoint}") from e

    @staticmethod
    def _data(payload: dict[str, Any]) -> Any:
        if not isinstance(payload, dict):
            raise ApiError("Malformed response: expected a JSON object")
        return payload.get("data")

    @staticmethod
    def _parse(model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"Malformed {model.__name__} payload: {e}")
            raise ApiError(f"Malformed {model.__name__} data received from server") from e

    def _parse_list(self, model: type[ModelT], data: Any) -> list[ModelT]:
        if not isinstance(data, list):
            raise ApiError(f"Malformed {model.__name__} list received from server")
        return [self._parse(model, item) for item in data]

    # Auth

    def register(self, name: str, email: str, password: str) -> AuthResponse:
        """Create an account and keep its token."""
        payload = self._request(
            "POST", "/auth/register", json={"name": name, "email": email, "password": password}
        )
        auth = self._parse(AuthResponse, self._data(payload))
        self.auth_manager.save_session(auth.token, auth.user)
        return auth

    def login(self, email: str, password: str) -> AuthResponse:
        """Log in and keep the returned token."""
        logger.info(f"=== LOGIN: email={email} ===")
        payload = self._request("POST", "/auth/login", json={"email": email, "password": password})
        auth = self._parse(AuthResponse, self._data(payload))
        self.auth_manager.save_session(auth.token, auth.user)
        return auth

    def get_me(self) -> User:
        """Fetch the current user and refresh the cached copy."""
        payload = self._request("GET", "/auth/me")
        user = self._parse(User, self._data(payload))
        self.auth_manager.set_user(user)
        return user

    def logout(self) -> None:
        """Forget the token. The backend keeps no session to end."""
        self.auth_manager.clear_session()

    def reset_password(self, token: str, password: str) -> str:
        payload = self._request(
            "POST", "/auth/reset-password", json={"token": token, "password": password}
        )
        return payload.get("message") or "Password reset successfully"

    # Products

    def get_products(self, filters: Optional[ProductFilters] = None) -> list[Product]:
        params = filters.to_params() if filters else None
        payload = self._request("GET", "/products", params=params or None)
        return self._parse_list(Product, self._data(payload))

    def get_product(self, product_id: str) -> Product:
        payload = self._request("GET", f"/products/{product_id}")
        return self._parse(Product, self._data(payload))

    def create_product(self, product: dict[str, Any]) -> Product:
        payload = self._request("POST", "/products", json=product)
        return self._parse(Product, self._data(payload))

    def update_product(self, product_id: str, updates: dict[str, Any]) -> Product:
        payload = self._request("PUT", f"/products/{product_id}", json=updates)
        return self._parse(Product, self._data(payload))

    def delete_product(self, product_id: str) -> None:
        self._request("DELETE", f"/products/{product_id}")

    def get_product_stats(self) -> ProductStats:
        payload = self._request("GET", "/products/stats")
        return self._parse(ProductStats, self._data(payload))

    # Categories

    def get_categories(self) -> list[Category]:
        payload = self._request("GET", "/categories")
        return self._parse_list(Category, self._data(payload))

    def get_category(self, category_id: str) -> Category:
        payload = self._request("GET", f"/categories/{category_id}")
        return self._parse(Category, self._data(payload))

    def get_category_by_slug(self, slug: str) -> Category:
        payload = self._request("GET", f"/categories/slug/{slug}")
        return self._parse(Category, self._data(payload))

    def create_category(self, category: dict[str, Any]) -> Category:
        payload = self._request("POST", "/categories", json=category)
        return self._parse(Category, self._data(payload))

    def update_category(self, category_id: str, updates: dict[str, Any]) -> Category:
        payload = self._request("PUT", f"/categories/{category_id}", json=updates)
        return self._parse(Category, self._data(payload))

    def delete_category(self, category_id: str) -> None:
        self._request("DELETE", f"/categories/{category_id}")

    # Orders

    def get_orders(self, filters: Optional[OrderFilters] = None) -> list[Order]:
        params = filters.to_params() if filters else None
        payload = self._request("GET", "/orders", params=params or None)
        return self._parse_list(Order, self._data(payload))

    def get_order(self, order_id: str) -> Order:
        payload = self._request("GET", f"/orders/{order_id}")
        return self._parse(Order, self._data(payload))

    def create_order(self, draft: OrderDraft, idempotency_key: Optional[str] = None) -> Order:
        """
        Submit a new order.

        Args:
            draft: Items, customer, payment method, shipping and notes
            idempotency_key: Client token letting the backend drop duplicate submissions

        Returns:
            The created order with its server-assigned number
        """
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        payload = self._request("POST", "/orders", json=draft.to_wire(), headers=headers)
        return self._parse(Order, self._data(payload))

    def update_order(self, order_id: str, updates: dict[str, Any]) -> Order:
        payload = self._request("PUT", f"/orders/{order_id}", json=updates)
        return self._parse(Order, self._data(payload))

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        payload = self._request(
            "PUT", f"/orders/{order_id}/status", json={"status": OrderStatus(status).value}
        )
        return self._parse(Order, self._data(payload))

    def delete_order(self, order_id: str) -> None:
        self._request("DELETE", f"/orders/{order_id}")

    def get_order_stats(self) -> OrderStats:
        payload = self._request("GET", "/orders/stats")
        return self._parse(OrderStats, self._data(payload))

    # Reviews

    def get_product_reviews(self, product_id: str) -> list[Review]:
        payload = self._request("GET", f"/reviews/product/{product_id}")
        return self._parse_list(Review, self._data(payload))

    def create_review(self, product_id: str, user_name: str, rating: int, comment: str) -> Review:
        payload = self._request(
            "POST",
            "/reviews",
            json={
                "productId": product_id,
                "userName": user_name,
                "rating": rating,
                "comment": comment,
            },
        )
        return self._parse(Review, self._data(payload))

    def delete_review(self, review_id: str) -> None:
        self._request("DELETE", f"/reviews/{review_id}")

    # Featured sections

    def get_featured_sections(self) -> list[FeaturedSection]:
        payload = self._request("GET", "/featured-sections")
        return self._parse_list(FeaturedSection, self._data(payload))

    def get_featured_section(self, section_id: str) -> FeaturedSection:
        payload = self._request("GET", f"/featured-sections/{section_id}")
        return self._parse(FeaturedSection, self._data(payload))

    def create_featured_section(self, section: dict[str, Any]) -> FeaturedSection:
        payload = self._request("POST", "/featured-sections", json=section)
        return self._parse(FeaturedSection, self._data(payload))

    def update_featured_section(self, section_id: str, updates: dict[str, Any]) -> FeaturedSection:
        payload = self._request("PUT", f"/featured-sections/{section_id}", json=updates)
        return self._parse(FeaturedSection, self._data(payload))

    def delete_featured_section(self, section_id: str) -> None:
        self._request("DELETE", f"/featured-sections/{section_id}")

    # Settings

    def get_settings(self) -> StoreSettings:
        payload = self._request("GET", "/settings")
        return self._parse(StoreSettings, self._data(payload))

    def update_settings(self, updates: dict[str, Any]) -> StoreSettings:
        payload = self._request("PUT", "/settings", json=updates)
        return self._parse(StoreSettings, self._data(payload))

    # Contact

    def send_contact_message(
        self, name: str, email: str, message: str, phone: Optional[str] = None
    ) -> ContactMessage:
        body = {"name": name, "email": email, "message": message}
        if phone:
            body["phone"] = phone
        payload = self._request("POST", "/contact", json=body)
        return self._parse(ContactMessage, self._data(payload))

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()
