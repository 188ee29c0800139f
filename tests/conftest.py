"""
Shared fixtures for the Fast Meuble test suite.

The backend is never contacted: every test talks to a FakeBackend served
through httpx.MockTransport, which records the requests it receives and
answers from a small route table.
"""
import json
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from fastmeuble_server.config import ServerConfig
from fastmeuble_server.context import StoreContext
from fastmeuble_server.models import CartItem, User

API_URL = "http://backend.test/api"

Responder = Union[Callable[[httpx.Request], httpx.Response], Any]


class FakeBackend:
    """Route table keyed by (method, path) with a log of received requests."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, Responder]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body: Responder = None, status: int = 200) -> None:
        """Register a response. ``body`` may be a JSON payload or a request handler."""
        self.routes[(method, "/api" + path)] = (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"success": False, "message": f"Route {key[1]} not found"})
        status, body = self.routes[key]
        if callable(body):
            return body(request)
        return httpx.Response(status, json=body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == "/api" + path]


def ok(data: Any, message: Optional[str] = None) -> dict[str, Any]:
    """Backend success envelope."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content)


def product_data(product_id: str = "p1", name: str = "Sofa Milano", price: float = 100, **extra) -> dict:
    data = {
        "_id": product_id,
        "name": name,
        "category": {"_id": "c1", "name": "Salon", "slug": "salon"},
        "price": price,
        "description": "Three-seat sofa",
        "specifications": {"material": "Velvet", "dimensions": "220x90x85 cm", "weight": "60 kg", "color": "Grey"},
        "images": ["https://cdn.test/sofa.jpg"],
        "rating": 4.5,
        "reviews": 12,
        "inStock": True,
        "isHot": False,
        "status": "published",
    }
    data.update(extra)
    return data


def category_data(category_id: str = "c1", name: str = "Salon", slug: str = "salon") -> dict:
    return {"_id": category_id, "name": name, "slug": slug, "productCount": 3}


def featured_data(section_id: str = "f1", order: int = 0, active: bool = True) -> dict:
    return {
        "_id": section_id,
        "name": "Summer sale",
        "slug": "summer-sale",
        "discount": "-20%",
        "title": "Summer living rooms",
        "buttonText": "Shop now",
        "image": "https://cdn.test/banner.jpg",
        "link": "/shop?category=salon",
        "isActive": active,
        "order": order,
    }


def customer_data() -> dict:
    return {
        "name": "Jean Dupont",
        "email": "jean@example.com",
        "phone": "+237654366920",
        "address": "12 Rue de la Joie",
        "city": "Douala",
        "region": "Littoral",
        "country": "Cameroon",
    }


def order_data(order_id: str = "o1", number: str = "ORD-001", status: str = "pending", **extra) -> dict:
    data = {
        "_id": order_id,
        "orderNumber": number,
        "customer": customer_data(),
        "items": [
            {"productId": "p1", "productName": "Sofa Milano", "quantity": 2, "price": 100, "image": ""},
            {"productId": "p2", "productName": "Table Oslo", "quantity": 1, "price": 50, "image": ""},
        ],
        "subtotal": 250,
        "shipping": 0,
        "total": 250,
        "paymentMethod": "mobile_money",
        "status": status,
        "createdAt": "2024-05-04T10:30:00.000Z",
    }
    data.update(extra)
    return data


def user_data(role: str = "user") -> dict:
    return {"_id": "u1", "name": "Jean Dupont", "email": "jean@example.com", "role": role}


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig(api_url=API_URL, storage_file=None, locale="en", cart_clear_delay=0)


@pytest.fixture
def context(config: ServerConfig, backend: FakeBackend):
    ctx = StoreContext(config, transport=httpx.MockTransport(backend))
    yield ctx
    ctx.close()


@pytest.fixture
def logged_in(context: StoreContext) -> StoreContext:
    """A shopper session with a token in storage."""
    context.auth_manager.save_session("user-token", User.model_validate(user_data()))
    return context


@pytest.fixture
def admin_session(context: StoreContext) -> StoreContext:
    """An admin session with a token in storage."""
    context.auth_manager.save_session("admin-token", User.model_validate(user_data(role="admin")))
    return context


@pytest.fixture
def filled_cart(logged_in: StoreContext) -> StoreContext:
    """Two sofas at 100 and one table at 50: 3 items, 250 total."""
    sofa = CartItem(id="p1", name="Sofa Milano", price=100, category="Salon")
    table = CartItem(id="p2", name="Table Oslo", price=50, category="Salle a manger")
    logged_in.cart.add_to_cart(sofa)
    logged_in.cart.add_to_cart(sofa)
    logged_in.cart.add_to_cart(table)
    return logged_in
