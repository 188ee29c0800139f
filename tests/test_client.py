"""Tests for the backend API client."""
import httpx
import pytest

from fastmeuble_server.auth import AuthManager
from fastmeuble_server.fastmeuble_client import ApiError, FastMeubleClient
from fastmeuble_server.models import OrderStatus, ProductFilters
from fastmeuble_server.storage import TOKEN_KEY, LocalStorage

from .conftest import API_URL, ok, order_data, product_data, request_json, user_data


class TestRequestHeaders:
    def test_no_authorization_without_token(self, context, backend):
        backend.add("GET", "/products", ok([]))

        context.client.get_products()

        assert "Authorization" not in backend.requests[0].headers
        assert backend.requests[0].headers["Content-Type"] == "application/json"

    def test_bearer_token_is_attached(self, logged_in, backend):
        backend.add("GET", "/products", ok([]))

        logged_in.client.get_products()

        assert backend.requests[0].headers["Authorization"] == "Bearer user-token"

    def test_filters_become_query_params(self, context, backend):
        backend.add("GET", "/products", ok([]))

        context.client.get_products(ProductFilters(search="sofa", min_price=1000, in_stock=True, category=""))

        params = dict(backend.requests[0].url.params)
        assert params == {"search": "sofa", "minPrice": "1000.0", "inStock": "true"}


class TestErrors:
    """Every failure reaches callers as an ApiError with a readable message."""

    def test_backend_message_is_used(self, context, backend):
        backend.add("POST", "/auth/login", {"success": False, "message": "Invalid credentials"}, status=401)

        with pytest.raises(ApiError) as exc_info:
            context.client.login("jean@example.com", "wrong")

        assert exc_info.value.message == "Invalid credentials"
        assert exc_info.value.status_code == 401

    def test_error_field_is_used(self, context, backend):
        backend.add("GET", "/products/p9", {"error": "Product not found"}, status=404)

        with pytest.raises(ApiError) as exc_info:
            context.client.get_product("p9")

        assert exc_info.value.message == "Product not found"

    def test_json_without_message(self, context, backend):
        backend.add("GET", "/products/p9", {"success": False}, status=400)

        with pytest.raises(ApiError) as exc_info:
            context.client.get_product("p9")

        assert exc_info.value.message == "An error occurred"

    def test_non_json_error_body(self, context, backend):
        backend.add("GET", "/settings", lambda request: httpx.Response(503, text="<html>down</html>"))

        with pytest.raises(ApiError) as exc_info:
            context.client.get_settings()

        assert exc_info.value.message == "Server error: 503 Service Unavailable"

    def test_unreachable_backend(self):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client = FastMeubleClient(AuthManager(LocalStorage()), base_url=API_URL, transport=httpx.MockTransport(refuse))

        with pytest.raises(ApiError) as exc_info:
            client.get_categories()

        assert exc_info.value.message == (
            f"Cannot connect to backend server. Please ensure the backend is running on {API_URL}"
        )
        assert exc_info.value.status_code is None

    def test_malformed_payload(self, context, backend):
        """A product without a price is rejected rather than defaulted."""
        broken = product_data()
        del broken["price"]
        backend.add("GET", "/products/p1", ok(broken))

        with pytest.raises(ApiError) as exc_info:
            context.client.get_product("p1")

        assert exc_info.value.message == "Malformed Product data received from server"

    def test_record_without_id(self, context, backend):
        broken = product_data()
        del broken["_id"]
        backend.add("GET", "/products", ok([broken]))

        with pytest.raises(ApiError):
            context.client.get_products()

    def test_non_json_success_body(self, context, backend):
        backend.add("DELETE", "/products/p1", lambda request: httpx.Response(204))

        assert context.client.delete_product("p1") is None


class TestRecords:
    def test_underscore_id_is_normalized(self, context, backend):
        backend.add("GET", "/products/p1", ok(product_data()))

        product = context.client.get_product("p1")

        assert product.id == "p1"
        assert product.category == "Salon"
        assert product.image == "https://cdn.test/sofa.jpg"
        assert product.specifications.material == "Velvet"

    def test_plain_id_is_accepted(self, context, backend):
        data = product_data()
        data["id"] = data.pop("_id")
        backend.add("GET", "/products/p1", ok(data))

        assert context.client.get_product("p1").id == "p1"

    def test_order_status_update_sends_status(self, admin_session, backend):
        backend.add("PUT", "/orders/o1/status", ok(order_data(status="confirmed")))

        order = admin_session.client.update_order_status("o1", OrderStatus.CONFIRMED)

        assert order.status is OrderStatus.CONFIRMED
        assert request_json(backend.requests[0]) == {"status": "confirmed"}

    def test_review_uses_wire_names(self, context, backend):
        backend.add(
            "POST",
            "/reviews",
            ok({"_id": "r1", "productId": "p1", "userName": "Awa", "rating": 5, "comment": "Superbe"}),
            status=201,
        )

        review = context.client.create_review("p1", "Awa", 5, "Superbe")

        assert review.user_name == "Awa"
        assert request_json(backend.requests[0]) == {
            "productId": "p1",
            "userName": "Awa",
            "rating": 5,
            "comment": "Superbe",
        }


class TestAuth:
    def test_login_saves_session(self, context, backend):
        backend.add("POST", "/auth/login", ok({"user": user_data(), "token": "fresh-token"}))

        auth = context.client.login("jean@example.com", "secret1")

        assert auth.token == "fresh-token"
        assert context.storage.get_item(TOKEN_KEY) == "fresh-token"
        assert context.auth_manager.is_authenticated()
        assert not context.auth_manager.is_admin()

    def test_register_saves_session(self, context, backend):
        backend.add("POST", "/auth/register", ok({"user": user_data(), "token": "new-token"}), status=201)

        context.client.register("Jean Dupont", "jean@example.com", "secret1")

        assert context.auth_manager.get_token() == "new-token"
        assert context.auth_manager.user.name == "Jean Dupont"

    def test_get_me_refreshes_user(self, logged_in, backend):
        backend.add("GET", "/auth/me", ok(user_data(role="admin")))

        logged_in.client.get_me()

        assert logged_in.auth_manager.is_admin()

    def test_logout_clears_session(self, logged_in):
        logged_in.client.logout()

        assert not logged_in.auth_manager.is_authenticated()
        assert logged_in.auth_manager.user is None

    def test_session_survives_restart(self, tmp_path):
        path = str(tmp_path / "storage.json")
        AuthManager(LocalStorage(path)).save_session("kept-token")

        assert AuthManager(LocalStorage(path)).get_token() == "kept-token"
