"""Tests for the checkout pipeline."""
import asyncio

import httpx
import pytest

from fastmeuble_server.checkout import (
    AuthenticationRequired,
    CheckoutForm,
    CheckoutPipeline,
    CheckoutState,
    CheckoutValidationError,
    EmptyCartError,
    OrderAlreadyPlaced,
    validate_checkout_form,
)
from fastmeuble_server.fastmeuble_client import ApiError
from fastmeuble_server.models import PaymentMethod

from .conftest import ok, order_data, product_data, request_json


def valid_form(**overrides) -> CheckoutForm:
    fields = {
        "first_name": "Jean",
        "last_name": "Dupont",
        "email": "jean@example.com",
        "phone": "+237654366920",
        "address": "12 Rue de la Joie",
    }
    fields.update(overrides)
    return CheckoutForm(**fields)


class TestValidateCheckoutForm:
    def test_valid_form_has_no_errors(self):
        assert validate_checkout_form(valid_form()) == {}

    def test_defaults_fill_city_region_and_payment(self):
        form = valid_form()

        assert form.city == "Douala"
        assert form.region == "Littoral"
        assert form.country == "Cameroon"
        assert form.payment_method is PaymentMethod.MOBILE_MONEY

    def test_short_phone_is_rejected(self):
        errors = validate_checkout_form(valid_form(phone="12345"))

        assert errors == {"phone": "Please enter a valid phone number"}

    def test_phone_with_spaces_is_accepted(self):
        assert validate_checkout_form(valid_form(phone="+237 654 36 69 20")) == {}

    def test_invalid_email(self):
        errors = validate_checkout_form(valid_form(email="jean@example"))

        assert errors == {"email": "Please enter a valid email"}

    def test_blank_required_fields(self):
        errors = validate_checkout_form(CheckoutForm(city=" ", region=""))

        assert set(errors) == {"first_name", "last_name", "email", "phone", "address", "city", "region"}
        assert errors["first_name"] == "First name is required"

    @pytest.mark.parametrize(
        "field, message",
        [
            ("first_name", "First name is required"),
            ("last_name", "Last name is required"),
            ("email", "Email is required"),
            ("phone", "Phone number is required"),
            ("address", "Address is required"),
            ("city", "City is required"),
            ("region", "Region is required"),
        ],
    )
    def test_each_blank_field_is_refused_alone(self, field, message):
        assert validate_checkout_form(valid_form(**{field: "  "})) == {field: message}


class TestCheckoutRefusals:
    """Refused checkouts never reach the backend."""

    def test_not_logged_in(self, context, backend):
        with pytest.raises(AuthenticationRequired) as exc_info:
            asyncio.run(context.checkout.submit(valid_form()))

        assert exc_info.value.redirect == "/login"
        assert backend.requests == []

    def test_empty_cart(self, logged_in, backend):
        with pytest.raises(EmptyCartError) as exc_info:
            asyncio.run(logged_in.checkout.submit(valid_form()))

        assert exc_info.value.redirect == "/shop"
        assert backend.requests == []

    def test_invalid_phone(self, filled_cart, backend):
        """
        A five digit phone is refused with a field error and no order call.
        """
        # Act
        with pytest.raises(CheckoutValidationError) as exc_info:
            asyncio.run(filled_cart.checkout.submit(valid_form(phone="12345")))

        # Assert
        assert exc_info.value.errors == {"phone": "Please enter a valid phone number"}
        assert backend.requests == []
        assert filled_cart.checkout.state is CheckoutState.FORM_ENTRY
        assert filled_cart.cart.get_total_items() == 3

    @pytest.mark.parametrize("field", ["first_name", "last_name", "email", "phone", "address", "city", "region"])
    def test_one_blank_field_blocks_the_order(self, filled_cart, backend, field):
        with pytest.raises(CheckoutValidationError) as exc_info:
            asyncio.run(filled_cart.checkout.submit(valid_form(**{field: ""})))

        assert list(exc_info.value.errors) == [field]
        assert backend.requests == []


class TestCheckoutSubmit:
    def test_success_places_one_order_and_clears_cart(self, filled_cart, backend):
        """
        A valid form sends one order carrying the cart lines and the
        customer, then the cart is cleared.
        """
        # Arrange
        backend.add("POST", "/orders", ok(order_data(), "Order created"), status=201)

        # Act
        order = asyncio.run(filled_cart.checkout.submit(valid_form()))

        # Assert
        assert order.order_number == "ORD-001"
        calls = backend.calls("POST", "/orders")
        assert len(calls) == 1
        body = request_json(calls[0])
        assert [(i["productId"], i["quantity"], i["price"]) for i in body["items"]] == [
            ("p1", 2, 100),
            ("p2", 1, 50),
        ]
        assert body["customer"]["name"] == "Jean Dupont"
        assert body["customer"]["city"] == "Douala"
        assert body["paymentMethod"] == "mobile_money"
        assert body["shipping"] == 0
        assert calls[0].headers["Authorization"] == "Bearer user-token"
        assert calls[0].headers["Idempotency-Key"]
        assert filled_cart.checkout.order == order
        assert filled_cart.cart.is_empty()
        # With no clear delay the cart is already empty, so a new checkout may start
        assert filled_cart.checkout.state is CheckoutState.FORM_ENTRY

    def test_cart_is_cleared_after_the_delay(self, filled_cart, backend):
        """The receipt is available before the delayed clear runs."""
        backend.add("POST", "/orders", ok(order_data()), status=201)
        pipeline = CheckoutPipeline(filled_cart.cart, filled_cart.auth_manager, filled_cart.client, clear_delay=0.05)
        seen = {}

        async def scenario():
            await pipeline.submit(valid_form())
            seen["pending"] = pipeline.cart_clear_pending
            seen["items_before"] = filled_cart.cart.get_total_items()
            await asyncio.sleep(0.2)
            seen["items_after"] = filled_cart.cart.get_total_items()

        asyncio.run(scenario())

        assert seen == {"pending": True, "items_before": 3, "items_after": 0}
        assert not pipeline.cart_clear_pending
        assert pipeline.state is CheckoutState.FORM_ENTRY

    def test_confirmed_order_cannot_be_placed_again(self, filled_cart, backend):
        """
        While the cart still holds the ordered lines, a second submit is
        refused and only one order reaches the backend.
        """
        # Arrange
        backend.add("POST", "/orders", ok(order_data()), status=201)
        pipeline = CheckoutPipeline(filled_cart.cart, filled_cart.auth_manager, filled_cart.client, clear_delay=5)
        seen = {}

        async def scenario():
            await pipeline.submit(valid_form())
            try:
                await pipeline.submit(valid_form())
            except OrderAlreadyPlaced as e:
                seen["refused"] = e.order_number
            seen["state"] = pipeline.state
            seen["items"] = filled_cart.cart.get_total_items()
            pipeline.shutdown()

        # Act
        asyncio.run(scenario())

        # Assert
        assert seen == {"refused": "ORD-001", "state": CheckoutState.CONFIRMED, "items": 3}
        assert len(backend.calls("POST", "/orders")) == 1
        assert pipeline.state is CheckoutState.FORM_ENTRY
        assert pipeline.order.order_number == "ORD-001"

    def test_new_checkout_after_cart_clear(self, filled_cart, backend):
        """Once the cart has been cleared, the next cart can be ordered."""
        backend.add("POST", "/orders", ok(order_data()), status=201)
        pipeline = CheckoutPipeline(filled_cart.cart, filled_cart.auth_manager, filled_cart.client, clear_delay=0.05)

        async def scenario():
            await pipeline.submit(valid_form())
            await asyncio.sleep(0.2)
            filled_cart.add_product_to_cart("p1")
            await pipeline.submit(valid_form())

        backend.add("GET", "/products/p1", ok(product_data()))
        asyncio.run(scenario())

        calls = backend.calls("POST", "/orders")
        assert len(calls) == 2
        assert calls[0].headers["Idempotency-Key"] != calls[1].headers["Idempotency-Key"]

    def test_shutdown_runs_pending_clear(self, filled_cart, backend):
        backend.add("POST", "/orders", ok(order_data()), status=201)
        pipeline = CheckoutPipeline(filled_cart.cart, filled_cart.auth_manager, filled_cart.client, clear_delay=60)

        async def scenario():
            await pipeline.submit(valid_form())
            pipeline.shutdown()

        asyncio.run(scenario())

        assert filled_cart.cart.is_empty()
        assert not pipeline.cart_clear_pending

    def test_server_error_keeps_cart_and_form(self, filled_cart, backend):
        """A failed order call surfaces the message and keeps everything."""
        backend.add("POST", "/orders", {"success": False, "message": "Database unavailable"}, status=500)
        form = valid_form()

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(filled_cart.checkout.submit(form))

        assert exc_info.value.message == "Database unavailable"
        checkout = filled_cart.checkout
        assert checkout.state is CheckoutState.FORM_ENTRY
        assert checkout.last_error == "Database unavailable"
        assert checkout.last_form == form
        assert checkout.order is None
        assert filled_cart.cart.get_total_items() == 3

    def test_retry_of_same_draft_reuses_idempotency_key(self, filled_cart, backend):
        """A retry after a failure carries the same key; a success rotates it."""
        attempts = []

        def flaky(request):
            attempts.append(request.headers["Idempotency-Key"])
            if len(attempts) == 1:
                return httpx.Response(502, json={"message": "Bad gateway"})
            return httpx.Response(201, json=ok(order_data()))

        backend.add("POST", "/orders", flaky)
        form = valid_form()

        with pytest.raises(ApiError):
            asyncio.run(filled_cart.checkout.submit(form))
        asyncio.run(filled_cart.checkout.submit(form))

        assert len(attempts) == 2
        assert attempts[0] == attempts[1]
        assert filled_cart.checkout._idempotency_key is None

    def test_changed_form_gets_a_new_key(self, filled_cart, backend):
        keys = []

        def failing(request):
            keys.append(request.headers["Idempotency-Key"])
            return httpx.Response(500, json={"message": "Try again"})

        backend.add("POST", "/orders", failing)

        for notes in ("", "Please call before delivery"):
            with pytest.raises(ApiError):
                asyncio.run(filled_cart.checkout.submit(valid_form(notes=notes)))

        assert len(keys) == 2
        assert keys[0] != keys[1]
