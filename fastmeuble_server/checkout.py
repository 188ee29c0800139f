"""Checkout pipeline: validate the form, submit one order, keep the receipt."""

import asyncio
import logging
import re
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .auth import AuthManager
from .cart import CartStore
from .fastmeuble_client import FastMeubleClient
from .models import Customer, Order, OrderDraft, OrderItem, PaymentMethod

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{8,15}$")

FREE_SHIPPING = 0.0


class CheckoutForm(BaseModel):
    """Customer, shipping and payment fields entered at checkout."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = "Douala"
    region: str = "Littoral"
    postal_code: str = ""
    country: str = "Cameroon"
    notes: str = ""
    payment_method: PaymentMethod = PaymentMethod.MOBILE_MONEY

    def to_customer(self) -> Customer:
        return Customer(
            name=f"{self.first_name.strip()} {self.last_name.strip()}".strip(),
            email=self.email.strip(),
            phone=self.phone.strip(),
            address=self.address.strip(),
            city=self.city.strip(),
            region=self.region.strip(),
            country=self.country.strip() or None,
            postal_code=self.postal_code.strip() or None,
        )


def validate_checkout_form(form: CheckoutForm) -> dict[str, str]:
    """
    Check required fields and formats.

    Returns:
        Field name to error message; empty when the form is valid
    """
    errors: dict[str, str] = {}

    if not form.first_name.strip():
        errors["first_name"] = "First name is required"
    if not form.last_name.strip():
        errors["last_name"] = "Last name is required"

    if not form.email.strip():
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(form.email):
        errors["email"] = "Please enter a valid email"

    if not form.phone.strip():
        errors["phone"] = "Phone number is required"
    elif not PHONE_PATTERN.match(re.sub(r"\s", "", form.phone)):
        errors["phone"] = "Please enter a valid phone number"

    if not form.address.strip():
        errors["address"] = "Address is required"
    if not form.city.strip():
        errors["city"] = "City is required"
    if not form.region.strip():
        errors["region"] = "Region is required"

    return errors


class CheckoutState(str, Enum):
    FORM_ENTRY = "form_entry"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"


class CheckoutError(Exception):
    """Base class for refused checkouts. ``redirect`` names where the shopper is sent."""

    redirect: Optional[str] = None


class AuthenticationRequired(CheckoutError):
    redirect = "/login"

    def __init__(self) -> None:
        super().__init__("Please login to place an order")


class EmptyCartError(CheckoutError):
    redirect = "/shop"

    def __init__(self) -> None:
        super().__init__("Your cart is empty")


class CheckoutValidationError(CheckoutError):
    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("Please fill in all required fields correctly")
        self.errors = errors


class CheckoutInProgress(CheckoutError):
    def __init__(self) -> None:
        super().__init__("An order is already being submitted")


class OrderAlreadyPlaced(CheckoutError):
    def __init__(self, order_number: str) -> None:
        super().__init__(f"Order {order_number} has already been placed for this cart")
        self.order_number = order_number


class CheckoutPipeline:
    """
    Runs one checkout at a time.

    State moves FORM_ENTRY -> SUBMITTING -> CONFIRMED on success, or back to
    FORM_ENTRY when the order call fails. Every refusal happens before the
    network call. After a confirmed order the cart is cleared ``clear_delay``
    seconds later on the running event loop; the receipt does not wait for it.
    CONFIRMED only goes back to FORM_ENTRY through ``reset``, which runs once
    that clear has happened.
    """

    def __init__(
        self,
        cart: CartStore,
        auth_manager: AuthManager,
        client: FastMeubleClient,
        clear_delay: float = 5.0,
    ) -> None:
        self.cart = cart
        self.auth_manager = auth_manager
        self.client = client
        self.clear_delay = clear_delay
        self.state = CheckoutState.FORM_ENTRY
        self.order: Optional[Order] = None
        self.last_form: Optional[CheckoutForm] = None
        self.last_error: Optional[str] = None
        self._pending_draft: Optional[OrderDraft] = None
        self._idempotency_key: Optional[str] = None
        self._clear_handle: Optional[asyncio.TimerHandle] = None

    def check_preconditions(self) -> None:
        """Raise when the shopper may not reach the checkout form at all."""
        if not self.auth_manager.is_authenticated():
            raise AuthenticationRequired()
        if self.cart.is_empty():
            raise EmptyCartError()

    def build_order_draft(self, form: CheckoutForm) -> OrderDraft:
        items = [
            OrderItem(
                product_id=item.id,
                product_name=item.name,
                quantity=item.quantity,
                price=item.price,
                image=item.image,
            )
            for item in self.cart.items
        ]
        return OrderDraft(
            items=items,
            customer=form.to_customer(),
            payment_method=form.payment_method,
            shipping=FREE_SHIPPING,
            notes=form.notes.strip() or None,
        )

    def _idempotency_key_for(self, draft: OrderDraft) -> str:
        # Retrying the same draft reuses its key; any change starts a new submission
        if self._idempotency_key is None or draft != self._pending_draft:
            self._idempotency_key = str(uuid.uuid4())
            self._pending_draft = draft
        return self._idempotency_key

    async def submit(self, form: CheckoutForm) -> Order:
        """
        Validate and place the order.

        Raises:
            CheckoutError: If a precondition or field check fails (no network call)
            ApiError: If the order call fails; the form and cart are kept
        """
        if self.state is CheckoutState.SUBMITTING:
            raise CheckoutInProgress()
        if self.state is CheckoutState.CONFIRMED:
            raise OrderAlreadyPlaced(self.order.order_number)

        self.last_form = form
        self.last_error = None
        self.check_preconditions()

        errors = validate_checkout_form(form)
        if errors:
            logger.info(f"Checkout refused, invalid fields: {sorted(errors)}")
            raise CheckoutValidationError(errors)

        draft = self.build_order_draft(form)
        idempotency_key = self._idempotency_key_for(draft)

        self.state = CheckoutState.SUBMITTING
        logger.info(f"=== CHECKOUT: {len(draft.items)} line(s), payment={draft.payment_method.value} ===")
        try:
            order = self.client.create_order(draft, idempotency_key=idempotency_key)
        except Exception as e:
            self.state = CheckoutState.FORM_ENTRY
            self.last_error = str(e)
            logger.error(f"Order submission failed: {e}")
            raise

        self.order = order
        self.state = CheckoutState.CONFIRMED
        self._idempotency_key = None
        self._pending_draft = None
        logger.info(f"Order {order.order_number} confirmed")
        self._schedule_cart_clear()
        return order

    def _schedule_cart_clear(self) -> None:
        if self.clear_delay <= 0:
            self._clear_cart_after_order()
            return
        loop = asyncio.get_running_loop()
        self._clear_handle = loop.call_later(self.clear_delay, self._clear_cart_after_order)

    def _clear_cart_after_order(self) -> None:
        self._clear_handle = None
        self.cart.clear_cart()
        self.reset()

    @property
    def cart_clear_pending(self) -> bool:
        return self._clear_handle is not None

    def reset(self) -> None:
        """Start a new checkout. ``order`` keeps the last confirmed order for its receipt."""
        self.state = CheckoutState.FORM_ENTRY
        self.last_error = None

    def shutdown(self) -> None:
        """Run a pending cart clear now instead of losing it with the event loop."""
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_cart_after_order()
