"""Shopping cart held in local storage."""

import logging
from typing import Optional

from pydantic import ValidationError

from .models import CartItem
from .storage import CART_KEY, LocalStorage

logger = logging.getLogger(__name__)


class CartStore:
    """
    Ordered collection of cart lines, one per product id.

    Lines keep insertion order. Every mutation is written back to storage, and
    the cart is rehydrated from storage on construction.
    """

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        self._items: list[CartItem] = self._load()

    def _load(self) -> list[CartItem]:
        items = []
        for data in self.storage.get_item(CART_KEY, []) or []:
            try:
                items.append(CartItem.model_validate(data))
            except ValidationError as e:
                logger.warning(f"Dropping invalid cart line from storage: {e}")
        if items:
            logger.info(f"Restored cart with {len(items)} line(s)")
        return items

    def _save(self) -> None:
        self.storage.set_item(CART_KEY, [item.model_dump(mode="json") for item in self._items])

    def _find(self, product_id: str) -> Optional[CartItem]:
        for item in self._items:
            if item.id == product_id:
                return item
        return None

    @property
    def items(self) -> list[CartItem]:
        """Copies of the cart lines in insertion order."""
        return [item.model_copy() for item in self._items]

    def is_empty(self) -> bool:
        return not self._items

    def contains(self, product_id: str) -> bool:
        return self._find(product_id) is not None

    def add_to_cart(self, item: CartItem) -> CartItem:
        """
        Add one unit of a product.

        An existing line only has its quantity incremented; the name, price and
        image it was first added with are kept. A new line starts at quantity 1
        whatever quantity the given item carries.

        Returns:
            The resulting cart line
        """
        existing = self._find(item.id)
        if existing is not None:
            existing.quantity += 1
            line = existing
        else:
            line = item.model_copy(update={"quantity": 1})
            self._items.append(line)
        self._save()
        logger.info(f"Cart: {line.id} x{line.quantity}")
        return line.model_copy()

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity. Zero or less removes the line."""
        if quantity <= 0:
            self.remove_from_cart(product_id)
            return

        existing = self._find(product_id)
        if existing is None:
            logger.warning(f"Cannot update {product_id}: not in cart")
            return
        existing.quantity = quantity
        self._save()

    def remove_from_cart(self, product_id: str) -> None:
        """Remove a line. Does nothing when the product is not in the cart."""
        remaining = [item for item in self._items if item.id != product_id]
        if len(remaining) != len(self._items):
            self._items = remaining
            self._save()

    def clear_cart(self) -> None:
        self._items = []
        self._save()
        logger.info("Cart cleared")

    def get_total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    def get_total_price(self) -> float:
        """Sum of price times quantity. Rounding is left to display."""
        return sum((item.price * item.quantity for item in self._items), 0.0)
