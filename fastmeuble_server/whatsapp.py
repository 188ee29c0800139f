"""WhatsApp deep links for ordering by chat."""

from typing import Iterable
from urllib.parse import quote

from .config import DEFAULT_WHATSAPP_NUMBER
from .currency import format_xaf
from .models import CartItem

WHATSAPP_BASE_URL = "https://wa.me"

# Characters encodeURIComponent leaves as-is, beyond quote()'s defaults
_URI_COMPONENT_SAFE = "!~*'()"


def format_cart_message(items: Iterable[CartItem]) -> str:
    """Format cart items into an order request message."""
    items = list(items)
    if not items:
        return "Hello! I would like to place an order."

    lines = ["Hello! I would like to place an order for the following items:", ""]
    for index, item in enumerate(items, 1):
        lines.append(f"{index}. {item.name}")
        lines.append(f"   Quantity: {item.quantity}")
        lines.append(f"   Price: {format_xaf(item.price)} each")
        lines.append(f"   Subtotal: {format_xaf(item.subtotal)}")
        lines.append("")

    total = sum(item.subtotal for item in items)
    lines.append(f"Total: {format_xaf(total)}")
    lines.append("")
    lines.append("Please let me know about availability and delivery options. Thank you!")
    return "\n".join(lines)


def format_product_message(product_name: str, category: str, quantity: int = 1) -> str:
    """Format an inquiry about a single product."""
    return (
        "Hello! I'm interested in ordering:\n\n"
        f"Product: {product_name}\n"
        f"Category: {category}\n"
        f"Quantity: {quantity}\n\n"
        "Can we discuss pricing and delivery options? Thank you!"
    )


def whatsapp_url(message: str, number: str = DEFAULT_WHATSAPP_NUMBER) -> str:
    """Build a wa.me link. Encodes like JavaScript's encodeURIComponent."""
    return f"{WHATSAPP_BASE_URL}/{number}?text={quote(message, safe=_URI_COMPONENT_SAFE)}"


def cart_whatsapp_url(items: Iterable[CartItem], number: str = DEFAULT_WHATSAPP_NUMBER) -> str:
    return whatsapp_url(format_cart_message(items), number)


def product_whatsapp_url(
    product_name: str, category: str, quantity: int = 1, number: str = DEFAULT_WHATSAPP_NUMBER
) -> str:
    return whatsapp_url(format_product_message(product_name, category, quantity), number)
