"""Plain-text order receipt."""

from typing import Optional

from .currency import format_xaf
from .i18n import Translator
from .models import Order

RULE = "=" * 44
THIN_RULE = "-" * 44


def render_receipt(order: Order, translator: Translator, message: Optional[str] = None) -> str:
    """
    Render an order as a printable receipt.

    Args:
        order: Order returned by the backend
        translator: Translator for labels
        message: Closing message; defaults to the translated follow-up note
    """
    t = translator.t
    customer = order.customer
    lines = [
        RULE,
        t("receipt.title"),
        RULE,
        f"{t('receipt.order_number')}{order.order_number}",
        f"{t('receipt.date')}: {order.created_at.strftime('%d %b %Y')}",
        f"{t('receipt.status')}: {t('status.' + order.status.value)}",
        "",
        t("receipt.greeting", name=customer.first_name),
        "",
        f"{t('receipt.items')}:",
    ]

    for item in order.items:
        lines.append(f"  {item.product_name}")
        lines.append(f"    {item.quantity} x {format_xaf(item.price)} = {format_xaf(item.subtotal)}")

    shipping = t("receipt.free") if order.shipping == 0 else format_xaf(order.shipping)
    lines.extend(
        [
            THIN_RULE,
            f"{t('receipt.subtotal')}: {format_xaf(order.subtotal)}",
            f"{t('receipt.shipping')}: {shipping}",
            f"{t('receipt.total')}: {format_xaf(order.total)}",
            f"{t('receipt.payment')}: {t('payment.' + order.payment_method.value)}",
            THIN_RULE,
            f"{t('receipt.customer')}: {customer.name}",
            f"  {customer.email}",
            f"  {customer.phone}",
        ]
    )

    address = ", ".join(
        part for part in (customer.address, customer.city, customer.region, customer.country) if part
    )
    lines.append(f"{t('receipt.deliver_to')}: {address}")
    if customer.postal_code:
        lines.append(f"  {customer.postal_code}")

    if order.notes:
        lines.append(f"{t('receipt.notes')}: {order.notes}")

    lines.extend(["", message or t("receipt.closing"), RULE])
    return "\n".join(lines)
