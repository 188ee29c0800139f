"""MCP Server for the Fast Meuble furniture store."""

import asyncio
import json
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl, ValidationError

from .admin import ConfirmationRequired
from .cart import CartStore
from .checkout import CheckoutError, CheckoutForm, CheckoutValidationError
from .config import ServerConfig
from .context import StoreContext
from .currency import format_xaf
from .fastmeuble_client import ApiError
from .i18n import LOCALE_NAMES, LOCALES, UnknownLocale
from .models import OrderFilters, OrderStatus, PaymentMethod, Product, ProductFilters
from .receipt import render_receipt
from .whatsapp import cart_whatsapp_url, product_whatsapp_url

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("fastmeuble-mcp-server")

# Initialize server
app = Server("fastmeuble-mcp-server")

# Global state
context: StoreContext

CART_URI = "fastmeuble://cart"
ORDERS_URI = "fastmeuble://orders"

DRAFT_SCHEMA = {
    "type": "object",
    "description": "Record fields using the backend's camelCase names",
}


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _format_products(products: list[Product], t) -> str:
    lines = [t("products.found", count=len(products)), ""]
    for i, product in enumerate(products, 1):
        lines.append(f"{i}. {product.name}")
        lines.append(f"   {t('products.id')}: {product.id}")
        if product.category:
            lines.append(f"   {t('products.category')}: {product.category}")
        lines.append(f"   {t('products.price')}: {format_xaf(product.price)}")
        if product.original_price:
            lines.append(f"   {t('products.original_price')}: {format_xaf(product.original_price)}")
        lines.append(f"   {t('products.in_stock') if product.in_stock else t('products.out_of_stock')}")
    return "\n".join(lines)


def _format_product(product: Product, t) -> str:
    lines = [
        product.name,
        f"{t('products.id')}: {product.id}",
        f"{t('products.category')}: {product.category or '-'}",
        f"{t('products.price')}: {format_xaf(product.price)}",
    ]
    if product.original_price:
        lines.append(f"{t('products.original_price')}: {format_xaf(product.original_price)}")
    lines.append(t("products.in_stock") if product.in_stock else t("products.out_of_stock"))
    lines.append(f"{t('products.rating')}: {product.rating} ({product.reviews})")
    if product.description:
        lines.append(f"\n{t('products.description')}: {product.description}")
    specs = product.specifications
    spec_lines = [
        f"  {name}: {value}"
        for name, value in (
            ("material", specs.material),
            ("dimensions", specs.dimensions),
            ("weight", specs.weight),
            ("color", specs.color),
        )
        if value
    ]
    if spec_lines:
        lines.append(f"{t('products.specifications')}:")
        lines.extend(spec_lines)
    return "\n".join(lines)


def _format_cart(cart: CartStore, t) -> str:
    items = cart.items
    if not items:
        return t("cart.empty")

    lines = [t("cart.title", count=cart.get_total_items()), ""]
    for i, item in enumerate(items, 1):
        lines.append(f"{i}. {item.name}")
        lines.append(f"   {t('products.id')}: {item.id}")
        lines.append(f"   {t('cart.price')}: {format_xaf(item.price)}")
        lines.append(f"   {t('cart.quantity')}: {item.quantity}")
        lines.append(f"   {t('cart.subtotal')}: {format_xaf(item.subtotal)}")
    lines.append(f"\n{'=' * 50}")
    lines.append(f"{t('cart.total')}: {format_xaf(cart.get_total_price())}")
    return "\n".join(lines)


def _format_dashboard(ctx: StoreContext, t) -> str:
    snapshot = ctx.dashboard.load()
    ps, order_stats = snapshot.product_stats, snapshot.order_stats
    lines = [
        t("admin.dashboard"),
        f"{t('admin.products')}: {ps.total} ({ps.published} {t('admin.published')}, {ps.drafts} {t('admin.drafts')})",
        f"{t('admin.catalog_value')}: {format_xaf(ps.total_value)}",
        f"{t('admin.orders')}: {order_stats.total} ({order_stats.pending} {t('admin.pending')})",
        f"{t('admin.revenue')}: {format_xaf(order_stats.total_revenue)}",
        f"{t('admin.categories')}: {snapshot.category_count}",
        "",
        f"{t('admin.recent_products')}:",
    ]
    lines.extend(f"  - {p.name} ({format_xaf(p.price)}, {p.status})" for p in snapshot.recent_products)
    lines.append(f"\n{t('admin.recent_orders')}:")
    lines.extend(
        f"  - #{o.order_number} {o.customer.name} {format_xaf(o.total)} [{t('status.' + o.status.value)}]"
        for o in snapshot.recent_orders
    )
    return "\n".join(lines)


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    resources = [
        Resource(
            uri=AnyUrl(CART_URI),
            name="Shopping Cart",
            mimeType="application/json",
            description="Current shopping cart contents",
        )
    ]

    if context.auth_manager.is_admin():
        resources.append(
            Resource(
                uri=AnyUrl(ORDERS_URI),
                name="Orders",
                mimeType="application/json",
                description="All store orders",
            )
        )

    return resources


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    uri_str = str(uri)

    if uri_str == CART_URI:
        cart = context.cart
        return json.dumps(
            {
                "items": [item.model_dump(mode="json") for item in cart.items],
                "total_items": cart.get_total_items(),
                "total_price": cart.get_total_price(),
            },
            indent=2,
        )

    elif uri_str == ORDERS_URI:
        if not context.auth_manager.is_admin():
            return context.translator.t("auth.admin_required")

        orders = context.orders_admin.load()
        return json.dumps([order.to_wire() for order in orders], indent=2)

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="fastmeuble_login",
            description="Log in to Fast Meuble. Uses FASTMEUBLE_EMAIL/FASTMEUBLE_PASSWORD if not provided.",
            inputSchema={
                "type": "object",
                "properties": {
                    "email": {"type": "string", "description": "Account email"},
                    "password": {"type": "string", "description": "Account password"},
                    "admin": {
                        "type": "boolean",
                        "description": "Log in to the admin console (requires an admin account)",
                        "default": False,
                    },
                },
            },
        ),
        Tool(
            name="fastmeuble_register",
            description="Create a customer account",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "email": {"type": "string"},
                    "password": {"type": "string", "description": "At least 6 characters"},
                },
                "required": ["name", "email", "password"],
            },
        ),
        Tool(
            name="fastmeuble_logout",
            description="Log out and forget the session token",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_whoami",
            description="Show the logged-in account",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_reset_password",
            description="Set a new password using the token from a reset email",
            inputSchema={
                "type": "object",
                "properties": {
                    "token": {"type": "string"},
                    "password": {"type": "string", "description": "At least 6 characters"},
                },
                "required": ["token", "password"],
            },
        ),
        Tool(
            name="fastmeuble_list_products",
            description="Browse or search the furniture catalog",
            inputSchema={
                "type": "object",
                "properties": {
                    "search": {"type": "string", "description": "Search term"},
                    "category": {"type": "string", "description": "Category id or slug"},
                    "min_price": {"type": "number"},
                    "max_price": {"type": "number"},
                    "in_stock": {"type": "boolean"},
                    "is_hot": {"type": "boolean", "description": "Only hot deals"},
                    "page": {"type": "integer"},
                    "limit": {"type": "integer"},
                },
            },
        ),
        Tool(
            name="fastmeuble_get_product",
            description="Get full details of a product",
            inputSchema={
                "type": "object",
                "properties": {"product_id": {"type": "string"}},
                "required": ["product_id"],
            },
        ),
        Tool(
            name="fastmeuble_list_categories",
            description="List product categories",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_list_featured_sections",
            description="List active promotional sections",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_get_product_reviews",
            description="List reviews of a product",
            inputSchema={
                "type": "object",
                "properties": {"product_id": {"type": "string"}},
                "required": ["product_id"],
            },
        ),
        Tool(
            name="fastmeuble_add_review",
            description="Review a product",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string"},
                    "user_name": {"type": "string"},
                    "rating": {"type": "integer", "minimum": 1, "maximum": 5},
                    "comment": {"type": "string"},
                },
                "required": ["product_id", "user_name", "rating", "comment"],
            },
        ),
        Tool(
            name="fastmeuble_add_to_cart",
            description="Add a product to the cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string"},
                    "quantity": {"type": "integer", "description": "Units to add (default: 1)", "default": 1},
                },
                "required": ["product_id"],
            },
        ),
        Tool(
            name="fastmeuble_update_cart_quantity",
            description="Set the quantity of a cart line; 0 removes it",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string"},
                    "quantity": {"type": "integer"},
                },
                "required": ["product_id", "quantity"],
            },
        ),
        Tool(
            name="fastmeuble_remove_from_cart",
            description="Remove a product from the cart",
            inputSchema={
                "type": "object",
                "properties": {"product_id": {"type": "string"}},
                "required": ["product_id"],
            },
        ),
        Tool(
            name="fastmeuble_clear_cart",
            description="Empty the cart",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_get_cart",
            description="Show the cart with quantities and total",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_checkout",
            description="Place an order for the cart contents and show the receipt",
            inputSchema={
                "type": "object",
                "properties": {
                    "first_name": {"type": "string"},
                    "last_name": {"type": "string"},
                    "email": {"type": "string"},
                    "phone": {"type": "string", "description": "8-15 digits, optional leading +"},
                    "address": {"type": "string"},
                    "city": {"type": "string", "default": "Douala"},
                    "region": {"type": "string", "default": "Littoral"},
                    "postal_code": {"type": "string"},
                    "country": {"type": "string", "default": "Cameroon"},
                    "notes": {"type": "string"},
                    "payment_method": {
                        "type": "string",
                        "enum": [method.value for method in PaymentMethod],
                        "default": PaymentMethod.MOBILE_MONEY.value,
                    },
                },
                "required": ["first_name", "last_name", "email", "phone", "address"],
            },
        ),
        Tool(
            name="fastmeuble_get_order",
            description="Show the receipt of an order",
            inputSchema={
                "type": "object",
                "properties": {"order_id": {"type": "string"}},
                "required": ["order_id"],
            },
        ),
        Tool(
            name="fastmeuble_whatsapp_link",
            description="Build a WhatsApp link to order the cart, or one product, by chat",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Ask about this product instead of the cart"},
                    "quantity": {"type": "integer", "default": 1},
                },
            },
        ),
        Tool(
            name="fastmeuble_send_contact_message",
            description="Send a message to the store",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "email": {"type": "string"},
                    "phone": {"type": "string"},
                    "message": {"type": "string"},
                },
                "required": ["name", "email", "message"],
            },
        ),
        Tool(
            name="fastmeuble_set_cookie_consent",
            description="Record the cookie consent choice",
            inputSchema={
                "type": "object",
                "properties": {"choice": {"type": "string", "enum": ["accepted", "rejected"]}},
                "required": ["choice"],
            },
        ),
        Tool(
            name="fastmeuble_set_language",
            description="Set the language of tool output",
            inputSchema={
                "type": "object",
                "properties": {"language": {"type": "string", "enum": list(LOCALES)}},
                "required": ["language"],
            },
        ),
        Tool(
            name="fastmeuble_admin_dashboard",
            description="Admin: store figures, recent products and recent orders",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_admin_list_orders",
            description="Admin: list orders",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": {"type": "string", "enum": [status.value for status in OrderStatus]},
                    "search": {"type": "string"},
                    "page": {"type": "integer"},
                    "limit": {"type": "integer"},
                },
            },
        ),
        Tool(
            name="fastmeuble_admin_list_products",
            description="Admin: list products of any status, with their ids",
            inputSchema={
                "type": "object",
                "properties": {
                    "search": {"type": "string"},
                    "status": {"type": "string", "enum": ["published", "draft", "archived"]},
                },
            },
        ),
        Tool(
            name="fastmeuble_admin_list_categories",
            description="Admin: list categories with their ids",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_admin_list_featured_sections",
            description="Admin: list featured sections, active or not, in display order",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_admin_update_order_status",
            description="Admin: move an order to its next status, or cancel it",
            inputSchema={
                "type": "object",
                "properties": {
                    "order_id": {"type": "string"},
                    "status": {"type": "string", "enum": [status.value for status in OrderStatus]},
                },
                "required": ["order_id", "status"],
            },
        ),
        Tool(
            name="fastmeuble_admin_delete_order",
            description="Admin: delete an order (requires confirm=true)",
            inputSchema={
                "type": "object",
                "properties": {
                    "order_id": {"type": "string"},
                    "confirm": {"type": "boolean", "default": False},
                },
                "required": ["order_id"],
            },
        ),
        Tool(
            name="fastmeuble_admin_save_product",
            description="Admin: create a product, or update it when product_id is given",
            inputSchema={
                "type": "object",
                "properties": {"product_id": {"type": "string"}, "product": DRAFT_SCHEMA},
                "required": ["product"],
            },
        ),
        Tool(
            name="fastmeuble_admin_delete_product",
            description="Admin: delete a product (requires confirm=true)",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string"},
                    "confirm": {"type": "boolean", "default": False},
                },
                "required": ["product_id"],
            },
        ),
        Tool(
            name="fastmeuble_admin_save_category",
            description="Admin: create a category, or update it when category_id is given",
            inputSchema={
                "type": "object",
                "properties": {"category_id": {"type": "string"}, "category": DRAFT_SCHEMA},
                "required": ["category"],
            },
        ),
        Tool(
            name="fastmeuble_admin_delete_category",
            description="Admin: delete a category (requires confirm=true)",
            inputSchema={
                "type": "object",
                "properties": {
                    "category_id": {"type": "string"},
                    "confirm": {"type": "boolean", "default": False},
                },
                "required": ["category_id"],
            },
        ),
        Tool(
            name="fastmeuble_admin_save_featured_section",
            description="Admin: create a featured section, or update it when section_id is given",
            inputSchema={
                "type": "object",
                "properties": {"section_id": {"type": "string"}, "section": DRAFT_SCHEMA},
                "required": ["section"],
            },
        ),
        Tool(
            name="fastmeuble_admin_delete_featured_section",
            description="Admin: delete a featured section (requires confirm=true)",
            inputSchema={
                "type": "object",
                "properties": {
                    "section_id": {"type": "string"},
                    "confirm": {"type": "boolean", "default": False},
                },
                "required": ["section_id"],
            },
        ),
        Tool(
            name="fastmeuble_admin_get_settings",
            description="Admin: show store settings",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="fastmeuble_admin_update_settings",
            description="Admin: update store settings",
            inputSchema={
                "type": "object",
                "properties": {"settings": DRAFT_SCHEMA},
                "required": ["settings"],
            },
        ),
    ]


async def _call_admin_tool(name: str, arguments: dict[str, Any], t) -> list[TextContent]:
    """Handle tools restricted to an admin session."""
    if not context.auth_manager.is_admin():
        return _text(t("auth.admin_required"))

    if name == "fastmeuble_admin_dashboard":
        return _text(_format_dashboard(context, t))

    elif name == "fastmeuble_admin_list_orders":
        admin = context.orders_admin
        admin.filters = OrderFilters(
            status=arguments.get("status"),
            search=arguments.get("search"),
            page=arguments.get("page"),
            limit=arguments.get("limit"),
        )
        orders = admin.load()
        if not orders:
            return _text(t("admin.no_orders"))

        lines = []
        for i, order in enumerate(orders, 1):
            lines.append(f"{i}. #{order.order_number} ({order.id})")
            lines.append(f"   {order.customer.name} - {order.customer.phone}")
            lines.append(f"   {t('receipt.date')}: {order.created_at.strftime('%Y-%m-%d %H:%M')}")
            lines.append(f"   {t('receipt.total')}: {format_xaf(order.total)}")
            lines.append(f"   {t('receipt.status')}: {t('status.' + order.status.value)}")
        return _text("\n".join(lines))

    elif name == "fastmeuble_admin_list_products":
        admin = context.products_admin
        admin.filters = ProductFilters(search=arguments.get("search"), status=arguments.get("status"))
        products = admin.load()
        if not products:
            return _text(t("admin.no_products"))
        return _text(
            "\n".join(
                f"{i}. {p.name} ({p.id}) - {format_xaf(p.price)} [{p.status}]" for i, p in enumerate(products, 1)
            )
        )

    elif name == "fastmeuble_admin_list_categories":
        categories = context.categories_admin.load()
        if not categories:
            return _text(t("admin.no_categories"))
        lines = [
            f"{i}. {c.name} ({c.id}) - {t('admin.products')}: {c.product_count}"
            for i, c in enumerate(categories, 1)
        ]
        return _text("\n".join(lines))

    elif name == "fastmeuble_admin_list_featured_sections":
        sections = context.featured_sections_admin.load()
        if not sections:
            return _text(t("admin.no_sections"))
        lines = []
        for i, section in enumerate(sections, 1):
            state = t("admin.active") if section.is_active else t("admin.inactive")
            lines.append(f"{i}. {section.title} ({section.id}) [{state}]")
        return _text("\n".join(lines))

    elif name == "fastmeuble_admin_update_order_status":
        order = context.orders_admin.set_status(arguments["order_id"], OrderStatus(arguments["status"]))
        return _text(
            t("admin.status_updated", number=order.order_number, status=t("status." + order.status.value))
        )

    elif name == "fastmeuble_admin_save_product":
        product = context.products_admin.save(arguments["product"], arguments.get("product_id"))
        return _text(t("admin.saved", kind=context.products_admin.kind, name=product.name))

    elif name == "fastmeuble_admin_save_category":
        category = context.categories_admin.save(arguments["category"], arguments.get("category_id"))
        return _text(t("admin.saved", kind=context.categories_admin.kind, name=category.name))

    elif name == "fastmeuble_admin_save_featured_section":
        section = context.featured_sections_admin.save(arguments["section"], arguments.get("section_id"))
        return _text(t("admin.saved", kind=context.featured_sections_admin.kind, name=section.title))

    elif name in (
        "fastmeuble_admin_delete_order",
        "fastmeuble_admin_delete_product",
        "fastmeuble_admin_delete_category",
        "fastmeuble_admin_delete_featured_section",
    ):
        screen, id_key = {
            "fastmeuble_admin_delete_order": (context.orders_admin, "order_id"),
            "fastmeuble_admin_delete_product": (context.products_admin, "product_id"),
            "fastmeuble_admin_delete_category": (context.categories_admin, "category_id"),
            "fastmeuble_admin_delete_featured_section": (context.featured_sections_admin, "section_id"),
        }[name]
        record_id = arguments[id_key]
        try:
            screen.delete(record_id, confirmed=bool(arguments.get("confirm", False)))
        except ConfirmationRequired:
            return _text(t("admin.confirm_delete", kind=screen.kind, id=record_id))
        return _text(t("admin.deleted", kind=screen.kind, id=record_id))

    elif name == "fastmeuble_admin_get_settings":
        settings = context.settings_admin.load()
        return _text(json.dumps(settings.to_wire(), indent=2, ensure_ascii=False))

    elif name == "fastmeuble_admin_update_settings":
        context.settings_admin.save(arguments["settings"])
        return _text(t("admin.settings_saved"))

    return _text(t("general.unknown_tool", name=name))


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    t = context.translator.t
    try:
        if name == "fastmeuble_login":
            email = arguments.get("email")
            password = arguments.get("password")

            # Use provided credentials or fall back to environment credentials
            if not email or not password:
                credentials = context.config.credentials
                if not credentials:
                    return _text(t("auth.no_credentials"))
                email = email or credentials.email
                password = password or credentials.password

            if arguments.get("admin"):
                auth = context.admin_login(email, password)
            else:
                auth = context.client.login(email, password)
            return _text(t("auth.logged_in", email=auth.user.email))

        elif name == "fastmeuble_register":
            if len(arguments["password"]) < 6:
                return _text(t("auth.password_too_short"))
            auth = context.client.register(arguments["name"], arguments["email"], arguments["password"])
            return _text(t("auth.registered", email=auth.user.email))

        elif name == "fastmeuble_logout":
            context.client.logout()
            return _text(t("auth.logged_out"))

        elif name == "fastmeuble_whoami":
            if not context.ensure_authenticated():
                return _text(t("auth.not_authenticated"))
            user = context.client.get_me()
            return _text(t("auth.whoami", name=user.name, email=user.email, role=user.role))

        elif name == "fastmeuble_reset_password":
            if len(arguments["password"]) < 6:
                return _text(t("auth.password_too_short"))
            context.client.reset_password(arguments["token"], arguments["password"])
            return _text(t("auth.password_reset"))

        elif name == "fastmeuble_list_products":
            filters = ProductFilters(
                search=arguments.get("search"),
                category=arguments.get("category"),
                min_price=arguments.get("min_price"),
                max_price=arguments.get("max_price"),
                in_stock=arguments.get("in_stock"),
                is_hot=arguments.get("is_hot"),
                page=arguments.get("page"),
                limit=arguments.get("limit"),
                status="published",
            )
            products = context.client.get_products(filters)
            if not products:
                return _text(t("products.none"))
            return _text(_format_products(products, t))

        elif name == "fastmeuble_get_product":
            product = context.client.get_product(arguments["product_id"])
            return _text(_format_product(product, t))

        elif name == "fastmeuble_list_categories":
            categories = context.client.get_categories()
            if not categories:
                return _text(t("categories.none"))
            lines = [t("categories.found", count=len(categories)), ""]
            for category in categories:
                lines.append(f"- {category.name} ({category.slug}): {category.product_count}")
            return _text("\n".join(lines))

        elif name == "fastmeuble_list_featured_sections":
            sections = [s for s in context.client.get_featured_sections() if s.is_active]
            if not sections:
                return _text(t("featured.none"))
            lines = [t("featured.found", count=len(sections)), ""]
            for section in sorted(sections, key=lambda s: s.order):
                discount = f" [{section.discount}]" if section.discount else ""
                lines.append(f"- {section.title}{discount}: {section.button_text} -> {section.link}")
            return _text("\n".join(lines))

        elif name == "fastmeuble_get_product_reviews":
            reviews = context.client.get_product_reviews(arguments["product_id"])
            if not reviews:
                return _text(t("reviews.none"))
            lines = [t("reviews.found", count=len(reviews)), ""]
            for review in reviews:
                lines.append(f"- {'*' * review.rating} {review.user_name}: {review.comment}")
            return _text("\n".join(lines))

        elif name == "fastmeuble_add_review":
            context.client.create_review(
                arguments["product_id"],
                arguments["user_name"],
                int(arguments["rating"]),
                arguments["comment"],
            )
            return _text(t("reviews.added"))

        elif name == "fastmeuble_add_to_cart":
            # Shoppers must be logged in to fill a cart
            if not context.ensure_authenticated():
                return _text(t("auth.not_authenticated"))
            quantity = int(arguments.get("quantity", 1))
            line = context.add_product_to_cart(arguments["product_id"], quantity)
            return _text(t("cart.added", name=line.name, quantity=line.quantity))

        elif name == "fastmeuble_update_cart_quantity":
            product_id = arguments["product_id"]
            quantity = int(arguments["quantity"])
            if not context.cart.contains(product_id):
                return _text(t("cart.not_in_cart", id=product_id))
            context.cart.update_quantity(product_id, quantity)
            if quantity <= 0:
                return _text(t("cart.removed", id=product_id))
            return _text(t("cart.updated", id=product_id, quantity=quantity))

        elif name == "fastmeuble_remove_from_cart":
            context.cart.remove_from_cart(arguments["product_id"])
            return _text(t("cart.removed", id=arguments["product_id"]))

        elif name == "fastmeuble_clear_cart":
            context.cart.clear_cart()
            return _text(t("cart.cleared"))

        elif name == "fastmeuble_get_cart":
            return _text(_format_cart(context.cart, t))

        elif name == "fastmeuble_checkout":
            context.ensure_authenticated()
            fields = {key: value for key, value in arguments.items() if value is not None}
            try:
                form = CheckoutForm(**fields)
            except ValidationError as e:
                return _text(t("general.error", message=str(e)))

            try:
                order = await context.checkout.submit(form)
            except CheckoutValidationError as e:
                lines = [t("checkout.invalid_form")]
                lines.extend(f"- {field}: {message}" for field, message in e.errors.items())
                return _text("\n".join(lines))
            except CheckoutError as e:
                if e.redirect == "/login":
                    return _text(t("checkout.login_required"))
                elif e.redirect == "/shop":
                    return _text(t("checkout.empty_cart"))
                return _text(t("general.error", message=str(e)))
            except ApiError as e:
                return _text(t("checkout.failed", message=e.message))

            return _text(f"{t('checkout.success')}\n\n{render_receipt(order, context.translator)}")

        elif name == "fastmeuble_get_order":
            if not context.ensure_authenticated():
                return _text(t("auth.not_authenticated"))
            order = context.client.get_order(arguments["order_id"])
            return _text(render_receipt(order, context.translator))

        elif name == "fastmeuble_whatsapp_link":
            number = context.config.whatsapp_number
            product_id = arguments.get("product_id")
            if product_id:
                product = context.client.get_product(product_id)
                url = product_whatsapp_url(
                    product.name, product.category or "", int(arguments.get("quantity", 1)), number
                )
            else:
                url = cart_whatsapp_url(context.cart.items, number)
            return _text(t("whatsapp.link", url=url))

        elif name == "fastmeuble_send_contact_message":
            context.client.send_contact_message(
                arguments["name"], arguments["email"], arguments["message"], arguments.get("phone")
            )
            return _text(t("contact.sent"))

        elif name == "fastmeuble_set_cookie_consent":
            context.set_cookie_consent(arguments["choice"])
            return _text(t("general.cookie_consent", choice=arguments["choice"]))

        elif name == "fastmeuble_set_language":
            language = arguments["language"]
            context.set_locale(language)
            return _text(
                context.translator.t("general.language_set", name=LOCALE_NAMES[language], code=language)
            )

        elif name.startswith("fastmeuble_admin_"):
            return await _call_admin_tool(name, arguments, t)

        else:
            return _text(t("general.unknown_tool", name=name))

    except (ApiError, UnknownLocale, ValueError) as e:
        logger.error(f"Error executing tool {name}: {e}")
        return _text(t("general.error", message=str(e)))
    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return _text(t("general.error", message=str(e)))


def create_context(config: Optional[ServerConfig] = None) -> StoreContext:
    """Build the session shared by all tool calls."""
    global context

    config = config or ServerConfig.from_env()
    context = StoreContext(config)

    if config.credentials:
        logger.info(f"Credentials loaded from environment for: {config.credentials.email}")
    else:
        logger.warning("No credentials found in environment variables (FASTMEUBLE_EMAIL, FASTMEUBLE_PASSWORD)")
        logger.warning("Checkout will require manual login via fastmeuble_login tool")
    return context


async def main() -> None:
    """Main entry point for the MCP server."""
    create_context()
    logger.info("Starting Fast Meuble MCP Server...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        context.close()


if __name__ == "__main__":
    asyncio.run(main())
