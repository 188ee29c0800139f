"""HTTP server for the Fast Meuble storefront and admin console."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from .admin import AdminCollection, ConfirmationRequired
from .checkout import AuthenticationRequired, CheckoutError, CheckoutForm, CheckoutValidationError, EmptyCartError
from .config import ServerConfig
from .context import StoreContext
from .fastmeuble_client import ApiError
from .i18n import LOCALES, Translator, UnknownLocale
from .models import OrderFilters, OrderStatus, ProductFilters
from .receipt import render_receipt
from .whatsapp import cart_whatsapp_url, product_whatsapp_url

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("fastmeuble-http-server")

# Backend statuses passed through as-is; anything else is a bad gateway
PASSTHROUGH_STATUSES = (400, 401, 403, 404)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    # Startup
    logger.info("Starting Fast Meuble HTTP Server...")
    if getattr(app.state, "context", None) is None:
        app.state.context = StoreContext(ServerConfig.from_env())

    yield

    # Shutdown
    logger.info("Shutting down Fast Meuble HTTP Server...")
    app.state.context.close()


app = FastAPI(
    title="Fast Meuble MCP Server",
    description="HTTP API for the Fast Meuble furniture store",
    version="0.1.0",
    lifespan=lifespan,
)


def get_context(request: Request) -> StoreContext:
    return request.app.state.context


def get_translator(locale: str) -> Translator:
    """Resolve the locale path prefix; unknown locales are a 404."""
    try:
        return Translator(locale)
    except UnknownLocale as e:
        raise HTTPException(status_code=404, detail=str(e))


def require_admin(context: StoreContext = Depends(get_context)) -> StoreContext:
    if not context.auth_manager.is_authenticated():
        raise HTTPException(status_code=401, detail="Not authenticated")
    if not context.auth_manager.is_admin():
        raise HTTPException(status_code=403, detail="Access denied. Admin privileges required.")
    return context


def _http_error(e: Exception, action: str) -> HTTPException:
    """Map a library error to the HTTP status a client should see."""
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, ApiError):
        logger.error(f"{action} error: {e.message}")
        status_code = e.status_code if e.status_code in PASSTHROUGH_STATUSES else 502
        return HTTPException(status_code=status_code, detail=e.message)
    if isinstance(e, ConfirmationRequired):
        return HTTPException(status_code=409, detail=f"{e}. Repeat the request with ?confirm=true")
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"{action} error: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=str(e))


# Request Models
class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=6)


class ResetPasswordRequest(BaseModel):
    token: str
    password: str = Field(min_length=6)


class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class QuantityRequest(BaseModel):
    quantity: int


class ReviewRequest(BaseModel):
    user_name: str
    rating: int = Field(ge=1, le=5)
    comment: str


class ContactRequest(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    message: str


class CookieConsentRequest(BaseModel):
    choice: Literal["accepted", "rejected"]


class StatusRequest(BaseModel):
    status: OrderStatus


def _cart_payload(context: StoreContext) -> dict[str, Any]:
    cart = context.cart
    return {
        "items": [item.model_dump(mode="json") for item in cart.items],
        "total_items": cart.get_total_items(),
        "total_price": cart.get_total_price(),
    }


# Root endpoint
@app.get("/")
async def root(context: StoreContext = Depends(get_context)):
    """Root endpoint with API information."""
    return {
        "name": "Fast Meuble MCP Server",
        "version": "0.1.0",
        "description": "HTTP API for the Fast Meuble furniture store",
        "mcp_compatible": True,
        "locales": list(LOCALES),
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "storefront": "/{locale}/... with locale in " + ", ".join(LOCALES),
            "products": "GET /{locale}/products, GET /{locale}/products/{id}",
            "cart": "GET /{locale}/cart, POST /{locale}/cart/add, PUT|DELETE /{locale}/cart/{id}",
            "checkout": "POST /{locale}/checkout",
            "admin": "POST /admin/login, /admin/dashboard, /admin/products, /admin/orders, ...",
        },
        "authenticated": context.auth_manager.is_authenticated(),
    }


# Health check endpoint
@app.get("/health")
async def health_check(context: StoreContext = Depends(get_context)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "authenticated": context.auth_manager.is_authenticated(),
        "admin": context.auth_manager.is_admin(),
    }


# Admin console, served without a locale prefix
@app.post("/admin/login")
async def admin_login(request: LoginRequest, context: StoreContext = Depends(get_context)):
    """Log in to the admin console. Non-admin accounts are refused and logged out."""
    try:
        auth = context.admin_login(request.email, request.password)
        return {"success": True, "user": auth.user.to_wire()}
    except Exception as e:
        raise _http_error(e, "Admin login")


admin = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def _save_record(screen: AdminCollection, draft: dict[str, Any], record_id: Optional[str] = None):
    try:
        return screen.save(draft, record_id).to_wire()
    except Exception as e:
        raise _http_error(e, f"Save {screen.kind}")


def _delete_record(screen: AdminCollection, record_id: str, confirm: bool):
    try:
        screen.delete(record_id, confirmed=confirm)
        return {"success": True, "message": f"{screen.kind} {record_id} deleted"}
    except Exception as e:
        raise _http_error(e, f"Delete {screen.kind}")


@admin.get("/dashboard")
async def admin_dashboard(context: StoreContext = Depends(get_context)):
    try:
        return context.dashboard.load().model_dump(mode="json", by_alias=True)
    except Exception as e:
        raise _http_error(e, "Dashboard")


@admin.get("/products")
async def admin_list_products(
    search: Optional[str] = None,
    status: Optional[Literal["published", "draft", "archived"]] = None,
    context: StoreContext = Depends(get_context),
):
    """Every product whatever its status, optionally searched and filtered."""
    try:
        screen = context.products_admin
        screen.filters = ProductFilters(search=search, status=status)
        products = screen.load()
        return {
            "count": len(products),
            "products": [product.to_wire() for product in products],
            "categories": [category.to_wire() for category in screen.categories],
        }
    except Exception as e:
        raise _http_error(e, "List products")


@admin.post("/products")
async def admin_create_product(draft: dict[str, Any], context: StoreContext = Depends(get_context)):
    return _save_record(context.products_admin, draft)


@admin.put("/products/{product_id}")
async def admin_update_product(
    product_id: str, draft: dict[str, Any], context: StoreContext = Depends(get_context)
):
    return _save_record(context.products_admin, draft, product_id)


@admin.delete("/products/{product_id}")
async def admin_delete_product(
    product_id: str, confirm: bool = False, context: StoreContext = Depends(get_context)
):
    return _delete_record(context.products_admin, product_id, confirm)


@admin.get("/categories")
async def admin_list_categories(context: StoreContext = Depends(get_context)):
    try:
        categories = context.categories_admin.load()
        return {"count": len(categories), "categories": [category.to_wire() for category in categories]}
    except Exception as e:
        raise _http_error(e, "List categories")


@admin.post("/categories")
async def admin_create_category(draft: dict[str, Any], context: StoreContext = Depends(get_context)):
    return _save_record(context.categories_admin, draft)


@admin.put("/categories/{category_id}")
async def admin_update_category(
    category_id: str, draft: dict[str, Any], context: StoreContext = Depends(get_context)
):
    return _save_record(context.categories_admin, draft, category_id)


@admin.delete("/categories/{category_id}")
async def admin_delete_category(
    category_id: str, confirm: bool = False, context: StoreContext = Depends(get_context)
):
    return _delete_record(context.categories_admin, category_id, confirm)


@admin.get("/featured-sections")
async def admin_list_featured_sections(context: StoreContext = Depends(get_context)):
    try:
        screen = context.featured_sections_admin
        sections = screen.load()
        return {
            "count": len(sections),
            "sections": [section.to_wire() for section in sections],
            "products": [{"id": p.id, "name": p.name} for p in screen.products],
        }
    except Exception as e:
        raise _http_error(e, "List featured sections")


@admin.post("/featured-sections")
async def admin_create_featured_section(draft: dict[str, Any], context: StoreContext = Depends(get_context)):
    return _save_record(context.featured_sections_admin, draft)


@admin.put("/featured-sections/{section_id}")
async def admin_update_featured_section(
    section_id: str, draft: dict[str, Any], context: StoreContext = Depends(get_context)
):
    return _save_record(context.featured_sections_admin, draft, section_id)


@admin.delete("/featured-sections/{section_id}")
async def admin_delete_featured_section(
    section_id: str, confirm: bool = False, context: StoreContext = Depends(get_context)
):
    return _delete_record(context.featured_sections_admin, section_id, confirm)


@admin.get("/orders")
async def admin_list_orders(
    status: Optional[OrderStatus] = None,
    search: Optional[str] = None,
    context: StoreContext = Depends(get_context),
):
    try:
        screen = context.orders_admin
        screen.filters = OrderFilters(status=status.value if status else None, search=search)
        orders = screen.load()
        return {"count": len(orders), "orders": [order.to_wire() for order in orders]}
    except Exception as e:
        raise _http_error(e, "List orders")


@admin.get("/orders/{order_id}")
async def admin_get_order(order_id: str, context: StoreContext = Depends(get_context)):
    try:
        return context.client.get_order(order_id).to_wire()
    except Exception as e:
        raise _http_error(e, "Get order")


@admin.put("/orders/{order_id}/status")
async def admin_update_order_status(
    order_id: str, request: StatusRequest, context: StoreContext = Depends(get_context)
):
    """Advance an order one step along its lifecycle, or cancel it."""
    try:
        return context.orders_admin.set_status(order_id, request.status).to_wire()
    except Exception as e:
        raise _http_error(e, "Update order status")


@admin.delete("/orders/{order_id}")
async def admin_delete_order(order_id: str, confirm: bool = False, context: StoreContext = Depends(get_context)):
    return _delete_record(context.orders_admin, order_id, confirm)


@admin.get("/settings")
async def admin_get_settings(context: StoreContext = Depends(get_context)):
    try:
        return context.settings_admin.load().to_wire()
    except Exception as e:
        raise _http_error(e, "Get settings")


@admin.put("/settings")
async def admin_update_settings(updates: dict[str, Any], context: StoreContext = Depends(get_context)):
    try:
        return context.settings_admin.save(updates).to_wire()
    except Exception as e:
        raise _http_error(e, "Update settings")


app.include_router(admin)


# Storefront, served under a locale prefix
store = APIRouter(prefix="/{locale}")


@store.get("")
async def home(t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)):
    """Home page content: active featured sections and hot deals."""
    try:
        sections = sorted(
            (s for s in context.client.get_featured_sections() if s.is_active), key=lambda s: s.order
        )
        hot = context.client.get_products(ProductFilters(status="published", is_hot=True))
        return {
            "locale": t.locale,
            "featured_sections": [section.to_wire() for section in sections],
            "hot_products": [product.to_wire() for product in hot],
        }
    except Exception as e:
        raise _http_error(e, "Home")


@store.get("/products")
async def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    in_stock: Optional[bool] = None,
    is_hot: Optional[bool] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    t: Translator = Depends(get_translator),
    context: StoreContext = Depends(get_context),
):
    """Browse or search published products."""
    try:
        filters = ProductFilters(
            search=search,
            category=category,
            min_price=min_price,
            max_price=max_price,
            in_stock=in_stock,
            is_hot=is_hot,
            page=page,
            limit=limit,
            status="published",
        )
        products = context.client.get_products(filters)
        return {"count": len(products), "products": [product.to_wire() for product in products]}
    except Exception as e:
        raise _http_error(e, "List products")


@store.get("/products/{product_id}")
async def get_product(
    product_id: str, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    try:
        return context.client.get_product(product_id).to_wire()
    except Exception as e:
        raise _http_error(e, "Get product")


@store.get("/products/{product_id}/reviews")
async def get_product_reviews(
    product_id: str, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    try:
        reviews = context.client.get_product_reviews(product_id)
        return {"count": len(reviews), "reviews": [review.to_wire() for review in reviews]}
    except Exception as e:
        raise _http_error(e, "Get reviews")


@store.post("/products/{product_id}/reviews")
async def add_review(
    product_id: str,
    request: ReviewRequest,
    t: Translator = Depends(get_translator),
    context: StoreContext = Depends(get_context),
):
    try:
        review = context.client.create_review(product_id, request.user_name, request.rating, request.comment)
        return {"success": True, "message": t.t("reviews.added"), "review": review.to_wire()}
    except Exception as e:
        raise _http_error(e, "Add review")


@store.get("/categories")
async def list_categories(t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)):
    try:
        categories = context.client.get_categories()
        return {"count": len(categories), "categories": [category.to_wire() for category in categories]}
    except Exception as e:
        raise _http_error(e, "List categories")


@store.get("/categories/{slug}")
async def get_category(
    slug: str, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    """A category page: the category and its published products."""
    try:
        category = context.client.get_category_by_slug(slug)
        products = context.client.get_products(ProductFilters(category=category.id, status="published"))
        return {"category": category.to_wire(), "products": [product.to_wire() for product in products]}
    except Exception as e:
        raise _http_error(e, "Get category")


@store.get("/featured-sections")
async def list_featured_sections(
    t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    try:
        sections = sorted(
            (s for s in context.client.get_featured_sections() if s.is_active), key=lambda s: s.order
        )
        return {"count": len(sections), "sections": [section.to_wire() for section in sections]}
    except Exception as e:
        raise _http_error(e, "List featured sections")


# Authentication endpoints
@store.post("/auth/login")
async def login(
    request: LoginRequest, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    try:
        auth = context.client.login(request.email, request.password)
        return {"success": True, "message": t.t("auth.logged_in", email=auth.user.email), "user": auth.user.to_wire()}
    except Exception as e:
        raise _http_error(e, "Login")


@store.post("/auth/register")
async def register(
    request: RegisterRequest, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    try:
        auth = context.client.register(request.name, request.email, request.password)
        return {"success": True, "message": t.t("auth.registered", email=auth.user.email), "user": auth.user.to_wire()}
    except Exception as e:
        raise _http_error(e, "Register")


@store.post("/auth/logout")
async def logout(t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)):
    context.client.logout()
    return {"success": True, "message": t.t("auth.logged_out")}


@store.get("/auth/me")
async def auth_me(t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)):
    """Get the logged-in account."""
    if not context.auth_manager.is_authenticated():
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return context.client.get_me().to_wire()
    except Exception as e:
        raise _http_error(e, "Get me")


@store.post("/auth/reset-password")
async def reset_password(
    request: ResetPasswordRequest,
    t: Translator = Depends(get_translator),
    context: StoreContext = Depends(get_context),
):
    try:
        context.client.reset_password(request.token, request.password)
        return {"success": True, "message": t.t("auth.password_reset")}
    except Exception as e:
        raise _http_error(e, "Reset password")


# Cart endpoints
@store.get("/cart")
async def get_cart(t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)):
    """Get current shopping cart."""
    return _cart_payload(context)


@store.post("/cart/add")
async def add_to_cart(
    request: AddToCartRequest, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    """Add a product to the cart. Shoppers must be logged in."""
    if not context.auth_manager.is_authenticated():
        raise HTTPException(status_code=401, detail=t.t("checkout.login_required"))
    try:
        line = context.add_product_to_cart(request.product_id, request.quantity)
        return {"success": True, "message": t.t("cart.added", name=line.name, quantity=line.quantity), **_cart_payload(context)}
    except Exception as e:
        raise _http_error(e, "Add to cart")


@store.put("/cart/{product_id}")
async def update_cart_quantity(
    product_id: str,
    request: QuantityRequest,
    t: Translator = Depends(get_translator),
    context: StoreContext = Depends(get_context),
):
    """Set a line's quantity; zero or less removes it."""
    if not context.cart.contains(product_id):
        raise HTTPException(status_code=404, detail=t.t("cart.not_in_cart", id=product_id))
    context.cart.update_quantity(product_id, request.quantity)
    return _cart_payload(context)


@store.delete("/cart/{product_id}")
async def remove_from_cart(
    product_id: str, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    context.cart.remove_from_cart(product_id)
    return _cart_payload(context)


@store.delete("/cart")
async def clear_cart(t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)):
    context.cart.clear_cart()
    return _cart_payload(context)


# Checkout
@store.post("/checkout")
async def checkout(
    form: CheckoutForm, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    """Place an order for the cart contents and return it with a printable receipt."""
    try:
        order = await context.checkout.submit(form)
    except AuthenticationRequired:
        raise HTTPException(status_code=401, detail=t.t("checkout.login_required"))
    except EmptyCartError:
        raise HTTPException(status_code=409, detail=t.t("checkout.empty_cart"))
    except CheckoutValidationError as e:
        raise HTTPException(status_code=422, detail={"message": t.t("checkout.invalid_form"), "errors": e.errors})
    except CheckoutError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        raise _http_error(e, "Checkout")

    return {
        "success": True,
        "message": t.t("checkout.success"),
        "order": order.to_wire(),
        "receipt": render_receipt(order, t),
    }


@store.get("/orders/{order_id}/receipt", response_class=PlainTextResponse)
async def order_receipt(
    order_id: str, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    """Printable receipt of a placed order."""
    if not context.auth_manager.is_authenticated():
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return render_receipt(context.client.get_order(order_id), t)
    except Exception as e:
        raise _http_error(e, "Get receipt")


# Contact, cookie consent and WhatsApp
@store.post("/contact")
async def contact(
    request: ContactRequest, t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)
):
    try:
        context.client.send_contact_message(request.name, request.email, request.message, request.phone)
        return {"success": True, "message": t.t("contact.sent")}
    except Exception as e:
        raise _http_error(e, "Contact")


@store.get("/cookie-consent")
async def get_cookie_consent(t: Translator = Depends(get_translator), context: StoreContext = Depends(get_context)):
    return {"choice": context.get_cookie_consent()}


@store.post("/cookie-consent")
async def set_cookie_consent(
    request: CookieConsentRequest,
    t: Translator = Depends(get_translator),
    context: StoreContext = Depends(get_context),
):
    context.set_cookie_consent(request.choice)
    return {"success": True, "message": t.t("general.cookie_consent", choice=request.choice)}


@store.get("/whatsapp")
async def whatsapp_link(
    product_id: Optional[str] = None,
    quantity: int = 1,
    t: Translator = Depends(get_translator),
    context: StoreContext = Depends(get_context),
):
    """WhatsApp deep link for the cart, or for one product when product_id is given."""
    number = context.config.whatsapp_number
    try:
        if product_id:
            product = context.client.get_product(product_id)
            url = product_whatsapp_url(product.name, product.category or "", quantity, number)
        else:
            url = cart_whatsapp_url(context.cart.items, number)
        return {"url": url}
    except Exception as e:
        raise _http_error(e, "WhatsApp link")


app.include_router(store)


def run_http_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the HTTP server."""
    import uvicorn

    if reload:
        # Reload needs an import string rather than the app object
        uvicorn.run("fastmeuble_server.http_server:app", host=host, port=port, log_level="info", reload=True)
    else:
        uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_http_server()
