"""Data models for Fast Meuble entities.

Backend records arrive with camelCase keys and either ``_id`` or ``id`` as the
identifier. Every payload goes through these models, so the rest of the code
only ever sees snake_case attributes and a single ``id``.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class WireModel(BaseModel):
    """Base model mapping camelCase wire names to snake_case attributes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        """Dump the model with wire names, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Record(WireModel):
    """A backend record identified by ``_id`` or ``id``."""

    id: str = Field(description="Record identifier")

    @model_validator(mode="before")
    @classmethod
    def _normalize_id(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            record_id = data.pop("_id", None) or data.get("id")
            if record_id in (None, ""):
                raise ValueError("record is missing both '_id' and 'id'")
            data["id"] = str(record_id)
        return data


class OrderStatus(str, Enum):
    """Lifecycle status of an order."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    def allowed_transitions(self) -> tuple["OrderStatus", ...]:
        return ORDER_STATUS_TRANSITIONS[self]

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return target in ORDER_STATUS_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not ORDER_STATUS_TRANSITIONS[self]


# Forward-only: each status may advance one step or be cancelled.
ORDER_STATUS_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    OrderStatus.PROCESSING: (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}


class PaymentMethod(str, Enum):
    """Offline payment label attached to an order. No payment is processed."""

    CARD = "card"
    MOBILE_MONEY = "mobile_money"
    CASH_ON_DELIVERY = "cash_on_delivery"


class ProductSpecifications(WireModel):
    """Physical specifications of a furniture piece."""

    material: str = ""
    dimensions: str = ""
    weight: str = ""
    color: str = ""


class Product(Record):
    """A furniture product from the catalog."""

    name: str = Field(description="Product name")
    category: Optional[str] = Field(None, description="Category name")
    price: float = Field(description="Price in XAF")
    original_price: Optional[float] = Field(None, alias="originalPrice", description="Price before discount")
    description: str = ""
    specifications: ProductSpecifications = Field(default_factory=ProductSpecifications)
    images: list[str] = Field(default_factory=list)
    main_image: Optional[str] = Field(None, alias="mainImage")
    rating: float = 0
    reviews: int = 0
    in_stock: bool = Field(True, alias="inStock")
    is_hot: bool = Field(False, alias="isHot")
    discount: Optional[str] = None
    status: Literal["published", "draft", "archived"] = "published"
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @field_validator("category", mode="before")
    @classmethod
    def _category_name(cls, value: Any) -> Any:
        # Populated categories come back as {_id, name, slug}
        if isinstance(value, dict):
            return value.get("name")
        return value

    @property
    def image(self) -> str:
        """Image shown in listings and the cart."""
        if self.main_image:
            return self.main_image
        return self.images[0] if self.images else ""


class Category(Record):
    """A product category."""

    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    product_count: int = Field(0, alias="productCount")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class FeaturedSection(Record):
    """A promotional banner on the home page."""

    name: str
    slug: str
    discount: Optional[str] = None
    title: str
    button_text: str = Field("", alias="buttonText")
    image: str = ""
    link: str = ""
    product_id: Optional[str] = Field(None, alias="productId")
    is_active: bool = Field(True, alias="isActive")
    order: int = 0
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class Review(Record):
    """A customer review of a product."""

    product_id: str = Field(alias="productId")
    user_name: str = Field(alias="userName")
    rating: int = Field(ge=1, le=5)
    comment: str
    verified: bool = False
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class StoreSettings(WireModel):
    """Store-wide settings edited from the admin console."""

    id: Optional[str] = Field(None, alias="_id")
    store_name: str = Field("Fast Meuble", alias="storeName")
    store_description: str = Field("", alias="storeDescription")
    address: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
    business_hours: str = Field("", alias="businessHours")
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    twitter: Optional[str] = None
    whatsapp: Optional[str] = None
    mobile_money: bool = Field(True, alias="mobileMoney")
    cash_on_delivery: bool = Field(True, alias="cashOnDelivery")
    card_payment: bool = Field(False, alias="cardPayment")
    free_shipping_threshold: float = Field(0, alias="freeShippingThreshold")
    shipping_rate: float = Field(0, alias="shippingRate")
    currency: str = "XAF"
    language: str = "fr"


class User(Record):
    """An authenticated account."""

    name: str
    email: str
    role: Literal["admin", "user"] = "user"


class AuthResponse(WireModel):
    """Token and user returned by login and register."""

    user: User
    token: str


class AuthCredentials(BaseModel):
    """Authentication credentials."""

    email: str
    password: str


class CartItem(WireModel):
    """A line in the shopper's cart. One entry per product id."""

    id: str = Field(description="Product identifier")
    name: str
    price: float
    image: str = ""
    category: Optional[str] = None
    quantity: int = Field(1, ge=1)

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


class Customer(WireModel):
    """Customer and shipping details embedded in an order."""

    name: str
    email: str
    phone: str
    address: str
    city: str
    region: str
    country: Optional[str] = None
    postal_code: Optional[str] = Field(None, alias="postalCode")

    @property
    def first_name(self) -> str:
        return self.name.split(" ")[0]


class OrderItem(WireModel):
    """A product line of an order."""

    product_id: str = Field(alias="productId")
    product_name: str = Field(alias="productName")
    quantity: int = Field(ge=1)
    price: float
    image: str = ""

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


class OrderDraft(WireModel):
    """Payload sent to create an order."""

    items: list[OrderItem]
    customer: Customer
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    shipping: float = 0
    notes: Optional[str] = None


class Order(Record):
    """An order as recorded by the backend."""

    order_number: str = Field(alias="orderNumber")
    customer: Customer
    items: list[OrderItem] = Field(default_factory=list)
    subtotal: float
    shipping: float = 0
    total: float
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class ContactMessage(Record):
    """A message left through the contact form."""

    name: str
    email: str
    phone: Optional[str] = None
    message: str
    status: Literal["new", "read", "replied"] = "new"
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class ProductStats(WireModel):
    """Catalog counters for the admin dashboard."""

    total: int = 0
    published: int = 0
    drafts: int = 0
    total_value: float = Field(0, alias="totalValue")


class OrderStats(WireModel):
    """Order counters for the admin dashboard."""

    total: int = 0
    pending: int = 0
    total_revenue: float = Field(0, alias="totalRevenue")


class QueryFilters(WireModel):
    """Base for list filters sent as query parameters."""

    def to_params(self) -> dict[str, str]:
        """Query parameters with empty values dropped and booleans lowercased."""
        params = {}
        for key, value in self.model_dump(by_alias=True, mode="json").items():
            if value is None or value == "":
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            params[key] = str(value)
        return params


class ProductFilters(QueryFilters):
    """Catalog listing filters."""

    page: Optional[int] = None
    limit: Optional[int] = None
    category: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None
    min_price: Optional[float] = Field(None, alias="minPrice")
    max_price: Optional[float] = Field(None, alias="maxPrice")
    in_stock: Optional[bool] = Field(None, alias="inStock")
    is_hot: Optional[bool] = Field(None, alias="isHot")


class OrderFilters(QueryFilters):
    """Order listing filters."""

    page: Optional[int] = None
    limit: Optional[int] = None
    status: Optional[str] = None
    search: Optional[str] = None
