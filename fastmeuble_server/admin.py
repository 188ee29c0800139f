"""Admin console: collection screens, order status changes, dashboard and settings."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from .fastmeuble_client import FastMeubleClient
from .models import (
    Category,
    FeaturedSection,
    Order,
    OrderFilters,
    OrderStats,
    OrderStatus,
    Product,
    ProductFilters,
    ProductStats,
    Record,
    StoreSettings,
)

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Record)


class ConfirmationRequired(ValueError):
    """Raised when a delete is attempted without explicit confirmation."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"Deleting {kind} {record_id} requires confirmation")
        self.kind = kind
        self.record_id = record_id


class CreationNotAllowed(ValueError):
    """Raised when a screen does not create records, such as orders placed by checkout."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} records cannot be created from the admin console")
        self.kind = kind


class InvalidStatusTransition(ValueError):
    """Raised when an order status change skips or reverses the lifecycle."""

    def __init__(self, current: OrderStatus, target: OrderStatus) -> None:
        allowed = ", ".join(s.value for s in current.allowed_transitions()) or "none"
        super().__init__(
            f"Invalid status transition: {current.value} -> {target.value} (allowed: {allowed})"
        )
        self.current = current
        self.target = target


class AdminCollection(ABC, Generic[RecordT]):
    """
    One admin screen bound to a backend collection.

    ``items`` is a snapshot of the full collection. Every successful create,
    update or delete reloads it instead of patching it locally.
    """

    kind = "record"

    def __init__(self, client: FastMeubleClient) -> None:
        self.client = client
        self.items: list[RecordT] = []

    @abstractmethod
    def _fetch_all(self) -> list[RecordT]:
        ...

    def _create(self, draft: dict[str, Any]) -> RecordT:
        raise CreationNotAllowed(self.kind)

    @abstractmethod
    def _update(self, record_id: str, draft: dict[str, Any]) -> RecordT:
        ...

    @abstractmethod
    def _delete(self, record_id: str) -> None:
        ...

    def load(self) -> list[RecordT]:
        self.items = self._fetch_all()
        logger.info(f"Loaded {len(self.items)} {self.kind}(s)")
        return self.items

    def get(self, record_id: str) -> Optional[RecordT]:
        """Find a record in the current snapshot."""
        for item in self.items:
            if item.id == record_id:
                return item
        return None

    def create(self, draft: dict[str, Any]) -> RecordT:
        record = self._create(draft)
        logger.info(f"Created {self.kind} {record.id}")
        self.load()
        return record

    def update(self, record_id: str, draft: dict[str, Any]) -> RecordT:
        record = self._update(record_id, draft)
        logger.info(f"Updated {self.kind} {record_id}")
        self.load()
        return record

    def save(self, draft: dict[str, Any], record_id: Optional[str] = None) -> RecordT:
        """Create when no id is given, otherwise update."""
        if record_id:
            return self.update(record_id, draft)
        return self.create(draft)

    def delete(self, record_id: str, confirmed: bool = False) -> None:
        """
        Delete a record.

        Raises:
            ConfirmationRequired: Unless ``confirmed`` is True; nothing is sent
        """
        if not confirmed:
            raise ConfirmationRequired(self.kind, record_id)
        self._delete(record_id)
        logger.info(f"Deleted {self.kind} {record_id}")
        self.load()


class ProductsAdmin(AdminCollection[Product]):
    kind = "product"

    def __init__(self, client: FastMeubleClient) -> None:
        super().__init__(client)
        self.categories: list[Category] = []
        self.filters: Optional[ProductFilters] = None

    def load(self) -> list[Product]:
        # The product form needs the category list
        self.categories = self.client.get_categories()
        return super().load()

    def _fetch_all(self) -> list[Product]:
        return self.client.get_products(self.filters)

    def _create(self, draft: dict[str, Any]) -> Product:
        return self.client.create_product(draft)

    def _update(self, record_id: str, draft: dict[str, Any]) -> Product:
        return self.client.update_product(record_id, draft)

    def _delete(self, record_id: str) -> None:
        self.client.delete_product(record_id)


class CategoriesAdmin(AdminCollection[Category]):
    kind = "category"

    def _fetch_all(self) -> list[Category]:
        return self.client.get_categories()

    def _create(self, draft: dict[str, Any]) -> Category:
        return self.client.create_category(draft)

    def _update(self, record_id: str, draft: dict[str, Any]) -> Category:
        return self.client.update_category(record_id, draft)

    def _delete(self, record_id: str) -> None:
        self.client.delete_category(record_id)


class FeaturedSectionsAdmin(AdminCollection[FeaturedSection]):
    kind = "featured section"

    def __init__(self, client: FastMeubleClient) -> None:
        super().__init__(client)
        self.products: list[Product] = []

    def load(self) -> list[FeaturedSection]:
        sections = super().load()
        # Sections may link to a published product
        self.products = self.client.get_products(ProductFilters(status="published"))
        return sections

    def _fetch_all(self) -> list[FeaturedSection]:
        return sorted(self.client.get_featured_sections(), key=lambda s: s.order)

    def _create(self, draft: dict[str, Any]) -> FeaturedSection:
        return self.client.create_featured_section(draft)

    def _update(self, record_id: str, draft: dict[str, Any]) -> FeaturedSection:
        return self.client.update_featured_section(record_id, draft)

    def _delete(self, record_id: str) -> None:
        self.client.delete_featured_section(record_id)


class OrdersAdmin(AdminCollection[Order]):
    """Orders are created by checkout; the console reviews, moves and deletes them."""

    kind = "order"

    def __init__(self, client: FastMeubleClient) -> None:
        super().__init__(client)
        self.filters: Optional[OrderFilters] = None

    def _fetch_all(self) -> list[Order]:
        return self.client.get_orders(self.filters)

    def _update(self, record_id: str, draft: dict[str, Any]) -> Order:
        return self.client.update_order(record_id, draft)

    def _delete(self, record_id: str) -> None:
        self.client.delete_order(record_id)

    def set_status(self, order_id: str, status: OrderStatus) -> Order:
        """
        Move an order along its lifecycle.

        Raises:
            InvalidStatusTransition: If the move is not allowed; nothing is sent
        """
        target = OrderStatus(status)
        order = self.get(order_id) or self.client.get_order(order_id)
        if not order.status.can_transition_to(target):
            raise InvalidStatusTransition(order.status, target)

        updated = self.client.update_order_status(order_id, target)
        logger.info(f"Order {order.order_number}: {order.status.value} -> {target.value}")
        self.load()
        return updated


class DashboardSnapshot(BaseModel):
    """Figures shown on the admin home screen."""

    recent_products: list[Product] = Field(default_factory=list)
    recent_orders: list[Order] = Field(default_factory=list)
    product_stats: ProductStats = Field(default_factory=ProductStats)
    order_stats: OrderStats = Field(default_factory=OrderStats)
    category_count: int = 0


class AdminDashboard:
    RECENT_LIMIT = 5

    def __init__(self, client: FastMeubleClient) -> None:
        self.client = client

    def load(self) -> DashboardSnapshot:
        products = self.client.get_products()
        orders = self.client.get_orders()
        return DashboardSnapshot(
            recent_products=products[: self.RECENT_LIMIT],
            recent_orders=orders[: self.RECENT_LIMIT],
            product_stats=self.client.get_product_stats(),
            order_stats=self.client.get_order_stats(),
            category_count=len(self.client.get_categories()),
        )


class SettingsAdmin:
    """Store settings form: load once, save edits, reload."""

    def __init__(self, client: FastMeubleClient) -> None:
        self.client = client
        self.settings: Optional[StoreSettings] = None

    def load(self) -> StoreSettings:
        self.settings = self.client.get_settings()
        return self.settings

    def save(self, updates: dict[str, Any]) -> StoreSettings:
        updates = {key: value for key, value in updates.items() if key not in ("_id", "id")}
        self.settings = self.client.update_settings(updates)
        return self.settings
