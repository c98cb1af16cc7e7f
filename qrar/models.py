"""
SQLAlchemy Database Models

Multi-tenant restaurant ordering schema:
- Restaurants own categories, products, orders and loyalty artifacts
- Customers (users) are global, linked to restaurants by visit history
- Orders keep a snapshot of each line item's price and tax rate
- Order numbers come from a per-restaurant, per-day counter table

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from qrar.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to an aware UTC datetime. Naive values are taken to be UTC (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class TaxType(str, enum.Enum):
    """How a restaurant's displayed prices relate to tax."""
    NONE = "none"
    INCLUSIVE = "inclusive"  # Tax embedded in displayed price
    EXCLUSIVE = "exclusive"  # Tax added on top


class OrderStatus(str, enum.Enum):
    """Order status workflow. Transitions live in services.order_workflow."""
    PENDING = "Pending"
    PREPARING = "Preparing"
    SERVED = "Served"
    REJECTED = "Rejected"


class PaymentMethod(str, enum.Enum):
    CASH = "Cash"
    ONLINE = "Online"
    UNPAID = "Unpaid"


class PaymentStatus(str, enum.Enum):
    PAID = "Paid"
    UNPAID = "Unpaid"
    REFUNDED = "Refunded"


class RefundStatus(str, enum.Enum):
    NOT_APPLICABLE = "Not Applicable"
    PROCESSING = "Processing"
    COMPLETED = "Completed"


class ModeOfOrder(str, enum.Enum):
    DINE_IN = "Dine-in"
    TAKEAWAY = "Takeaway"
    DELIVERY = "Delivery"


class OfferTarget(str, enum.Enum):
    PRODUCT = "product"
    CATEGORY = "category"
    ALL = "all"


class CouponType(str, enum.Enum):
    LIMITED_USERS = "limited-users"
    TIME_LIMITED = "time-limited"


class CouponDiscountType(str, enum.Enum):
    PRODUCT = "product"
    TOTAL_ORDER = "total-order"


class ComboDealType(str, enum.Enum):
    PRODUCT_PRODUCT = "product-product"
    CATEGORY_CATEGORY = "category-category"
    PRODUCT_CATEGORY = "product-category"


class ComboOfferType(str, enum.Enum):
    FREE = "free"
    DISCOUNT = "discount"
    FIXED_PRICE = "fixed-price"


# =============================================================================
# MERCHANT & MENU
# =============================================================================

class Restaurant(Base):
    """
    A merchant account. Every tenant-scoped row points back here.
    """
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identity & credentials
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    number = Column(String(20), nullable=False)
    address = Column(String(255), nullable=False)

    # Tax configuration
    tax_type = Column(Enum(TaxType), default=TaxType.NONE, nullable=False)
    tax_percentage = Column(Float, default=0.0, nullable=False)

    # Branding
    profile_image = Column(String(500), nullable=True)
    banner_image = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f"<Restaurant #{self.id} - {self.name}>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    cat_name = Column(String(120), nullable=False)
    img = Column(String(500), nullable=False)
    price = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    products = relationship(
        "Product",
        back_populates="category",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Category #{self.id} - {self.cat_name}>"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False, index=True)
    img = Column(String(500), nullable=False)
    price = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    tax_rate = Column(Float, nullable=False, default=0.0)  # Only used by inclusive-tax restaurants

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    category = relationship("Category", back_populates="products")

    def __repr__(self):
        return f"<Product #{self.id} - {self.name} ({self.price})>"


# =============================================================================
# CUSTOMERS
# =============================================================================

class User(Base):
    """A customer, identified globally by phone number."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    phone = Column(String(20), nullable=False, unique=True, index=True)
    dob = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    visits = relationship("RestaurantUser", back_populates="user")

    def __repr__(self):
        return f"<User #{self.id} - {self.phone}>"


class RestaurantUser(Base):
    """Restaurant-specific data about a customer (visit history)."""
    __tablename__ = "restaurant_users"
    __table_args__ = (
        UniqueConstraint("user_id", "restaurant_id", name="uq_restaurant_user"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    last_visit = Column(DateTime(timezone=True), nullable=True)
    visit_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="visits")


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    Main Order table.

    Monetary fields are computed server-side by services.pricing when the
    order is placed; charges are recorded as submitted.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_no = Column(Integer, nullable=False, index=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    tax_type = Column(Enum(TaxType), default=TaxType.NONE, nullable=False)
    exc_tax_rate = Column(Float, nullable=False, default=0.0)
    items_total = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    service_charge = Column(Float, nullable=False, default=0.0)
    packing_charge = Column(Float, nullable=False, default=0.0)
    delivery_charge = Column(Float, nullable=False, default=0.0)
    final_total = Column(Float, nullable=False)

    # =========================================================================
    # SERVICE & PAYMENT
    # =========================================================================
    table_number = Column(Integer, nullable=True)
    payment_method = Column(Enum(PaymentMethod), default=PaymentMethod.UNPAID, nullable=False)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False)
    refund_status = Column(Enum(RefundStatus), default=RefundStatus.NOT_APPLICABLE, nullable=False)
    mode_of_order = Column(Enum(ModeOfOrder), default=ModeOfOrder.DINE_IN, nullable=False)
    order_notes = Column(Text, nullable=False, default="")

    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.position",
    )
    customer = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<Order #{self.id} (No. {self.order_no}) - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    position = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    tax_rate = Column(Float, nullable=False, default=0.0)

    # Snapshot so history survives product edits and deletes
    product_name = Column(String(120), nullable=False)
    product_image = Column(String(500), nullable=True)

    order = relationship("Order", back_populates="items")


class OrderCounter(Base):
    """Last order number handed out per restaurant per business day."""
    __tablename__ = "order_counters"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "business_date", name="uq_order_counter_day"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    business_date = Column(Date, nullable=False)
    last_number = Column(Integer, nullable=False, default=0)


# =============================================================================
# LOYALTY ARTIFACTS
# =============================================================================

class Offer(Base):
    __tablename__ = "offers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    target_type = Column(Enum(OfferTarget), nullable=False)
    target_id = Column(Integer, nullable=True)  # Product or category id, unused for ALL
    discount_percentage = Column(Float, nullable=False)
    activation_time = Column(DateTime(timezone=True), nullable=False)
    expiration_time = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class CouponCode(Base):
    __tablename__ = "coupon_codes"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "code", name="uq_coupon_code"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    code = Column(String(50), nullable=False)
    type = Column(Enum(CouponType), nullable=False)
    limit = Column(Integer, nullable=True)  # limited-users only
    expiry_date = Column(DateTime(timezone=True), nullable=True)  # time-limited only
    discount_type = Column(Enum(CouponDiscountType), nullable=False)
    discount_value = Column(Float, nullable=False)
    redeemed_users = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class ComboDeal(Base):
    __tablename__ = "combo_deals"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    image = Column(String(500), nullable=True)
    deal_type = Column(Enum(ComboDealType), nullable=False)

    # product-product
    product1_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product2_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    # category-category
    category1_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    category2_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    # product-category
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    offer_type = Column(Enum(ComboOfferType), nullable=False)
    offer_value = Column(Float, nullable=True)  # Not used for free
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class PopUpImage(Base):
    """Customer-app pop-up. At most one is active per restaurant."""
    __tablename__ = "popup_images"
    __table_args__ = (
        Index(
            "uq_popup_one_active",
            "restaurant_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    img = Column(String(500), nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class SliderImage(Base):
    __tablename__ = "slider_images"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    img = Column(String(500), nullable=False)
    offer_id = Column(Integer, ForeignKey("offers.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
