"""
Pydantic Schemas for Request/Response Validation

Covers the merchant account, menu, orders, customers and loyalty artifacts.
Requests that carry an image are multipart forms; their text fields are
validated with the *Create models below once the router has collected them.

Author: Khalil Bannouri
Version: 1.0.0
"""

import re
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator, model_validator

from qrar.models import (
    ComboDealType,
    ComboOfferType,
    CouponDiscountType,
    CouponType,
    ModeOfOrder,
    OfferTarget,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
    TaxType,
    as_utc,
)

# Datetimes are stored and compared in UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# =============================================================================
# RESTAURANT & AUTH
# =============================================================================

def _clean_restaurant_number(v: str) -> str:
    cleaned = v.strip()
    if not re.fullmatch(r"\d{10}", cleaned):
        raise ValueError("Phone number must be exactly 10 digits")
    return cleaned


class RestaurantRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, examples=["Spice Route"])
    email: EmailStr = Field(..., examples=["owner@spiceroute.in"])
    password: str = Field(..., min_length=6, max_length=128)
    number: str = Field(..., examples=["9876543210"])
    address: str = Field(..., min_length=1, max_length=255)
    tax_type: TaxType = TaxType.NONE
    tax_percentage: float = Field(default=0.0, ge=0, le=100)

    @field_validator("number")
    @classmethod
    def validate_number(cls, v: str) -> str:
        return _clean_restaurant_number(v)


class RestaurantLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RestaurantUpdate(BaseModel):
    """Partial update of the merchant profile and tax configuration."""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    number: Optional[str] = None
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    tax_type: Optional[TaxType] = None
    tax_percentage: Optional[float] = Field(None, ge=0, le=100)

    @field_validator("number")
    @classmethod
    def validate_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_restaurant_number(v)


class RestaurantResponse(BaseModel):
    id: int
    name: str
    email: str
    number: str
    address: str
    tax_type: TaxType
    tax_percentage: float
    profile_image: Optional[str] = None
    banner_image: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicRestaurantResponse(BaseModel):
    """What the customer app may see about a restaurant."""
    id: int
    name: str
    number: str
    address: str
    tax_type: TaxType
    tax_percentage: float
    profile_image: Optional[str] = None
    banner_image: Optional[str] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    restaurant: RestaurantResponse


# =============================================================================
# MENU
# =============================================================================

class CategoryCreate(BaseModel):
    cat_name: str = Field(..., min_length=1, max_length=120)
    price: float = Field(default=0.0, ge=0)


class CategoryResponse(BaseModel):
    id: int
    restaurant_id: int
    cat_name: str
    img: str
    price: float
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    category_id: int
    price: float = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=1000)
    tax_rate: float = Field(default=0.0, ge=0, le=100)


class ProductResponse(BaseModel):
    id: int
    restaurant_id: int
    category_id: int
    name: str
    img: str
    price: float
    description: Optional[str] = None
    tax_rate: float
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MenuCategoryResponse(CategoryResponse):
    """A category with its products, as shown on the public menu."""
    products: List[ProductResponse] = []


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Single line of an order. Prices always come from the product."""
    product_id: int
    quantity: int = Field(..., ge=1, le=999, examples=[2])
    tax_rate: Optional[float] = Field(None, ge=0, le=100)


class OrderCreate(BaseModel):
    """Request schema for placing an order."""
    customer_id: int = Field(..., description="customer_identifier returned at registration")
    items: List[OrderItemCreate]
    discount: float = Field(default=0.0, ge=0)

    # Recorded on the order, not part of the payable total
    service_charge: float = Field(default=0.0, ge=0)
    packing_charge: float = Field(default=0.0, ge=0)
    delivery_charge: float = Field(default=0.0, ge=0)

    table_number: Optional[int] = Field(None, ge=1)
    payment_method: PaymentMethod = PaymentMethod.UNPAID
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    refund_status: RefundStatus = RefundStatus.NOT_APPLICABLE
    mode_of_order: ModeOfOrder = ModeOfOrder.DINE_IN
    order_notes: str = Field(default="", max_length=500)


class OrderItemResponse(BaseModel):
    product_id: Optional[int]
    product_name: str
    product_image: Optional[str] = None
    quantity: int
    unit_price: float
    tax_rate: float
    line_total: float


class OrderResponse(BaseModel):
    id: int
    restaurant_id: int
    order_no: int
    customer_id: int
    customer_name: str
    items: List[OrderItemResponse]
    tax_type: TaxType
    exc_tax_rate: float
    items_total: float
    discount: float
    tax: float
    service_charge: float
    packing_charge: float
    delivery_charge: float
    final_total: float
    table_number: Optional[int] = None
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    refund_status: RefundStatus
    mode_of_order: ModeOfOrder
    order_notes: str
    status: OrderStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            restaurant_id=order.restaurant_id,
            order_no=order.order_no,
            customer_id=order.customer_id,
            customer_name=order.customer.name if order.customer else "Unknown",
            items=[
                OrderItemResponse(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    product_image=item.product_image,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    tax_rate=item.tax_rate,
                    line_total=round(item.unit_price * item.quantity, 2),
                )
                for item in order.items
            ],
            tax_type=order.tax_type,
            exc_tax_rate=order.exc_tax_rate,
            items_total=order.items_total,
            discount=order.discount,
            tax=order.tax,
            service_charge=order.service_charge,
            packing_charge=order.packing_charge,
            delivery_charge=order.delivery_charge,
            final_total=order.final_total,
            table_number=order.table_number,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            refund_status=order.refund_status,
            mode_of_order=order.mode_of_order,
            order_notes=order.order_notes,
            status=order.status,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderPlacedResponse(BaseModel):
    message: str
    order: OrderResponse
    customer_whatsapp_link: str
    restaurant_whatsapp_link: str


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderStatusResponse(BaseModel):
    message: str
    order: OrderResponse


# =============================================================================
# CUSTOMERS
# =============================================================================

class UserRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    phone: str = Field(..., examples=["9876543210"])
    dob: date

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        cleaned = v.strip()
        if not re.fullmatch(r"\+?\d{10,15}", cleaned):
            raise ValueError("Phone number must have 10 to 15 digits")
        return cleaned

    @field_validator("dob")
    @classmethod
    def validate_dob(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class UserResponse(BaseModel):
    id: int
    name: str
    phone: str
    dob: date
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserRegisterResponse(BaseModel):
    message: str
    user: UserResponse
    customer_identifier: int


class RestaurantCustomerResponse(UserResponse):
    last_visit: Optional[datetime] = None
    visit_count: int = 0


# =============================================================================
# LOYALTY: OFFERS & COUPONS
# =============================================================================

class OfferCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    target_type: OfferTarget
    target_id: Optional[int] = None
    discount_percentage: float = Field(..., gt=0, le=100)
    activation_time: UtcDatetime
    expiration_time: Optional[UtcDatetime] = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_target_and_window(self) -> "OfferCreate":
        if self.target_type == OfferTarget.ALL:
            self.target_id = None
        elif self.target_id is None:
            raise ValueError(f"target_id is required for {self.target_type.value} offers")
        if self.expiration_time is not None and self.expiration_time <= self.activation_time:
            raise ValueError("expiration_time must be after activation_time")
        return self


class OfferUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    target_type: Optional[OfferTarget] = None
    target_id: Optional[int] = None
    discount_percentage: Optional[float] = Field(None, gt=0, le=100)
    activation_time: Optional[UtcDatetime] = None
    expiration_time: Optional[UtcDatetime] = None
    is_active: Optional[bool] = None


class OfferResponse(BaseModel):
    id: int
    restaurant_id: int
    title: str
    target_type: OfferTarget
    target_id: Optional[int] = None
    discount_percentage: float
    activation_time: UtcDatetime
    expiration_time: Optional[UtcDatetime] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActiveOffersResponse(BaseModel):
    """Offers running right now, grouped by what they apply to."""
    all: List[OfferResponse] = []
    categories: Dict[int, List[OfferResponse]] = {}
    products: Dict[int, List[OfferResponse]] = {}


class CouponCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    code: str = Field(..., min_length=1, max_length=50)
    type: CouponType
    limit: Optional[int] = Field(None, ge=1)
    expiry_date: Optional[UtcDatetime] = None
    discount_type: CouponDiscountType
    discount_value: float = Field(..., gt=0)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def check_type_fields(self) -> "CouponCreate":
        if self.type == CouponType.LIMITED_USERS:
            if self.limit is None:
                raise ValueError("limit is required for limited-users coupons")
            self.expiry_date = None
        else:
            if self.expiry_date is None:
                raise ValueError("expiry_date is required for time-limited coupons")
            self.limit = None
        return self


class CouponResponse(BaseModel):
    id: int
    restaurant_id: int
    name: str
    code: str
    type: CouponType
    limit: Optional[int] = None
    expiry_date: Optional[UtcDatetime] = None
    discount_type: CouponDiscountType
    discount_value: float
    redeemed_users: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CouponApply(BaseModel):
    code: str = Field(..., min_length=1)
    order_value: float = Field(..., ge=0)
    product_value: Optional[float] = Field(None, ge=0)


class CouponApplyResponse(BaseModel):
    message: str
    discount_amount: float
    final_price: float


# =============================================================================
# LOYALTY: COMBO DEALS & IMAGES
# =============================================================================

# Ids each deal type must reference
COMBO_REQUIRED_REFERENCES = {
    ComboDealType.PRODUCT_PRODUCT: ("product1_id", "product2_id"),
    ComboDealType.CATEGORY_CATEGORY: ("category1_id", "category2_id"),
    ComboDealType.PRODUCT_CATEGORY: ("product_id", "category_id"),
}

COMBO_REFERENCE_FIELDS = (
    "product1_id", "product2_id", "category1_id", "category2_id", "product_id", "category_id",
)


class ComboDealCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    deal_type: ComboDealType
    product1_id: Optional[int] = None
    product2_id: Optional[int] = None
    category1_id: Optional[int] = None
    category2_id: Optional[int] = None
    product_id: Optional[int] = None
    category_id: Optional[int] = None
    offer_type: ComboOfferType
    offer_value: Optional[float] = Field(None, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def check_references(self) -> "ComboDealCreate":
        required = COMBO_REQUIRED_REFERENCES[self.deal_type]
        missing = [name for name in required if getattr(self, name) is None]
        if missing:
            raise ValueError(f"{self.deal_type.value} deals require {', '.join(missing)}")
        for name in COMBO_REFERENCE_FIELDS:
            if name not in required:
                setattr(self, name, None)

        if self.offer_type == ComboOfferType.FREE:
            self.offer_value = None
        elif self.offer_value is None:
            raise ValueError(f"offer_value is required for {self.offer_type.value} deals")
        return self

    def referenced_products(self) -> List[int]:
        return [v for v in (self.product1_id, self.product2_id, self.product_id) if v is not None]

    def referenced_categories(self) -> List[int]:
        return [v for v in (self.category1_id, self.category2_id, self.category_id) if v is not None]


class ComboDealResponse(BaseModel):
    id: int
    restaurant_id: int
    title: str
    image: Optional[str] = None
    deal_type: ComboDealType
    product1_id: Optional[int] = None
    product2_id: Optional[int] = None
    category1_id: Optional[int] = None
    category2_id: Optional[int] = None
    product_id: Optional[int] = None
    category_id: Optional[int] = None
    offer_type: ComboOfferType
    offer_value: Optional[float] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PopUpResponse(BaseModel):
    id: int
    restaurant_id: int
    name: str
    img: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SliderImageResponse(BaseModel):
    id: int
    restaurant_id: int
    img: str
    offer_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# GENERIC
# =============================================================================

class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[Any] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    environment: str
    database: str
    realtime: str
    media_service: str
    timestamp: datetime
