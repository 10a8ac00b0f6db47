"""
Database Schemas for the Tailor Shop back office (MongoDB)

Each Pydantic model is the single validation rule set for one collection.
Python attributes are snake_case; documents and request bodies use the
camelCase aliases.

- CustomerIn -> "customer"
- CatalogItemIn -> "billing"
- BillIn -> "bill"
- WorkOrderIn -> "aari"
- ShopIn -> "shop"
"""
import re
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

CUSTOMER_ID_PATTERN = r"^CUST-[A-Z]{3}-\d{2}/\d{2}/\d{4}-\d{4}$"
ITEM_ID_PATTERN = r"^ITEM-[A-Z0-9]{7}$"
PHONE_PATTERN = r"^\+91[6-9]\d{9}$"
IMAGE_URL_PATTERN = r"^https?://.*\.(png|jpg|jpeg|svg|webp|gif)(\?.*)?$"

PaymentStatus = Literal["Pending", "Partially Paid", "Paid"]
WorkType = Literal["bridal", "normal"]
WorkStatus = Literal["pending", "completed"]

DesignUrl = Annotated[str, Field(pattern=r"^https?://\S+$")]


def normalize_phone(value):
    """Return the canonical +91XXXXXXXXXX form, leaving invalid input for the pattern check."""
    if not isinstance(value, str):
        return value
    value = value.strip().replace(" ", "")
    if value.startswith("+91-"):
        value = "+91" + value[4:]
    if not value.startswith("+91"):
        value = "+91" + value
    return value


def is_customer_id(value: str) -> bool:
    return re.match(CUSTOMER_ID_PATTERN, value or "") is not None


class Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
    )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


# -----------------------------
# Customers
# -----------------------------
class CustomerFields(Document):
    name: str = Field(..., min_length=2, max_length=100)
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    address: str = Field(..., min_length=5, max_length=500)
    town: Optional[str] = Field(None, max_length=100)
    district: str = Field("Dindigul", max_length=100)
    state: str = Field("Tamil Nadu", max_length=100)
    marital_status: str = Field("Married", max_length=50)

    @field_validator("phone_number", mode="before")
    @classmethod
    def canonical_phone(cls, v):
        return normalize_phone(v)

    @field_validator("town")
    @classmethod
    def town_length(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 2:
            raise ValueError("Town must be at least 2 characters long")
        return v


class CustomerIn(CustomerFields):
    customer_id: str = Field(..., pattern=CUSTOMER_ID_PATTERN)
    favorite: bool = False


class CustomerUpdate(CustomerFields):
    pass


# -----------------------------
# Catalog items
# -----------------------------
class CatalogItemIn(Document):
    item_id: str = Field(..., pattern=ITEM_ID_PATTERN)
    name: str = Field(..., min_length=2, max_length=100)
    price: float = Field(..., ge=0)


# -----------------------------
# Bills
# -----------------------------
class BillItem(Document):
    item_id: str = Field(..., pattern=ITEM_ID_PATTERN)
    quantity: int = Field(..., ge=1, le=10000)


class BillIn(Document):
    customer_id: str = Field(..., pattern=CUSTOMER_ID_PATTERN)
    items: List[BillItem] = Field(..., min_length=1)
    total: float = Field(..., ge=0)
    paid_amount: float = Field(0, ge=0)


class PaymentIn(Document):
    paid_amount: float = Field(..., ge=0, description="New absolute paid total, not a delta")


# -----------------------------
# Aari work orders
# -----------------------------
class WorkOrderIn(Document):
    customer_id: str = Field(..., pattern=CUSTOMER_ID_PATTERN)
    order_id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=100)
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    submission_date: datetime
    delivery_date: datetime
    address: str = Field(..., min_length=1, max_length=500)
    additional_information: Optional[str] = None
    designs: List[DesignUrl] = Field(..., min_length=1, max_length=5)
    work_type: WorkType
    staff_name: str = Field(..., min_length=1, max_length=100)
    status: WorkStatus = "pending"
    quoted_price: float = Field(..., gt=0)
    worker_price: Optional[float] = Field(None, gt=0)
    client_price: Optional[float] = Field(None, gt=0)

    @field_validator("phone_number", mode="before")
    @classmethod
    def canonical_phone(cls, v):
        return normalize_phone(v)

    @field_validator("work_type", "status", mode="before")
    @classmethod
    def lowercase(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("submission_date", "delivery_date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @model_validator(mode="after")
    def delivery_after_submission(self):
        if self.delivery_date <= self.submission_date:
            raise ValueError("Delivery date must be after submission date")
        return self


class WorkOrderStatusIn(Document):
    status: WorkStatus
    worker_price: Optional[float] = Field(None, gt=0)
    client_price: Optional[float] = Field(None, gt=0)

    @field_validator("status", mode="before")
    @classmethod
    def lowercase(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


# -----------------------------
# Shop profile
# -----------------------------
class ShopIn(Document):
    name: str = Field("My Shop", min_length=2, max_length=100)
    logo_url: Optional[str] = Field(None, pattern=IMAGE_URL_PATTERN)
    auth_logo_url: Optional[str] = Field(None, pattern=IMAGE_URL_PATTERN)
