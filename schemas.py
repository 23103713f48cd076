"""
Database Schemas

Pydantic models for the storefront. Catalog models mirror the MongoDB
collections they are read from; collection names are the lowercase
class name unless noted:
- Product -> "product"
- InventoryRecord -> "inventory"
- ProductImage -> "product_images"
- Profile -> "profiles"

Cart line models are never written to the database. They live in the
client session and are persisted to local storage only.
"""

from datetime import date
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

SIZES = ("S", "M", "L", "XL", "XXL")


class ShoppingMode(str, Enum):
    BUY = "buy"
    RENT = "rent"

    @property
    def other(self) -> "ShoppingMode":
        return ShoppingMode.RENT if self is ShoppingMode.BUY else ShoppingMode.BUY


# ---------------------------
# Catalog (read-only snapshots)
# ---------------------------
class ProductImage(BaseModel):
    """
    Product images schema
    Collection name: "product_images"
    """
    product_id: Optional[str] = None
    image_url: str
    image_type: str = "main"
    display_order: int = 0


class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    """
    id: str
    name: str = Field(..., description="Product name")
    description: str = Field("", description="Product description")
    sku: str = ""
    category: str = Field(..., description="Product category")
    gender: str = Field(..., description="Men, Women or Unisex")
    color: str = ""
    material: Optional[str] = None
    season: Optional[str] = None
    purchase_price: float = Field(..., ge=0, description="Purchase price in dollars")
    rental_price_daily: Optional[float] = Field(None, ge=0)
    rental_deposit: Optional[float] = Field(None, ge=0)
    rental_max_days: Optional[int] = Field(None, ge=1)
    is_purchasable: bool = False
    is_rentable: bool = False
    images: List[str] = Field(default_factory=list, description="Image URLs, display order")

    @model_validator(mode="after")
    def _rental_fields_present(self):
        if self.is_rentable:
            missing = [
                name for name in ("rental_price_daily", "rental_deposit", "rental_max_days")
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(f"rentable product is missing {', '.join(missing)}")
        return self

    @property
    def image(self) -> str:
        return self.images[0] if self.images else ""


class InventoryRecord(BaseModel):
    """
    Inventory schema, one document per (product, size)
    Collection name: "inventory"
    """
    product_id: str
    size: str
    buy_stock: int = Field(0, ge=0)
    rent_stock: int = Field(0, ge=0)


class Profile(BaseModel):
    """
    User profiles schema
    Collection name: "profiles"
    """
    id: str
    role: Literal["customer", "admin"] = "customer"
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ---------------------------
# Cart lines (client session only)
# ---------------------------
class BuyCartLine(BaseModel):
    kind: Literal["buy"] = "buy"
    id: str
    product_id: str
    name: str
    size: str
    unit_price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    image: str = ""


class RentCartLine(BaseModel):
    kind: Literal["rent"] = "rent"
    id: str
    product_id: str
    name: str
    size: str
    daily_rate: float = Field(..., ge=0)
    deposit: float = Field(..., ge=0)
    duration_days: int = Field(..., ge=1)
    start_date: date
    end_date: date
    total_price: float = Field(..., ge=0)
    max_days: Optional[int] = Field(None, ge=1, description="Product rental_max_days at add time")
    image: str = ""


CartLine = Annotated[Union[BuyCartLine, RentCartLine], Field(discriminator="kind")]


# ---------------------------
# Request bodies
# ---------------------------
class BuyAdd(BaseModel):
    session_id: str
    product_id: str
    size: Optional[str] = None
    quantity: int = Field(1, ge=1, le=10)


class RentAdd(BaseModel):
    session_id: str
    product_id: str
    size: Optional[str] = None
    duration_days: int = Field(1, ge=1)
    start_date: Optional[date] = None


class LineRemove(BaseModel):
    session_id: str
    line_id: str


class QuantityUpdate(BaseModel):
    session_id: str
    line_id: str
    quantity: int


class PeriodUpdate(BaseModel):
    session_id: str
    line_id: str
    duration_days: int
    start_date: date


class ModeUpdate(BaseModel):
    session_id: str
    mode: ShoppingMode


class SessionOnly(BaseModel):
    session_id: str
