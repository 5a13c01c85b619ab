"""
Database Schemas

Storefront models for products, order requests and stored orders.
Product and Order correspond to the product and order MongoDB collections.
"""
from enum import Enum
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator

PHONE_PATTERN = r"^[0-9]{11}$"


class SizeStock(BaseModel):
    size: str = Field(..., min_length=1, description="Size label, unique within a product")
    stock: int = Field(..., ge=0, description="Units remaining for this size")


class Product(BaseModel):
    """
    Products collection schema. Display fields beyond these are kept as-is.
    """
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., description="Product name")
    category: str = Field(..., description="Category tag, e.g. 'boys', 'girls'")
    sizes: List[SizeStock] = Field(default_factory=list)

    @field_validator("sizes")
    @classmethod
    def unique_sizes(cls, sizes: List[SizeStock]) -> List[SizeStock]:
        labels = [s.size for s in sizes]
        if len(labels) != len(set(labels)):
            raise ValueError("Size labels must be unique per product")
        return sizes


# ----- Order placement request -----

class UserDetails(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1, pattern=PHONE_PATTERN, description="11 digit phone number")
    address: str = Field(..., min_length=1)
    note: Optional[str] = None


class CartItem(BaseModel):
    # name, price, image etc. sent by the storefront ride along into the order snapshot
    model_config = ConfigDict(extra="allow")

    productId: str
    selectedSize: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)

    @field_validator("productId")
    @classmethod
    def valid_object_id(cls, value: str) -> str:
        if not ObjectId.is_valid(value):
            raise ValueError("productId must be a 24 character hex string")
        return value


class PlaceOrderRequest(BaseModel):
    userDetails: UserDetails
    products: List[CartItem] = Field(..., min_length=1)
    deliveryCharge: float = Field(0, ge=0)
    totalPrice: float = Field(0, ge=0)


# ----- Stored order -----

class OrderStatus(str, Enum):
    PENDING = "pending"


class Order(BaseModel):
    """
    Orders collection schema. Immutable once stored; status stays pending here.
    """
    model_config = ConfigDict(use_enum_values=True)

    name: str
    phone: str
    address: str
    note: Optional[str] = None
    cart: List[dict] = Field(..., description="Cart items as submitted")
    deliveryCharge: float
    totalPrice: float
    orderDate: str
    orderTime: str
    status: OrderStatus = OrderStatus.PENDING


class OrderConfirmation(BaseModel):
    message: str = "Order placed successfully."
    orderNumber: str
    orderDate: str
    orderTime: str
