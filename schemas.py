"""
Database Schemas

Pydantic models for the MongoDB collections and the request bodies that
write to them. Collection names are the lowercase model name:
- Product -> "product" collection (reviews are embedded)
- User -> "user" collection
- CartItem -> "cart" collection
- CheckoutSession -> "checkout" collection
- Order -> "order" collection
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    numReviews and rating are derived from the embedded reviews.
    """
    name: str = Field(..., description="Product name")
    image: str = Field(..., description="Image path or URL")
    brand: str = Field(..., description="Brand")
    category: str = Field(..., description="Product category")
    description: str = Field("", description="Free-text description")
    price: float = Field(0, ge=0, description="Unit price")
    countInStock: int = Field(0, ge=0, description="Units in stock")
    user: Optional[str] = Field(None, description="Owning user id")
    reviews: List[dict] = Field(default_factory=list)
    numReviews: int = Field(0, ge=0)
    rating: float = Field(0, ge=0, le=5, description="Mean review rating")


class ProductUpdate(BaseModel):
    """Per-field patch: only the fields present in the request are written."""
    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    countInStock: Optional[int] = Field(None, ge=0)
    numReviews: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class User(BaseModel):
    name: str
    email: EmailStr
    password: str
    isAdmin: bool = False


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class CartItem(BaseModel):
    session_id: str = Field(..., description="Anonymous cart/session identifier")
    product_id: str = Field(..., description="Product ObjectId as string")
    quantity: int = Field(1, description="Quantity to add, negative to remove")


class PaymentMethod(str, Enum):
    PAYPAL = "PayPal"
    STRIPE = "Stripe"


class ShippingAddress(BaseModel):
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postalCode: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class PaymentRequest(BaseModel):
    # plain str so the session validates the enumeration itself
    paymentMethod: str


class EnterRequest(BaseModel):
    step: str


class OrderItem(BaseModel):
    product_id: str
    name: str
    image: Optional[str] = None
    price: float
    quantity: int
    subtotal: float


class Order(BaseModel):
    user: str
    session_id: str
    orderItems: List[OrderItem]
    shippingAddress: ShippingAddress
    paymentMethod: PaymentMethod
    itemsPrice: float
    shippingPrice: float
    taxPrice: float
    totalPrice: float
    isPaid: bool = False
    isDelivered: bool = False
