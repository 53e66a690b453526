"""Pydantic schemas for cart state and request/response validation."""
from decimal import Decimal
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

import catalog
from config import MAX_QTY_PER_LINE


# Decimal in Python, a plain JSON number on the wire
JsonRate = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CartLine(BaseModel):
    """One line of a session cart. Prices are integer cents captured at add time."""
    model_config = ConfigDict(frozen=True)

    sku: str
    name: str
    unit_price: int = Field(ge=0)
    quantity: int = Field(ge=1)


class AddToCartRequest(BaseModel):
    """Schema for add to cart request."""
    sku: str
    qty: int = Field(default=1, ge=1, le=MAX_QTY_PER_LINE)

    @field_validator("sku")
    @classmethod
    def sku_in_catalog(cls, value: str) -> str:
        if catalog.get_product(value) is None:
            raise ValueError(f"sku must be one of {catalog.skus()}")
        return value

    @field_validator("qty", mode="before")
    @classmethod
    def qty_is_number(cls, value):
        # JSON numbers only; 2.0 is accepted as 2, strings and booleans are not
        if isinstance(value, (bool, str)) or not isinstance(value, (int, float)):
            raise ValueError("qty must be a number")
        return value


class OkResponse(BaseModel):
    ok: bool = True


class ProductResponse(BaseModel):
    """Schema for product response."""
    sku: str
    name: str
    price_cents: int
    price: str


class ProductsResponse(BaseModel):
    products: List[ProductResponse]


class CartLineResponse(BaseModel):
    """Schema for cart line in response."""
    sku: str
    name: str
    unit_price_cents: int
    qty: int
    unit_price: str


class TotalsResponse(BaseModel):
    """Formatted cart totals."""
    subtotal: str
    tax: str
    total: str
    tax_rate: JsonRate


class CartResponse(BaseModel):
    """Schema for cart response."""
    cart: List[CartLineResponse]
    totals: TotalsResponse


class ReceiptLine(BaseModel):
    sku: str
    name: str
    qty: int
    unit_price: str
    line_total: str


class Receipt(BaseModel):
    """Summary of a completed checkout."""
    order_id: int
    items: List[ReceiptLine]
    subtotal: str
    tax_rate: JsonRate
    tax: str
    total: str


class CheckoutResponse(BaseModel):
    """Schema for checkout response."""
    receipt: Receipt


class OrderLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sku: str
    name: str
    unit_price_cents: int
    quantity: int
    line_total_cents: int


class OrderResponse(BaseModel):
    """Schema for a persisted order."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    subtotal_cents: int
    tax_rate: JsonRate
    tax_cents: int
    total_cents: int
    created_at: str
    items: List[OrderLineResponse]
