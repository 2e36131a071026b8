"""Pydantic request/response schemas for the Storefront API."""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- Catalogue ---


class CreateProductRequest(BaseModel):
    name: str = Field(..., max_length=255)
    description: str | None = None
    seller_id: str | None = None
    commission_rate: float = Field(0.0, ge=0, le=1)


class CreatePriceRequest(BaseModel):
    amount: float = Field(..., ge=0)
    currency: str = Field("USD", max_length=3)
    interval: str = "one_time"
    name: str | None = Field(None, max_length=255)
    is_default: bool = False


class ProductIdResponse(BaseModel):
    product_id: str


class PriceIdResponse(BaseModel):
    price_id: str


# --- Orders ---


class OrderLineRequest(BaseModel):
    price_id: str
    quantity: int = Field(1, ge=1)


class PlaceOrderRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "items": [{"price_id": "price-001", "quantity": 2}],
                    "discount_codes": ["GIFT-ABCD-EFGH-IJKL-MNOP"],
                    "currency": "USD",
                }
            ]
        }
    }

    user_id: str | None = None
    items: list[OrderLineRequest] = Field(..., min_length=1)
    discount_codes: list[str] = Field(default_factory=list)
    currency: str = Field("USD", max_length=3)


class OrderIdResponse(BaseModel):
    order_id: str


class CheckoutResponse(BaseModel):
    status: str
    checkout_url: str | None = None
    reason: str | None = None


class RefundOrderRequest(BaseModel):
    reason: str = "requested_by_customer"
    notes: str | None = None
    record_offline: bool = False


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str


# --- Inventory ---


class StockProductRequest(BaseModel):
    product_id: str
    quantity: int = Field(0, ge=0)
    sku: str | None = Field(None, max_length=50)
    reorder_point: int = Field(10, ge=0)
    reorder_quantity: int = Field(50, ge=0)
    warehouse_location: str | None = None
    track_inventory: bool = True
    allow_backorder: bool = False


class StockMovementRequest(BaseModel):
    quantity: int
    reason: str | None = None
    author: str | None = None


class InventoryItemIdResponse(BaseModel):
    inventory_item_id: str


class ReleasedResponse(BaseModel):
    released: int


# --- Payouts ---


class RequestPayoutRequest(BaseModel):
    seller_id: str
    amount: float = Field(..., gt=0)
    currency: str = Field("USD", max_length=3)
    notes: str | None = None


class CancelPayoutRequest(BaseModel):
    reason: str | None = None


class PayoutIdResponse(BaseModel):
    payout_id: str


class PayoutStatusResponse(BaseModel):
    payout_id: str
    status: str


# --- Common ---


class StatusResponse(BaseModel):
    status: str = "ok"
