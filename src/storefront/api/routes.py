"""FastAPI routes for the storefront: catalogue, orders, inventory, payouts, webhooks."""

import json

import stripe
from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    CancelPayoutRequest,
    CheckoutResponse,
    CreatePriceRequest,
    CreateProductRequest,
    InventoryItemIdResponse,
    OrderIdResponse,
    OrderStatusResponse,
    PayoutIdResponse,
    PayoutStatusResponse,
    PlaceOrderRequest,
    PriceIdResponse,
    ProductIdResponse,
    RefundOrderRequest,
    RequestPayoutRequest,
    ReleasedResponse,
    StatusResponse,
    StockMovementRequest,
    StockProductRequest,
)
from storefront.catalogue.management import CreatePrice, CreateProduct
from storefront.config import ProviderSettings
from storefront.inventory.maintenance import (
    AdjustStock,
    MarkStockDamaged,
    ReleaseExpiredReservations,
    RestockProduct,
    StockProduct,
)
from storefront.ordering.administration import CancelOrder, RefundOrder
from storefront.ordering.checkout import CancelCheckout, CompleteCheckout, PlaceOrder, StartCheckout
from storefront.payments.webhook import ProcessPaymentWebhook
from storefront.payouts.actions import CancelPayout, ProcessPayout, RequestPayout, RetryPayout

# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
def create_product(body: CreateProductRequest) -> ProductIdResponse:
    command = CreateProduct(
        name=body.name,
        description=body.description,
        seller_id=body.seller_id,
        commission_rate=body.commission_rate,
    )
    return ProductIdResponse(product_id=current_domain.process(command, asynchronous=False))


@product_router.post("/{product_id}/prices", status_code=201, response_model=PriceIdResponse)
def create_price(product_id: str, body: CreatePriceRequest) -> PriceIdResponse:
    command = CreatePrice(
        product_id=product_id,
        amount=body.amount,
        currency=body.currency,
        interval=body.interval,
        name=body.name,
        is_default=body.is_default,
    )
    return PriceIdResponse(price_id=current_domain.process(command, asynchronous=False))


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    command = PlaceOrder(
        user_id=body.user_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        discount_codes=json.dumps(body.discount_codes),
        currency=body.currency,
    )
    return OrderIdResponse(order_id=current_domain.process(command, asynchronous=False))


@order_router.post("/{order_id}/checkout", response_model=CheckoutResponse)
def start_checkout(order_id: str) -> CheckoutResponse:
    result = current_domain.process(StartCheckout(order_id=order_id), asynchronous=False)
    return CheckoutResponse(**result)


@order_router.post("/{order_id}/checkout/complete", response_model=StatusResponse)
def complete_checkout(order_id: str) -> StatusResponse:
    completed = current_domain.process(CompleteCheckout(order_id=order_id), asynchronous=False)
    return StatusResponse(status="processing" if completed else "unchanged")


@order_router.post("/{order_id}/checkout/cancel", response_model=StatusResponse)
def cancel_checkout(order_id: str) -> StatusResponse:
    current_domain.process(CancelCheckout(order_id=order_id), asynchronous=False)
    return StatusResponse(status="checkout_cancelled")


@order_router.post("/{order_id}/refund", response_model=OrderStatusResponse)
def refund_order(order_id: str, body: RefundOrderRequest) -> OrderStatusResponse:
    command = RefundOrder(
        order_id=order_id,
        reason=body.reason,
        notes=body.notes,
        record_offline=body.record_offline,
    )
    status = current_domain.process(command, asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=status)


@order_router.post("/{order_id}/cancel", response_model=OrderStatusResponse)
def cancel_order(order_id: str) -> OrderStatusResponse:
    status = current_domain.process(CancelOrder(order_id=order_id), asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=status)


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.post("", status_code=201, response_model=InventoryItemIdResponse)
def stock_product(body: StockProductRequest) -> InventoryItemIdResponse:
    command = StockProduct(**body.model_dump())
    return InventoryItemIdResponse(inventory_item_id=current_domain.process(command, asynchronous=False))


@inventory_router.post("/{product_id}/adjust", response_model=StatusResponse)
def adjust_stock(product_id: str, body: StockMovementRequest) -> StatusResponse:
    command = AdjustStock(product_id=product_id, quantity=body.quantity, reason=body.reason, author=body.author)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="adjusted")


@inventory_router.post("/{product_id}/restock", response_model=StatusResponse)
def restock_product(product_id: str, body: StockMovementRequest) -> StatusResponse:
    command = RestockProduct(product_id=product_id, quantity=body.quantity, notes=body.reason, author=body.author)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="restocked")


@inventory_router.post("/{product_id}/damage", response_model=StatusResponse)
def mark_damaged(product_id: str, body: StockMovementRequest) -> StatusResponse:
    command = MarkStockDamaged(product_id=product_id, quantity=body.quantity, reason=body.reason, author=body.author)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="damaged")


@inventory_router.post("/release-expired", response_model=ReleasedResponse)
def release_expired() -> ReleasedResponse:
    released = current_domain.process(ReleaseExpiredReservations(), asynchronous=False)
    return ReleasedResponse(released=released or 0)


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------
payout_router = APIRouter(prefix="/payouts", tags=["payouts"])


@payout_router.post("", status_code=201, response_model=PayoutIdResponse)
def request_payout(body: RequestPayoutRequest) -> PayoutIdResponse:
    command = RequestPayout(seller_id=body.seller_id, amount=body.amount, currency=body.currency, notes=body.notes)
    return PayoutIdResponse(payout_id=current_domain.process(command, asynchronous=False))


@payout_router.post("/{payout_id}/process", response_model=PayoutStatusResponse)
def process_payout(payout_id: str) -> PayoutStatusResponse:
    status = current_domain.process(ProcessPayout(payout_id=payout_id), asynchronous=False)
    return PayoutStatusResponse(payout_id=payout_id, status=status)


@payout_router.post("/{payout_id}/cancel", response_model=PayoutStatusResponse)
def cancel_payout(payout_id: str, body: CancelPayoutRequest) -> PayoutStatusResponse:
    status = current_domain.process(CancelPayout(payout_id=payout_id, reason=body.reason), asynchronous=False)
    return PayoutStatusResponse(payout_id=payout_id, status=status)


@payout_router.post("/{payout_id}/retry", response_model=PayoutStatusResponse)
def retry_payout(payout_id: str) -> PayoutStatusResponse:
    status = current_domain.process(RetryPayout(payout_id=payout_id), asynchronous=False)
    return PayoutStatusResponse(payout_id=payout_id, status=status)


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/stripe", response_model=StatusResponse)
async def stripe_webhook(request: Request, stripe_signature: str = Header(default="")) -> StatusResponse:
    """Verify a Stripe webhook and record it against its order."""
    secret = ProviderSettings.from_env().stripe_webhook_secret
    if not secret:
        raise HTTPException(status_code=503, detail="Stripe webhooks are not configured")

    payload = await request.body()
    try:
        stripe.Webhook.construct_event(payload, stripe_signature, secret)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid webhook payload") from exc
    except stripe.SignatureVerificationError as exc:
        raise HTTPException(status_code=401, detail="Invalid webhook signature") from exc

    event = json.loads(payload)
    command = ProcessPaymentWebhook(
        event_id=event["id"],
        event_type=event["type"],
        payload=json.dumps(event["data"]["object"]),
    )
    recorded = await run_in_threadpool(current_domain.process, command, asynchronous=False)
    return StatusResponse(status="processed" if recorded else "ignored")
