"""FastAPI REST API for schoolcart pricing and checkout."""

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from . import __version__
from .cart_store import CartStore
from .catalog_store import DATA_DIR, CatalogStore
from .checkout import Checkout, price_store_lines
from .discounts import apply_code, remove_code, validate_codes
from .errors import (
    CartNotFoundError,
    CatalogFileError,
    CodeAlreadyAppliedError,
    CodeNotRecognisedError,
    EmptyCartError,
    EmptyCodeError,
    GiftCardNotFoundError,
    InsufficientBalanceError,
    InvalidBuyerError,
    InvalidCardNumberError,
    InvalidLineSpecError,
    OrderNotFoundError,
    PercentCodeLimitError,
    ProductNotFoundError,
    QuantityLimitError,
    SchoolCartError,
    StoreNotFoundError,
)
from .log import get_logger, setup_logging
from .models import Buyer, Cart, CartLine, Justification
from .order_history import OrderHistory
from .receipt import render_receipt

setup_logging()
logger = get_logger(__name__)


# --- Pydantic Schemas ---


class LineSchema(BaseModel):
    sku: str
    qty: int


class PriceRequest(BaseModel):
    """Request body for pricing one store's lines."""

    lines: list[LineSchema]


class CartItemRequest(BaseModel):
    store_id: str
    sku: str
    qty: int = Field(default=1, description="Units to add, or the new quantity for PUT")


class CodeRequest(BaseModel):
    """Request body for applying or removing a discount code."""

    code: str
    applied: list[str] = Field(default_factory=list)


class AppliedCodesResponse(BaseModel):
    applied: list[str]


class QuoteRequest(BaseModel):
    """Price a cart. Either an inline cart or a stored cart_id."""

    cart: Optional[dict[str, dict[str, int]]] = Field(
        None, description="Inline cart lines: {store_id: {sku: qty}}"
    )
    cart_id: Optional[str] = None
    codes: list[str] = Field(default_factory=list)


class JustificationSchema(BaseModel):
    sku: str
    text: str


class OrderCreateRequest(QuoteRequest):
    """Request body for placing an order."""

    name: str
    class_name: str
    justifications: list[JustificationSchema] = Field(default_factory=list)
    card_number: str
    breakdown_suppressed: bool = False
    idempotency_key: Optional[str] = None


class StoreSummarySchema(BaseModel):
    id: str
    name: str
    cover: Optional[str] = None


class SiteIndexResponse(BaseModel):
    title: str
    classes: list[str]
    stores: list[StoreSummarySchema]
    gst: float


class OrderSummarySchema(BaseModel):
    id: str
    name: str
    class_name: str
    grand_total: float
    created_at: str


class OrderListResponse(BaseModel):
    orders: list[OrderSummarySchema]
    count: int


# --- Helper Functions ---


def _data_dir() -> Path:
    return Path(os.environ.get("SCHOOLCART_DATA_DIR", DATA_DIR))


def get_catalog_store() -> CatalogStore:
    """Get the catalog for the configured data directory."""
    return CatalogStore(_data_dir())


def get_cart_store() -> CartStore:
    return CartStore(_data_dir(), catalog=get_catalog_store())


def get_order_history() -> OrderHistory:
    return OrderHistory(_data_dir())


def _cart_from_request(request: QuoteRequest) -> Cart:
    """Build the cart to price: inline lines win over a stored cart."""
    if request.cart is not None:
        return Cart.from_dict({"id": "inline", "lines": request.cart})
    if request.cart_id:
        return get_cart_store().load(request.cart_id)
    return Cart(id="inline")


# --- FastAPI App ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("api_starting", version=__version__, data_dir=str(_data_dir()))
    yield
    logger.info("api_stopping")


app = FastAPI(
    title="schoolcart API",
    description="REST API for multi-store cart pricing and checkout",
    version=__version__,
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    EmptyCodeError: 400,
    CodeNotRecognisedError: 400,
    CodeAlreadyAppliedError: 400,
    PercentCodeLimitError: 400,
    CatalogFileError: 500,
    StoreNotFoundError: 404,
    ProductNotFoundError: 404,
    QuantityLimitError: 400,
    InvalidLineSpecError: 400,
    CartNotFoundError: 404,
    EmptyCartError: 409,
    InvalidBuyerError: 400,
    InvalidCardNumberError: 400,
    GiftCardNotFoundError: 402,
    InsufficientBalanceError: 402,
    OrderNotFoundError: 404,
}


@app.exception_handler(SchoolCartError)
async def schoolcart_error_handler(request: Request, exc: SchoolCartError) -> JSONResponse:
    """Map SchoolCartError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    try:
        stores = get_catalog_store().list_stores()
        return {"status": "ok", "store_count": len(stores)}
    except SchoolCartError as e:
        return {"status": "error", "detail": str(e)}


# --- Catalog Endpoints ---


@app.get("/api/stores", response_model=SiteIndexResponse)
def list_stores():
    """Site index: title, classes, stores and GST rate."""
    index = get_catalog_store().load_index()
    return SiteIndexResponse(
        title=index.title,
        classes=index.classes,
        stores=[StoreSummarySchema(**s.to_dict()) for s in index.stores],
        gst=float(index.gst_rate),
    )


@app.get("/api/stores/{store_id}")
def get_store(store_id: str):
    """Full store catalog and pricing configuration."""
    return get_catalog_store().get_store(store_id).to_dict()


@app.post("/api/stores/{store_id}/price")
def price_store_endpoint(store_id: str, request: PriceRequest):
    """Price one store's lines with the site GST rate."""
    catalog = get_catalog_store()
    store = catalog.get_store(store_id)
    lines = [CartLine(sku=line.sku, quantity=line.qty) for line in request.lines]
    quote = price_store_lines(store, lines, catalog.gst_rate())
    return quote.to_dict(include_items=True)


# --- Cart Endpoints ---


@app.post("/api/carts", status_code=201)
def create_cart():
    """Create a new empty cart."""
    store = get_cart_store()
    cart = Cart.create()
    store.save(cart)
    return cart.to_dict()


@app.get("/api/carts/{cart_id}")
def get_cart(cart_id: str):
    return get_cart_store().load(cart_id).to_dict()


@app.post("/api/carts/{cart_id}/items")
def add_cart_item(cart_id: str, request: CartItemRequest):
    """Add units of a product to a cart."""
    store = get_cart_store()
    store.load(cart_id)
    cart = store.add(cart_id, request.store_id, request.sku, request.qty)
    return cart.to_dict()


@app.put("/api/carts/{cart_id}/items")
def set_cart_item(cart_id: str, request: CartItemRequest):
    """Set a line's quantity (0 removes it)."""
    store = get_cart_store()
    store.load(cart_id)
    cart = store.set_qty(cart_id, request.store_id, request.sku, request.qty)
    return cart.to_dict()


@app.delete("/api/carts/{cart_id}/items")
def remove_cart_item(cart_id: str, store_id: str = Query(...), sku: str = Query(...)):
    store = get_cart_store()
    store.load(cart_id)
    return store.remove(cart_id, store_id, sku).to_dict()


@app.delete("/api/carts/{cart_id}")
def clear_cart(cart_id: str, store_id: Optional[str] = Query(default=None)):
    """Clear a whole cart, or just one store's lines."""
    store = get_cart_store()
    store.load(cart_id)
    if store_id:
        return store.clear_store(cart_id, store_id).to_dict()
    return store.clear(cart_id).to_dict()


# --- Checkout Endpoints ---


@app.post("/api/checkout/quote")
def quote_checkout(request: QuoteRequest):
    """Price every store in the cart and apply discount codes."""
    catalog = get_catalog_store()
    codes = validate_codes(request.codes, catalog.discount_codes())
    quote = Checkout(catalog, get_order_history()).quote(_cart_from_request(request), codes)
    return quote.to_dict()


@app.post("/api/checkout/codes", response_model=AppliedCodesResponse)
def apply_discount_code(request: CodeRequest):
    """
    Validate a discount code and add it to the applied set.

    Rejects unknown codes, duplicates and a second percentage code with 400.
    """
    catalog_codes = get_catalog_store().discount_codes()
    applied = apply_code(request.code, request.applied, catalog_codes)
    return AppliedCodesResponse(applied=applied)


@app.post("/api/checkout/codes/remove", response_model=AppliedCodesResponse)
def remove_discount_code(request: CodeRequest):
    return AppliedCodesResponse(applied=remove_code(request.code, request.applied))


# --- Order Endpoints ---


@app.post("/api/orders", status_code=201)
def place_order(request: OrderCreateRequest):
    """
    Place an order: quote, validate buyer, redeem gift card, record.

    A stored cart (cart_id) is cleared once the order is recorded.
    """
    catalog = get_catalog_store()
    checkout = Checkout(catalog, get_order_history())
    codes = validate_codes(request.codes, catalog.discount_codes())
    buyer = Buyer(
        name=request.name,
        class_name=request.class_name,
        justifications=[Justification(sku=j.sku, text=j.text) for j in request.justifications],
    )
    order = checkout.place_order(
        _cart_from_request(request),
        codes,
        buyer,
        request.card_number,
        breakdown_suppressed=request.breakdown_suppressed,
        idempotency_key=request.idempotency_key,
    )
    if request.cart is None and request.cart_id:
        get_cart_store().clear(request.cart_id)
    return order.to_dict()


@app.get("/api/orders", response_model=OrderListResponse)
def list_orders(limit: Optional[int] = Query(default=None, ge=1)):
    """List placed orders, newest first."""
    orders = get_order_history().list_orders(limit=limit)
    return OrderListResponse(
        orders=[
            OrderSummarySchema(
                id=o.id,
                name=o.buyer.name,
                class_name=o.buyer.class_name,
                grand_total=float(o.grand_total),
                created_at=o.created_at,
            )
            for o in orders
        ],
        count=len(orders),
    )


@app.get("/api/orders/{order_id}")
def get_order(order_id: str):
    return get_order_history().get_order(order_id).to_dict()


@app.get("/api/orders/{order_id}/receipt", response_class=PlainTextResponse)
def get_order_receipt(order_id: str):
    """Markdown receipt for an order."""
    order = get_order_history().get_order(order_id)
    return PlainTextResponse(render_receipt(order), media_type="text/markdown")
