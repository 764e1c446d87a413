import os
import secrets
from contextlib import asynccontextmanager
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from auth import ADMIN_COOKIE, COOKIE_MAX_AGE, login, require_admin
from cart import Cart, CartRegistry
from catalog import Catalog
from checkout import normalize_transaction_reference, validate_raw_username
from database import db
from errors import StoreError
from logging_config import configure_logging
from notifications import OrderNotifier, get_email_channel
from orders import OrderIntake
from review import OrderReview, OrderStats
from schemas import CamelModel, CheckoutRequest, CheckoutResponse, Order, Product, ProductIn
from settings import Settings, get_settings
from stores import CatalogStore, MongoCatalogStore, MongoOrderStore, OrderStore

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(title="Minecraft Store API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

CART_COOKIE = "cart_session"


# --------- Error handling ---------
@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, kind=exc.kind, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Malformed request body", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request."})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Something went wrong processing your order. Please try again."},
    )


# --------- Dependencies ---------
def get_catalog_store() -> CatalogStore:
    if db is None:
        raise StoreError("Database not configured")
    return MongoCatalogStore(db)


def get_order_store() -> OrderStore:
    if db is None:
        raise StoreError("Database not configured")
    return MongoOrderStore(db)


def get_catalog(store: CatalogStore = Depends(get_catalog_store)) -> Catalog:
    return Catalog(store)


def get_notifier(settings: Settings = Depends(get_settings)) -> OrderNotifier:
    return OrderNotifier(
        get_email_channel(settings),
        settings.NOTIFY_EMAIL,
        currency=settings.CURRENCY_SYMBOL,
        store_name=settings.STORE_NAME,
    )


def get_intake(
    catalog: Catalog = Depends(get_catalog),
    orders: OrderStore = Depends(get_order_store),
    notifier: OrderNotifier = Depends(get_notifier),
) -> OrderIntake:
    return OrderIntake(catalog, orders, notifier)


def get_review(
    orders: OrderStore = Depends(get_order_store),
    products: CatalogStore = Depends(get_catalog_store),
) -> OrderReview:
    return OrderReview(orders, products)


cart_registry = CartRegistry()


def get_cart_registry() -> CartRegistry:
    return cart_registry


def get_cart(request: Request, response: Response, registry: CartRegistry = Depends(get_cart_registry)) -> Cart:
    session_id = request.cookies.get(CART_COOKIE)
    if not session_id:
        session_id = secrets.token_urlsafe(16)
        response.set_cookie(CART_COOKIE, session_id, httponly=True, samesite="lax")
    return registry.get(session_id)


def find_cart(request: Request, registry: CartRegistry = Depends(get_cart_registry)) -> Optional[Cart]:
    return registry.find(request.cookies.get(CART_COOKIE))


# --------- Schemas for API (separate from schemas.py collections) ---------
class CartLineOut(CamelModel):
    product_id: str
    name: str
    price: float
    quantity: int
    line_total: float


class ToastOut(BaseModel):
    id: int
    message: str


class CartOut(CamelModel):
    items: List[CartLineOut]
    subtotal: float
    item_count: int
    toasts: List[ToastOut]


class CartAddIn(BaseModel):
    product_id: str = Field(..., validation_alias=AliasChoices("productId", "product_id", "id"))


class CartQuantityIn(BaseModel):
    quantity: int


class CartCheckoutIn(BaseModel):
    minecraft_username: Optional[str] = Field(
        None, validation_alias=AliasChoices("minecraftUsername", "minecraft_username")
    )
    edition: Optional[str] = None
    transaction_reference: Optional[str] = Field(
        None, validation_alias=AliasChoices("transactionReference", "utrNumber", "transaction_reference")
    )


class AdminLoginIn(BaseModel):
    password: Optional[str] = None


class ReviewIn(BaseModel):
    order_id: str = Field(..., validation_alias=AliasChoices("orderId", "order_id"))


class ReviewOut(CamelModel):
    success: bool = True
    order_id: str
    status: str


class SeedOut(BaseModel):
    seeded: bool
    count: int
    message: str


def cart_to_out(cart: Optional[Cart]) -> CartOut:
    if cart is None:
        return CartOut(items=[], subtotal=0, item_count=0, toasts=[])
    return CartOut(
        items=[
            CartLineOut(
                product_id=line.product.id,
                name=line.product.name,
                price=line.product.price,
                quantity=line.quantity,
                line_total=line.line_total,
            )
            for line in cart.lines
        ],
        subtotal=cart.subtotal(),
        item_count=cart.item_count(),
        toasts=[ToastOut(id=t.id, message=t.message) for t in cart.toasts.active()],
    )


# --------- Routes ---------
@app.get("/")
def read_root():
    return {"message": "Minecraft Store Backend Running"}


@app.get("/api/products", response_model=List[Product])
def list_products(category: Optional[str] = Query(None), catalog: Catalog = Depends(get_catalog)):
    return catalog.list_products(category)


@app.get("/api/products/{product_id}", response_model=Product)
def get_product(product_id: str, catalog: Catalog = Depends(get_catalog)):
    return catalog.get_product(product_id)


@app.post("/api/checkout", status_code=201, response_model=CheckoutResponse)
def checkout(body: CheckoutRequest, intake: OrderIntake = Depends(get_intake)):
    return intake.place_order(body)


# --------- Session cart ---------
@app.get("/api/cart", response_model=CartOut)
def view_cart(cart: Optional[Cart] = Depends(find_cart)):
    return cart_to_out(cart)


@app.post("/api/cart/items", response_model=CartOut)
def add_to_cart(body: CartAddIn, cart: Cart = Depends(get_cart), catalog: Catalog = Depends(get_catalog)):
    cart.add(catalog.get_product(body.product_id))
    return cart_to_out(cart)


@app.put("/api/cart/items/{product_id}", response_model=CartOut)
def update_cart_quantity(product_id: str, body: CartQuantityIn, cart: Optional[Cart] = Depends(find_cart)):
    if cart is not None:
        cart.set_quantity(product_id, body.quantity)
    return cart_to_out(cart)


@app.delete("/api/cart/items/{product_id}", response_model=CartOut)
def remove_from_cart(product_id: str, cart: Optional[Cart] = Depends(find_cart)):
    if cart is not None:
        cart.remove(product_id)
    return cart_to_out(cart)


@app.delete("/api/cart", response_model=CartOut)
def clear_cart(cart: Optional[Cart] = Depends(find_cart)):
    if cart is not None:
        cart.clear()
    return cart_to_out(cart)


@app.delete("/api/cart/toasts/{toast_id}", response_model=CartOut)
def dismiss_toast(toast_id: int, cart: Optional[Cart] = Depends(find_cart)):
    if cart is not None:
        cart.toasts.dismiss(toast_id)
    return cart_to_out(cart)


@app.post("/api/cart/checkout", status_code=201, response_model=CheckoutResponse)
def checkout_cart(
    body: CartCheckoutIn,
    request: Request,
    cart: Optional[Cart] = Depends(find_cart),
    registry: CartRegistry = Depends(get_cart_registry),
    intake: OrderIntake = Depends(get_intake),
):
    username = validate_raw_username(body.minecraft_username)
    placed = intake.place_order(
        CheckoutRequest(
            minecraft_username=username,
            edition=body.edition,
            transaction_reference=normalize_transaction_reference(body.transaction_reference),
            items=cart.checkout_items() if cart is not None else [],
        )
    )
    registry.discard(request.cookies.get(CART_COOKIE))
    return placed


# --------- Admin ---------
@app.post("/api/admin/auth")
def admin_login(body: AdminLoginIn, response: Response, settings: Settings = Depends(get_settings)):
    token = login(body.password, settings)
    response.set_cookie(
        ADMIN_COOKIE,
        token,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        path="/",
        max_age=COOKIE_MAX_AGE,
    )
    return {"success": True}


@app.delete("/api/admin/auth")
def admin_logout(response: Response):
    response.delete_cookie(ADMIN_COOKIE, path="/")
    return {"success": True}


admin = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)])


@admin.get("/stats", response_model=OrderStats)
def dashboard_stats(review: OrderReview = Depends(get_review)):
    return review.stats()


@admin.get("/orders", response_model=List[Order])
def list_orders(status: Optional[str] = Query(None), review: OrderReview = Depends(get_review)):
    return review.list_orders(status)


@admin.post("/orders/approve", response_model=ReviewOut)
def approve_order(body: ReviewIn, review: OrderReview = Depends(get_review)):
    order = review.approve(body.order_id)
    return ReviewOut(order_id=order.order_id, status=order.status)


@admin.post("/orders/reject", response_model=ReviewOut)
def reject_order(body: ReviewIn, review: OrderReview = Depends(get_review)):
    order = review.reject(body.order_id)
    return ReviewOut(order_id=order.order_id, status=order.status)


@admin.get("/products", response_model=List[Product])
def admin_list_products(catalog: Catalog = Depends(get_catalog)):
    return catalog.list_products()


@admin.post("/products", status_code=201, response_model=Product)
def add_product(body: ProductIn, catalog: Catalog = Depends(get_catalog)):
    return catalog.add_product(body)


@admin.put("/products/{product_id}", response_model=Product)
def update_product(product_id: str, body: ProductIn, catalog: Catalog = Depends(get_catalog)):
    return catalog.update_product(product_id, body)


@admin.delete("/products/{product_id}")
def delete_product(product_id: str, catalog: Catalog = Depends(get_catalog)):
    catalog.delete_product(product_id)
    return {"success": True}


@admin.post("/seed", response_model=SeedOut)
def seed_products(catalog: Catalog = Depends(get_catalog)):
    count = catalog.seed_defaults()
    if count:
        return SeedOut(seeded=True, count=count, message=f"Successfully seeded {count} products.")
    return SeedOut(seeded=False, count=0, message="Products collection is not empty. Seed skipped.")


app.include_router(admin)


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        if db is not None:
            response["database"] = "✅ Available"
            response["database_name"] = db.name
            response["connection_status"] = "Connected"
            try:
                collections = db.list_collection_names()
                response["collections"] = collections[:10]
                response["database"] = "✅ Connected & Working"
            except Exception as e:
                response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        else:
            response["database"] = "⚠️  Available but not initialized"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"

    response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().PORT)
