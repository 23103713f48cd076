import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from bson.errors import InvalidId
from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from cart import line_total
from catalog import CatalogFilters, CatalogStore, ProductSnapshot
from database import create_document, db
from errors import CatalogError, ProductNotFound, ValidationFailure
from schemas import (
    BuyAdd,
    LineRemove,
    ModeUpdate,
    PeriodUpdate,
    QuantityUpdate,
    RentAdd,
    SessionOnly,
    ShoppingMode,
)
from session import SessionRegistry, StoreSession
from storage import DEFAULT_STORAGE_DIR, JsonFileStorage

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    seed_demo()
    yield


app = FastAPI(title="Wardrobe API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_catalog = CatalogStore(db)
_sessions = SessionRegistry(lambda session_id: JsonFileStorage(DEFAULT_STORAGE_DIR, session_id))


# ---------------------------
# Dependencies
# ---------------------------
def get_catalog() -> CatalogStore:
    return _catalog


def get_sessions() -> SessionRegistry:
    return _sessions


def open_session(sessions: SessionRegistry, session_id: str) -> StoreSession:
    try:
        return sessions.get(session_id)
    except ValueError:
        raise HTTPException(400, "Invalid session id")


def load_snapshot(catalog: CatalogStore, product_id: str) -> ProductSnapshot:
    try:
        return catalog.get_product(product_id)
    except InvalidId:
        raise HTTPException(400, "Invalid id")
    except ProductNotFound:
        raise HTTPException(404, "Not found")
    except CatalogError as e:
        raise HTTPException(503, {"title": "Error", "description": str(e)})


def rejected(failure: ValidationFailure) -> HTTPException:
    return HTTPException(400, {"title": failure.title, "description": failure.description})


def split_param(value: Optional[str]) -> List[str]:
    return [v for v in value.split(",") if v] if value else []


# ---------------------------
# Payloads
# ---------------------------
def notifications_of(session: StoreSession) -> list:
    return [n.model_dump() for n in session.drain_notifications()]


def buy_cart_payload(session: StoreSession) -> dict:
    cart = session.buy_cart
    return {
        "items": [{**line.model_dump(mode="json"), "line_total": line_total(line)} for line in cart],
        "item_count": cart.item_count,
        "subtotal": cart.subtotal,
        "shipping_cost": cart.shipping_cost,
        "total": cart.total,
        "notifications": notifications_of(session),
    }


def rent_cart_payload(session: StoreSession) -> dict:
    cart = session.rent_cart
    return {
        "items": [{**line.model_dump(mode="json"), "line_total": line_total(line)} for line in cart],
        "item_count": cart.item_count,
        "total_rent_amount": cart.total_rent_amount,
        "total_deposit": cart.total_deposit,
        "shipping_cost": cart.shipping_cost,
        "total_payment": cart.total_payment,
        "notifications": notifications_of(session),
    }


def mode_payload(session: StoreSession) -> dict:
    return {"mode": session.mode.mode.value, "notifications": notifications_of(session)}


# ---------------------------
# Routes
# ---------------------------
@app.get("/")
def read_root():
    return {"brand": "Wardrobe", "message": "Buy it or borrow it."}


@app.get("/api/products")
def list_products(
    session_id: Optional[str] = Query(default=None),
    mode: Optional[ShoppingMode] = Query(default=None),
    category: Optional[str] = Query(default=None),
    gender: Optional[str] = Query(default=None),
    color: Optional[str] = Query(default=None),
    min_price: float = Query(default=0, alias="minPrice"),
    max_price: float = Query(default=500, alias="maxPrice"),
    search: str = Query(default=""),
    catalog: CatalogStore = Depends(get_catalog),
    sessions: SessionRegistry = Depends(get_sessions),
):
    if mode is None:
        mode = open_session(sessions, session_id).mode.mode if session_id else ShoppingMode.BUY
    filters = CatalogFilters(
        search=search,
        categories=split_param(category),
        genders=split_param(gender),
        colors=split_param(color),
        min_price=min_price,
        max_price=max_price,
    )
    try:
        products = catalog.list_products(mode, filters)
    except CatalogError as e:
        return {
            "mode": mode.value,
            "products": [],
            "notifications": [{"title": "Error", "description": str(e), "variant": "destructive"}],
        }
    return {"mode": mode.value, "products": [p.model_dump() for p in products], "notifications": []}


@app.get("/api/products/{product_id}")
def get_product(
    product_id: str,
    session_id: str = Query(...),
    catalog: CatalogStore = Depends(get_catalog),
    sessions: SessionRegistry = Depends(get_sessions),
):
    session = open_session(sessions, session_id)
    view = session.view_product(load_snapshot(catalog, product_id))
    return {**view.model_dump(mode="json"), "notifications": notifications_of(session)}


@app.get("/api/mode")
def get_mode(session_id: str = Query(...), sessions: SessionRegistry = Depends(get_sessions)):
    return mode_payload(open_session(sessions, session_id))


@app.put("/api/mode")
def set_mode(payload: ModeUpdate, sessions: SessionRegistry = Depends(get_sessions)):
    session = open_session(sessions, payload.session_id)
    session.mode.set(payload.mode)
    return mode_payload(session)


@app.post("/api/mode/toggle")
def toggle_mode(payload: SessionOnly, sessions: SessionRegistry = Depends(get_sessions)):
    session = open_session(sessions, payload.session_id)
    session.mode.toggle()
    return mode_payload(session)


@app.get("/api/cart")
def get_cart(session_id: str = Query(...), sessions: SessionRegistry = Depends(get_sessions)):
    return buy_cart_payload(open_session(sessions, session_id))


@app.post("/api/cart/add")
def add_to_cart(
    payload: BuyAdd,
    catalog: CatalogStore = Depends(get_catalog),
    sessions: SessionRegistry = Depends(get_sessions),
):
    session = open_session(sessions, payload.session_id)
    snapshot = load_snapshot(catalog, payload.product_id)
    try:
        session.add_to_buy_cart(snapshot, payload.size, payload.quantity)
    except ValidationFailure as e:
        raise rejected(e)
    return buy_cart_payload(session)


@app.post("/api/cart/remove")
def remove_from_cart(payload: LineRemove, sessions: SessionRegistry = Depends(get_sessions)):
    session = open_session(sessions, payload.session_id)
    session.buy_cart.remove(payload.line_id)
    return buy_cart_payload(session)


@app.post("/api/cart/quantity")
def update_cart_quantity(payload: QuantityUpdate, sessions: SessionRegistry = Depends(get_sessions)):
    session = open_session(sessions, payload.session_id)
    session.buy_cart.update_quantity(payload.line_id, payload.quantity)
    return buy_cart_payload(session)


@app.post("/api/cart/clear")
def clear_cart(payload: SessionOnly, sessions: SessionRegistry = Depends(get_sessions)):
    session = open_session(sessions, payload.session_id)
    session.buy_cart.clear()
    return buy_cart_payload(session)


@app.get("/api/rental-cart")
def get_rental_cart(session_id: str = Query(...), sessions: SessionRegistry = Depends(get_sessions)):
    return rent_cart_payload(open_session(sessions, session_id))


@app.post("/api/rental-cart/add")
def add_to_rental_cart(
    payload: RentAdd,
    catalog: CatalogStore = Depends(get_catalog),
    sessions: SessionRegistry = Depends(get_sessions),
):
    session = open_session(sessions, payload.session_id)
    snapshot = load_snapshot(catalog, payload.product_id)
    try:
        session.add_to_rent_cart(snapshot, payload.size, payload.duration_days, payload.start_date)
    except ValidationFailure as e:
        raise rejected(e)
    return rent_cart_payload(session)


@app.post("/api/rental-cart/remove")
def remove_from_rental_cart(payload: LineRemove, sessions: SessionRegistry = Depends(get_sessions)):
    session = open_session(sessions, payload.session_id)
    session.rent_cart.remove(payload.line_id)
    return rent_cart_payload(session)


@app.post("/api/rental-cart/period")
def update_rental_period(payload: PeriodUpdate, sessions: SessionRegistry = Depends(get_sessions)):
    session = open_session(sessions, payload.session_id)
    try:
        session.change_rental_period(payload.line_id, payload.duration_days, payload.start_date)
    except ValidationFailure as e:
        raise rejected(e)
    return rent_cart_payload(session)


@app.post("/api/rental-cart/clear")
def clear_rental_cart(payload: SessionOnly, sessions: SessionRegistry = Depends(get_sessions)):
    session = open_session(sessions, payload.session_id)
    session.rent_cart.clear()
    return rent_cart_payload(session)


@app.get("/api/me")
def who_am_i(
    x_user_id: Optional[str] = Header(None),
    catalog: CatalogStore = Depends(get_catalog),
):
    if not x_user_id:
        return {"user_id": None, "is_admin": False}
    try:
        profile = catalog.get_profile(x_user_id)
    except CatalogError as e:
        raise HTTPException(503, {"title": "Error", "description": str(e)})
    return {"user_id": x_user_id, "is_admin": bool(profile and profile.is_admin)}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "connection_status": "Not Connected",
        "collections": [],
    }

    if db is not None:
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
        try:
            response["collections"] = db.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            logger.warning("Database health check failed: %s", e)
            response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"

    response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
    response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
    return response


# ---------------------------
# Seed minimal demo data for prototype
# ---------------------------
DEMO_PRODUCTS = [
    {
        "product": {
            "name": "Linen Summer Shirt",
            "description": "Breathable washed linen with a relaxed collar.",
            "sku": "SH-LIN-001",
            "category": "Shirts",
            "gender": "Men",
            "color": "White",
            "material": "Linen",
            "season": "Summer",
            "purchase_price": 39.99,
            "rental_price_daily": 6.0,
            "rental_deposit": 20.0,
            "rental_max_days": 7,
            "is_purchasable": True,
            "is_rentable": True,
        },
        "inventory": {"S": (4, 2), "M": (6, 3), "L": (2, 1)},
        "images": ["https://images.unsplash.com/photo-1596755094514-f87e34085b2c?w=1200&auto=format&fit=crop&q=80"],
    },
    {
        "product": {
            "name": "Embroidered Silk Saree",
            "description": "Hand-embroidered silk with a contrast border.",
            "sku": "SA-SLK-014",
            "category": "Sarees",
            "gender": "Women",
            "color": "Red",
            "material": "Silk",
            "season": "All Season",
            "purchase_price": 220.0,
            "rental_price_daily": 25.0,
            "rental_deposit": 100.0,
            "rental_max_days": 5,
            "is_purchasable": False,
            "is_rentable": True,
        },
        "inventory": {"M": (0, 2), "L": (0, 1)},
        "images": ["https://images.unsplash.com/photo-1610030469983-98e550d6193c?w=1200&auto=format&fit=crop&q=80"],
    },
    {
        "product": {
            "name": "Classic Selvedge Jeans",
            "description": "Rinse-washed selvedge denim, straight fit.",
            "sku": "JN-SEL-032",
            "category": "Jeans",
            "gender": "Unisex",
            "color": "Blue",
            "material": "Denim",
            "purchase_price": 59.0,
            "is_purchasable": True,
            "is_rentable": False,
        },
        "inventory": {"S": (3, 0), "M": (5, 0), "L": (5, 0), "XL": (1, 0)},
        "images": ["https://images.unsplash.com/photo-1512436991641-6745cdb1723f?w=1200&auto=format&fit=crop&q=80"],
    },
]


def seed_demo():
    if db is None:
        return
    try:
        if db.product.count_documents({}) > 0:
            return
        for demo in DEMO_PRODUCTS:
            product_id = create_document("product", demo["product"])
            for size, (buy_stock, rent_stock) in demo["inventory"].items():
                create_document("inventory", {
                    "product_id": product_id,
                    "size": size,
                    "buy_stock": buy_stock,
                    "rent_stock": rent_stock,
                })
            for order, url in enumerate(demo["images"]):
                create_document("product_images", {
                    "product_id": product_id,
                    "image_url": url,
                    "image_type": "main" if order == 0 else "detail",
                    "display_order": order,
                })
        logger.info("Seeded %d demo products", len(DEMO_PRODUCTS))
    except Exception:
        logger.exception("Demo seed failed")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
