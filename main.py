import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import catalog
import checkout
import database
import orders
import reviews
from auth import authenticate, create_token, get_admin_user, get_current_user, get_optional_user
from config import settings
from database import get_db
from errors import StoreError, Unavailable
from schemas import CartItem, EnterRequest, LoginRequest, PaymentRequest, ProductUpdate, ReviewCreate, ShippingAddress

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        database.connect()
    except PyMongoError:
        logger.exception("Could not connect to MongoDB at startup")
        raise SystemExit(1)
    yield
    database.close()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error rendering

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # auth failures and unknown routes share the {"message"} body
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(ConnectionFailure)
async def store_unreachable_handler(request: Request, exc: ConnectionFailure):
    logger.error("MongoDB unreachable during %s %s: %s", request.method, request.url.path, exc)
    err = Unavailable()
    return JSONResponse(status_code=err.status_code, content={"message": err.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = ["%s: %s" % (".".join(str(part) for part in e.get("loc", ())), e.get("msg")) for e in exc.errors()]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": "; ".join(problems)})


@app.get("/")
def read_root():
    return {"message": "API is running"}


@app.get("/api/health")
def health():
    """Check whether the database is configured and answering."""
    response = {
        "backend": "running",
        "database": "not connected",
        "database_name": settings.DATABASE_NAME,
        "collections": [],
    }
    if database.db is None:
        return response
    try:
        response["collections"] = database.db.list_collection_names()[:10]
        response["database"] = "connected"
    except PyMongoError as e:
        response["database"] = f"error: {str(e)[:50]}"
    return response


# Users

@app.post("/api/users/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    user = authenticate(db, payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "isAdmin": user.get("isAdmin", False),
        "token": create_token(str(user["_id"])),
    }


# Products

@app.get("/api/products")
def list_products(
    keyword: Optional[str] = None,
    pageNumber: Optional[str] = Query(None),
    db: Database = Depends(get_db),
):
    return catalog.list_products(db, keyword=keyword, page=pageNumber)


@app.get("/api/products/top")
def top_products(db: Database = Depends(get_db)):
    return catalog.get_top_products(db)


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    return catalog.get_product_by_id(db, product_id)


@app.post("/api/products", status_code=status.HTTP_201_CREATED)
def create_product(admin: dict = Depends(get_admin_user), db: Database = Depends(get_db)):
    return catalog.create_product(db, admin["_id"])


@app.put("/api/products/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdate,
    admin: dict = Depends(get_admin_user),
    db: Database = Depends(get_db),
):
    return catalog.update_product(db, product_id, payload)


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, admin: dict = Depends(get_admin_user), db: Database = Depends(get_db)):
    return catalog.delete_product(db, product_id)


@app.put("/api/products/{product_id}/reviews", status_code=status.HTTP_201_CREATED)
def create_review(
    product_id: str,
    payload: ReviewCreate,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return reviews.add_review(db, product_id, user["_id"], user.get("name", ""), payload.rating, payload.comment)


# Cart

@app.post("/api/cart/add")
def add_to_cart(item: CartItem, db: Database = Depends(get_db)):
    return orders.add_to_cart(db, item)


@app.get("/api/cart")
def get_cart(session_id: str = Query(...), db: Database = Depends(get_db)):
    return orders.get_cart(db, session_id)


# Checkout

def _checkout_response(session: checkout.CheckoutSession, transition: Optional[checkout.Transition] = None) -> dict:
    out = {"session": session.model_dump(mode="json")}
    if transition is not None:
        out.update(transition.model_dump(mode="json"))
    return out


@app.get("/api/checkout/{session_id}")
def get_checkout(session_id: str, db: Database = Depends(get_db)):
    return _checkout_response(checkout.load_session(db, session_id))


@app.post("/api/checkout/{session_id}/enter")
def enter_checkout_step(
    session_id: str,
    payload: EnterRequest,
    user: Optional[dict] = Depends(get_optional_user),
    db: Database = Depends(get_db),
):
    session = checkout.load_session(db, session_id)
    transition = session.enter(
        checkout.parse_step(payload.step),
        authenticated=user is not None,
        cart_size=orders.cart_size(db, session_id),
    )
    checkout.save_session(db, session)
    return _checkout_response(session, transition)


@app.put("/api/checkout/{session_id}/shipping")
def save_shipping(
    session_id: str,
    payload: ShippingAddress,
    user: Optional[dict] = Depends(get_optional_user),
    db: Database = Depends(get_db),
):
    session = checkout.load_session(db, session_id)
    session.save_shipping_address(payload)
    transition = session.enter(
        checkout.CheckoutStep.PAYMENT,
        authenticated=user is not None,
        cart_size=orders.cart_size(db, session_id),
    )
    checkout.save_session(db, session)
    return _checkout_response(session, transition)


@app.put("/api/checkout/{session_id}/payment")
def save_payment(
    session_id: str,
    payload: PaymentRequest,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    session = checkout.load_session(db, session_id)
    session.save_payment_method(payload.paymentMethod)
    transition = session.enter(
        checkout.CheckoutStep.PLACE_ORDER,
        authenticated=True,
        cart_size=orders.cart_size(db, session_id),
    )
    checkout.save_session(db, session)
    return _checkout_response(session, transition)


@app.post("/api/checkout/{session_id}/order", status_code=status.HTTP_201_CREATED)
def place_order(session_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    session = checkout.load_session(db, session_id)
    return orders.place_order(db, session, user)


# Orders

@app.get("/api/orders/myorders")
def my_orders(user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return orders.get_my_orders(db, user)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return orders.get_order_by_id(db, order_id, user)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
