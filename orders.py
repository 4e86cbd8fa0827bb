"""
Cart lines and order creation.

The cart is keyed by an anonymous session id. Placing an order turns the
session's cart plus its checkout choices into an Order document, then
clears the cart and discards the checkout session.
"""

import logging
from typing import Any, List

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.database import Database

from catalog import find_product
from checkout import CheckoutSession, discard_session
from database import create_document, object_id, serialize
from errors import InvalidArgument, NotFound
from schemas import CartItem, Order, OrderItem

logger = logging.getLogger(__name__)

FREE_SHIPPING_OVER = 100
SHIPPING_FEE = 10
TAX_RATE = 0.15


def add_to_cart(db: Database, item: CartItem) -> dict:
    find_product(db, item.product_id)
    existing = db["cart"].find_one({"session_id": item.session_id, "product_id": item.product_id})
    if existing:
        new_qty = int(existing.get("quantity", 1)) + int(item.quantity)
        if new_qty <= 0:
            db["cart"].delete_one({"_id": existing["_id"]})
            return {"status": "removed"}
        db["cart"].update_one({"_id": existing["_id"]}, {"$set": {"quantity": new_qty}})
        return serialize(db["cart"].find_one({"_id": existing["_id"]}))
    if item.quantity <= 0:
        raise InvalidArgument("Quantity must be positive")
    doc_id = create_document(db, "cart", item)
    return serialize(db["cart"].find_one({"_id": ObjectId(doc_id)}))


def get_cart(db: Database, session_id: str) -> dict:
    items = []
    total = 0.0
    for line in db["cart"].find({"session_id": session_id}):
        try:
            prod = find_product(db, line.get("product_id"))
        except NotFound:
            # product deleted since it was added; drop it from the view
            continue
        price = float(prod.get("price", 0.0))
        qty = int(line.get("quantity", 1))
        subtotal = qty * price
        total += subtotal
        items.append({
            "id": str(line["_id"]),
            "product_id": line.get("product_id"),
            "quantity": qty,
            "name": prod.get("name"),
            "price": price,
            "image": prod.get("image"),
            "subtotal": round(subtotal, 2),
        })
    return {"items": items, "total": round(total, 2)}


def cart_size(db: Database, session_id: str) -> int:
    return db["cart"].count_documents({"session_id": session_id})


def price_order(items: List[OrderItem]) -> dict:
    items_price = round(sum(i.subtotal for i in items), 2)
    shipping_price = 0 if items_price > FREE_SHIPPING_OVER else SHIPPING_FEE
    tax_price = round(TAX_RATE * items_price, 2)
    return {
        "itemsPrice": items_price,
        "shippingPrice": shipping_price,
        "taxPrice": tax_price,
        "totalPrice": round(items_price + shipping_price + tax_price, 2),
    }


def place_order(db: Database, session: CheckoutSession, user: dict) -> dict:
    cart = get_cart(db, session.session_id)
    if not cart["items"]:
        raise InvalidArgument("Cart is empty")

    order_items = [
        OrderItem(
            product_id=it["product_id"],
            name=it.get("name") or "",
            image=it.get("image"),
            price=float(it.get("price") or 0.0),
            quantity=int(it.get("quantity") or 1),
            subtotal=float(it.get("subtotal") or 0.0),
        )
        for it in cart["items"]
    ]
    session.complete()
    order = Order(
        user=str(user["_id"]),
        session_id=session.session_id,
        orderItems=order_items,
        shippingAddress=session.shippingAddress,
        paymentMethod=session.paymentMethod,
        **price_order(order_items),
    )
    order_id = create_document(db, "order", order)

    db["cart"].delete_many({"session_id": session.session_id})
    discard_session(db, session.session_id)
    logger.info("Order %s placed for session %s", order_id, session.session_id)
    return serialize(db["order"].find_one({"_id": ObjectId(order_id)}))


def get_my_orders(db: Database, user: dict) -> list:
    orders = db["order"].find({"user": str(user["_id"])}).sort("created_at", DESCENDING)
    return [serialize(o) for o in orders]


def get_order_by_id(db: Database, order_id: Any, user: dict) -> dict:
    order = db["order"].find_one({"_id": object_id(order_id, "order id")})
    if not order:
        raise NotFound("Order not found")
    if order.get("user") != str(user["_id"]) and not user.get("isAdmin", False):
        # other users' orders are reported as missing
        raise NotFound("Order not found")
    return serialize(order)
