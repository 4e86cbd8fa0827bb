"""
Catalog queries and admin product maintenance.

Listing is paginated at a fixed page size with an optional case-insensitive
name search. Writes to a product touch only the fields they are given.
"""

import logging
import math
import re
from typing import Any, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from database import create_document, now, object_id, serialize
from errors import NotFound
from schemas import ProductUpdate

logger = logging.getLogger(__name__)

PAGE_SIZE = 5
TOP_LIMIT = 3

SAMPLE_PRODUCT = {
    "name": "Sample product",
    "price": 0,
    "image": "/images/sample.jpg",
    "brand": "Sample brand",
    "category": "Sample product",
    "countInStock": 0,
    "numReviews": 0,
    "rating": 0,
    "reviews": [],
    "description": "Sample product",
}


def parse_page(value: Any) -> int:
    """Coerce a pageNumber query value; anything unusable means page 1.

    Numeric spellings such as "2.0" or "1e1" count when they name a whole page.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number) or number < 1 or number != int(number):
        return 1
    return int(number)


def keyword_filter(keyword: Optional[str]) -> dict:
    if not keyword:
        return {}
    return {"name": {"$regex": re.escape(keyword), "$options": "i"}}


def list_products(db: Database, keyword: Optional[str] = None, page: Any = None) -> dict:
    page = parse_page(page)
    filt = keyword_filter(keyword)
    count = db["product"].count_documents(filt)
    skip = PAGE_SIZE * (page - 1)
    products = []
    # past the last page; also keeps skip within what BSON can encode
    if skip < count:
        cursor = db["product"].find(filt).skip(skip).limit(PAGE_SIZE)
        products = [serialize(p) for p in cursor]
    return {
        "products": products,
        "page": page,
        "pages": math.ceil(count / PAGE_SIZE),
    }


def find_product(db: Database, product_id: Any) -> dict:
    """Raw product document or NotFound. Raises InvalidArgument on a malformed id."""
    _id = object_id(product_id, "product id")
    prod = db["product"].find_one({"_id": _id})
    if not prod:
        raise NotFound("Product not found")
    return prod


def get_product_by_id(db: Database, product_id: Any) -> dict:
    return serialize(find_product(db, product_id))


def get_top_products(db: Database) -> list:
    # equal ratings come back in whatever order the store yields them
    cursor = db["product"].find({}).sort("rating", DESCENDING).limit(TOP_LIMIT)
    return [serialize(p) for p in cursor]


def create_product(db: Database, owner_id: Any) -> dict:
    doc = {**SAMPLE_PRODUCT, "reviews": [], "user": object_id(owner_id, "user id")}
    new_id = create_document(db, "product", doc)
    logger.info("Product %s created by %s", new_id, owner_id)
    return get_product_by_id(db, new_id)


def update_product(db: Database, product_id: Any, fields: ProductUpdate) -> dict:
    _id = object_id(product_id, "product id")
    changes = fields.model_dump(exclude_unset=True)
    # an explicit null is not a value for any editable field
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        return get_product_by_id(db, _id)
    changes["updated_at"] = now()
    updated = db["product"].find_one_and_update(
        {"_id": _id},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFound("Product not found")
    return serialize(updated)


def delete_product(db: Database, product_id: Any) -> dict:
    _id = object_id(product_id, "product id")
    result = db["product"].delete_one({"_id": _id})
    if result.deleted_count == 0:
        raise NotFound("Product not found")
    logger.info("Product %s removed", product_id)
    return {"message": "Product removed"}
