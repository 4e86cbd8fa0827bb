"""
Product reviews.

A product embeds its reviews and carries two aggregates derived from them,
``numReviews`` and ``rating`` (the unrounded mean). Each user may review a
product once.

The append is a conditional update: it only matches while the product still
has the review count we read and no review by this user. A writer that
loses the race re-reads the product and tries again, so concurrent reviews
are never dropped and the aggregates always describe the stored list.
"""

import logging
from typing import Any

from bson import ObjectId
from pymongo.database import Database

from catalog import find_product
from database import now, object_id
from errors import AlreadyReviewed, Conflict

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5


def has_reviewed(product: dict, user_id: Any) -> bool:
    return any(str(r.get("user")) == str(user_id) for r in product.get("reviews") or [])


def aggregate(ratings: list) -> dict:
    if not ratings:
        return {"numReviews": 0, "rating": 0}
    return {"numReviews": len(ratings), "rating": sum(ratings) / len(ratings)}


def _unchanged_since(product: dict) -> dict:
    """Filter matching the product only while its review list is as read."""
    count = len(product.get("reviews") or [])
    if count == 0:
        # null also matches a missing field
        return {"$or": [{"reviews": {"$size": 0}}, {"reviews": None}]}
    return {"reviews": {"$size": count}}


def add_review(db: Database, product_id: Any, user_id: Any, user_name: str, rating: int, comment: str) -> dict:
    _id = object_id(product_id, "product id")
    uid = object_id(user_id, "user id")

    for attempt in range(1, MAX_ATTEMPTS + 1):
        product = find_product(db, _id)
        if has_reviewed(product, uid):
            raise AlreadyReviewed()

        review = {
            "_id": ObjectId(),
            "user": uid,
            "name": user_name,
            "rating": int(rating),
            "comment": comment,
            "created_at": now(),
        }
        ratings = [r["rating"] for r in product.get("reviews") or []] + [review["rating"]]

        change = {"$set": {**aggregate(ratings), "updated_at": now()}}
        if isinstance(product.get("reviews"), list):
            change["$push"] = {"reviews": review}
        else:
            # $push cannot extend a null or missing list
            change["$set"]["reviews"] = [review]

        result = db["product"].update_one(
            {"_id": _id, "reviews.user": {"$ne": uid}, **_unchanged_since(product)},
            change,
        )
        if result.matched_count == 1:
            logger.info("Review added to product %s by %s", _id, uid)
            return {"message": "Review added"}
        logger.warning("Review write on product %s lost a race (attempt %d)", _id, attempt)

    raise Conflict("Product is being reviewed concurrently, try again")
