"""
Seed or wipe the store.

    python seeder.py      # replace users, products and orders with sample data
    python seeder.py -d   # delete users, products and orders
"""

import argparse
import logging
import sys

from pymongo.database import Database

import database
from auth import hash_password
from database import create_document
from schemas import Product, User

logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    {"name": "Admin User", "email": "admin@shop.com", "password": "123456", "isAdmin": True},
    {"name": "John Doe", "email": "john@shop.com", "password": "123456"},
    {"name": "Jane Doe", "email": "jane@shop.com", "password": "123456"},
]

SAMPLE_PRODUCTS = [
    {
        "name": "Airpods Wireless Bluetooth Headphones",
        "image": "/images/airpods.jpg",
        "description": "Bluetooth technology lets you connect it with compatible devices wirelessly",
        "brand": "Apple",
        "category": "Electronics",
        "price": 89.99,
        "countInStock": 10,
    },
    {
        "name": "iPhone 11 Pro 256GB Memory",
        "image": "/images/phone.jpg",
        "description": "Introducing the iPhone 11 Pro, a transformative triple-camera system",
        "brand": "Apple",
        "category": "Electronics",
        "price": 599.99,
        "countInStock": 7,
    },
    {
        "name": "Cannon EOS 80D DSLR Camera",
        "image": "/images/camera.jpg",
        "description": "Characterized by versatile imaging specs, the Canon EOS 80D clarifies itself",
        "brand": "Cannon",
        "category": "Electronics",
        "price": 929.99,
        "countInStock": 5,
    },
    {
        "name": "Sony Playstation 4 Pro White Version",
        "image": "/images/playstation.jpg",
        "description": "The ultimate home entertainment center starts with PlayStation",
        "brand": "Sony",
        "category": "Electronics",
        "price": 399.99,
        "countInStock": 11,
    },
    {
        "name": "Logitech G-Series Gaming Mouse",
        "image": "/images/mouse.jpg",
        "description": "Get a better handle on your games with this Logitech LIGHTSYNC gaming mouse",
        "brand": "Logitech",
        "category": "Electronics",
        "price": 49.99,
        "countInStock": 7,
    },
    {
        "name": "Amazon Echo Dot 3rd Generation",
        "image": "/images/alexa.jpg",
        "description": "Meet Echo Dot - Our most popular smart speaker with a fabric design",
        "brand": "Amazon",
        "category": "Electronics",
        "price": 29.99,
        "countInStock": 0,
    },
]

COLLECTIONS = ("order", "product", "user")


def destroy_data(db: Database):
    for name in COLLECTIONS:
        db[name].delete_many({})
    logger.info("Data destroyed")


def import_data(db: Database) -> dict:
    destroy_data(db)

    user_ids = []
    for raw in SAMPLE_USERS:
        user = User(**raw)
        user.email = user.email.lower()
        user.password = hash_password(user.password)
        user_ids.append(create_document(db, "user", user))
    admin_id = database.object_id(user_ids[0])

    for raw in SAMPLE_PRODUCTS:
        doc = Product(**raw).model_dump()
        doc["user"] = admin_id
        create_document(db, "product", doc)

    logger.info("Data imported: %d users, %d products", len(SAMPLE_USERS), len(SAMPLE_PRODUCTS))
    return {"users": len(SAMPLE_USERS), "products": len(SAMPLE_PRODUCTS)}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed or wipe the storefront database")
    parser.add_argument("-d", "--destroy", action="store_true", help="delete all users, products and orders")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        db = database.connect()
        if args.destroy:
            destroy_data(db)
        else:
            import_data(db)
    except Exception:
        logger.exception("Seeding failed")
        return 1
    finally:
        database.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
