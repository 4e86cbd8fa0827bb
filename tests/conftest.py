"""Shared pytest fixtures: an in-memory store, users, tokens and a test client."""

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import database
from auth import create_token, hash_password
from main import app


@pytest.fixture
def db():
    """A fresh in-memory MongoDB database."""
    return mongomock.MongoClient()["storefront_test"]


@pytest.fixture
def client(db):
    """HTTP client wired to the in-memory database."""
    app.dependency_overrides[database.get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _insert_user(db, name, email, is_admin=False):
    result = db["user"].insert_one({
        "name": name,
        "email": email,
        "password": hash_password("secret123"),
        "isAdmin": is_admin,
    })
    return db["user"].find_one({"_id": result.inserted_id})


@pytest.fixture
def admin_user(db):
    return _insert_user(db, "Admin User", "admin@shop.com", is_admin=True)


@pytest.fixture
def customer(db):
    return _insert_user(db, "John Doe", "john@shop.com")


@pytest.fixture
def other_customer(db):
    return _insert_user(db, "Jane Doe", "jane@shop.com")


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_token(str(admin_user['_id']))}"}


@pytest.fixture
def customer_headers(customer):
    return {"Authorization": f"Bearer {create_token(str(customer['_id']))}"}


@pytest.fixture
def make_product(db):
    """Factory inserting a product document and returning its id as a string."""

    def _make(name="Test product", price=10.0, rating=0, reviews=None, **extra):
        reviews = reviews or []
        doc = {
            "name": name,
            "image": "/images/test.jpg",
            "brand": "Brand",
            "category": "Category",
            "description": "Description",
            "price": price,
            "countInStock": 5,
            "user": ObjectId(),
            "reviews": reviews,
            "numReviews": len(reviews),
            "rating": rating,
        }
        doc.update(extra)
        return str(db["product"].insert_one(doc).inserted_id)

    return _make
