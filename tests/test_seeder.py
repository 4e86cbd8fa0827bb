"""Tests for the seed/reset tool."""

from pymongo.errors import ServerSelectionTimeoutError

import database
import seeder
from auth import verify_password


class TestImportData:
    def test_loads_users_and_products(self, db):
        counts = seeder.import_data(db)

        assert counts == {"users": 3, "products": len(seeder.SAMPLE_PRODUCTS)}
        admin = db["user"].find_one({"isAdmin": True})
        assert admin["email"] == "admin@shop.com"
        assert verify_password("123456", admin["password"])
        assert db["product"].count_documents({"user": admin["_id"]}) == len(seeder.SAMPLE_PRODUCTS)

    def test_products_start_without_reviews(self, db):
        seeder.import_data(db)
        for product in db["product"].find():
            assert product["reviews"] == []
            assert product["numReviews"] == 0
            assert product["rating"] == 0

    def test_replaces_existing_data(self, db):
        db["order"].insert_one({"user": "someone"})
        seeder.import_data(db)
        seeder.import_data(db)
        assert db["order"].count_documents({}) == 0
        assert db["user"].count_documents({}) == 3


class TestDestroyData:
    def test_empties_collections(self, db):
        seeder.import_data(db)
        seeder.destroy_data(db)
        for name in seeder.COLLECTIONS:
            assert db[name].count_documents({}) == 0


class TestMain:
    def test_destroy_flag(self, db, monkeypatch):
        seeder.import_data(db)
        monkeypatch.setattr(database, "connect", lambda: db)

        assert seeder.main(["-d"]) == 0
        assert db["product"].count_documents({}) == 0

    def test_default_imports(self, db, monkeypatch):
        monkeypatch.setattr(database, "connect", lambda: db)
        assert seeder.main([]) == 0
        assert db["product"].count_documents({}) == len(seeder.SAMPLE_PRODUCTS)

    def test_failure_exits_non_zero(self, monkeypatch):
        def unreachable():
            raise ServerSelectionTimeoutError("no servers")

        monkeypatch.setattr(database, "connect", unreachable)
        assert seeder.main([]) == 1
