"""Tests for the catalog store adapter."""

import pytest
from bson import ObjectId
from bson.errors import InvalidId

from catalog import CatalogFilters, CatalogStore
from errors import CatalogError, ProductNotFound
from schemas import ShoppingMode
from tests.helpers import DownDb, FakeDb, make_product

BUY = ShoppingMode.BUY
RENT = ShoppingMode.RENT


@pytest.fixture
def db():
    return FakeDb()


class TestGetProduct:
    def test_snapshot_with_inventory_and_sorted_images(self, db):
        pid = db.add_product(inventory={"S": (1, 0), "M": (0, 2)}, images=["front.jpg", "back.jpg"])
        snapshot = CatalogStore(db).get_product(pid)
        assert snapshot.product.id == pid
        assert snapshot.product.images == ["front.jpg", "back.jpg"]
        assert snapshot.stock("S", BUY) == 1
        assert snapshot.stock("M", RENT) == 2
        assert snapshot.stock("XL", BUY) == 0

    def test_not_found(self, db):
        with pytest.raises(ProductNotFound):
            CatalogStore(db).get_product(str(ObjectId()))

    def test_invalid_id(self, db):
        with pytest.raises(InvalidId):
            CatalogStore(db).get_product("not-an-id")

    def test_rentable_without_rates_is_rejected(self, db):
        pid = db.add_product(is_rentable=True)
        with pytest.raises(CatalogError):
            CatalogStore(db).get_product(pid)

    def test_duplicate_inventory_rows_rejected(self, db):
        pid = db.add_product(inventory={"M": (1, 1)})
        db.inventory.insert_one({"product_id": pid, "size": "M", "buy_stock": 3, "rent_stock": 0})
        with pytest.raises(CatalogError):
            CatalogStore(db).get_product(pid)

    def test_store_down(self):
        with pytest.raises(CatalogError):
            CatalogStore(DownDb()).get_product(str(ObjectId()))

    def test_no_database(self):
        with pytest.raises(CatalogError):
            CatalogStore(None).get_product(str(ObjectId()))


class TestListProducts:
    def test_mode_selects_subset(self, db):
        db.add_product(name="Shirt", is_purchasable=True)
        db.add_product(name="Gown", is_purchasable=False, is_rentable=True,
                       rental_price_daily=20.0, rental_deposit=80.0, rental_max_days=4)
        store = CatalogStore(db)
        assert [p.name for p in store.list_products(BUY)] == ["Shirt"]
        assert [p.name for p in store.list_products(RENT)] == ["Gown"]

    def test_filters(self, db):
        db.add_product(name="Red Kurta", category="Ethnic", color="Red", purchase_price=30.0)
        db.add_product(name="Blue Jeans", category="Jeans", color="Blue", purchase_price=60.0)
        store = CatalogStore(db)
        assert [p.name for p in store.list_products(BUY, CatalogFilters(search="kurta"))] == ["Red Kurta"]
        assert [p.name for p in store.list_products(BUY, CatalogFilters(colors=["Blue"]))] == ["Blue Jeans"]
        assert [p.name for p in store.list_products(BUY, CatalogFilters(max_price=50))] == ["Red Kurta"]

    def test_malformed_rows_are_skipped(self, db):
        db.add_product(name="Good")
        db.product.insert_one({"name": "Bad", "is_purchasable": True})
        assert [p.name for p in CatalogStore(db).list_products(BUY)] == ["Good"]

    def test_image_row_without_url_skips_only_its_product(self, db):
        db.add_product(name="Shirt")
        broken = db.add_product(name="Broken image")
        db.product_images.insert_one({"product_id": broken, "display_order": 0})
        assert [p.name for p in CatalogStore(db).list_products(BUY)] == ["Shirt"]

    def test_ids_are_exposed_as_strings(self, db):
        pid = db.add_product(name="Shirt")
        [product] = CatalogStore(db).list_products(BUY)
        assert product.id == pid
        assert "_id" not in product.model_dump()

    def test_store_down(self):
        with pytest.raises(CatalogError):
            CatalogStore(DownDb()).list_products(BUY)


class TestFilters:
    def test_rent_price_uses_daily_rate(self):
        product = make_product(purchase_price=300.0, rental_price_daily=20.0)
        filters = CatalogFilters(max_price=100)
        assert filters.matches(product, RENT)
        assert not filters.matches(product, BUY)

    def test_gender_and_category(self):
        product = make_product(gender="Women", category="Blazers")
        assert CatalogFilters(genders=["Women"], categories=["Blazers"]).matches(product, BUY)
        assert not CatalogFilters(genders=["Men"]).matches(product, BUY)


class TestProfiles:
    def test_admin_role(self, db):
        db.profiles.insert_one({"id": "u1", "role": "admin"})
        assert CatalogStore(db).get_profile("u1").is_admin

    def test_missing_profile(self, db):
        assert CatalogStore(db).get_profile("ghost") is None
