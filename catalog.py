"""
Catalog store adapter.

Everything read from MongoDB passes through here and comes out as
validated records from `schemas`. Nothing past this module sees a raw
document. Store failures and malformed rows surface as CatalogError.
"""

import logging
from typing import Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, Field, ValidationError, model_validator
from pymongo.errors import PyMongoError

from errors import CatalogError, ProductNotFound
from mode import catalog_filter, price_of
from schemas import InventoryRecord, Product, ProductImage, Profile, ShoppingMode

logger = logging.getLogger(__name__)

MAX_PRICE_FILTER = 500


def _fields(doc: dict, expose_id: bool = False) -> dict:
    """Document fields without Mongo's `_id`, optionally kept as a string `id`."""
    fields = {k: v for k, v in doc.items() if k != "_id"}
    if expose_id and "_id" in doc:
        fields["id"] = str(doc["_id"])
    return fields


class ProductSnapshot(BaseModel):
    """A product with its per-size inventory and images, as fetched together."""
    product: Product
    inventory: List[InventoryRecord] = Field(default_factory=list)
    images: List[ProductImage] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_record_per_size(self):
        sizes = [rec.size for rec in self.inventory]
        if len(sizes) != len(set(sizes)):
            raise ValueError(f"duplicate inventory records for product {self.product.id}")
        return self

    def record(self, size: str) -> Optional[InventoryRecord]:
        for rec in self.inventory:
            if rec.size == size:
                return rec
        return None

    def stock(self, size: str, mode: ShoppingMode) -> int:
        rec = self.record(size)
        if rec is None:
            return 0
        return rec.buy_stock if mode is ShoppingMode.BUY else rec.rent_stock


class CatalogFilters(BaseModel):
    search: str = ""
    categories: List[str] = Field(default_factory=list)
    genders: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    min_price: float = 0
    max_price: float = MAX_PRICE_FILTER

    def matches(self, product: Product, mode: ShoppingMode) -> bool:
        if self.search and self.search.lower() not in product.name.lower():
            return False
        if self.categories and product.category not in self.categories:
            return False
        if self.genders and product.gender not in self.genders:
            return False
        if self.colors and product.color not in self.colors:
            return False
        price = price_of(product, mode)
        return self.min_price <= price <= self.max_price


class CatalogStore:
    def __init__(self, db):
        self.db = db

    def _require_db(self):
        if self.db is None:
            raise CatalogError("Database unavailable")
        return self.db

    def get_product(self, product_id: str) -> ProductSnapshot:
        db = self._require_db()
        oid = ObjectId(product_id)
        try:
            doc = db.product.find_one({"_id": oid})
            if not doc:
                raise ProductNotFound(product_id)
            inventory = list(db.inventory.find({"product_id": product_id}))
            images = list(db.product_images.find({"product_id": product_id}))
        except PyMongoError as e:
            logger.exception("Error fetching product %s", product_id)
            raise CatalogError("Failed to load product details") from e

        images.sort(key=lambda img: img.get("display_order", 0))
        try:
            image_records = [ProductImage(**_fields(img)) for img in images]
            product = Product(**{**_fields(doc, expose_id=True), "images": [img.image_url for img in image_records]})
            return ProductSnapshot(
                product=product,
                inventory=[InventoryRecord(**_fields(rec)) for rec in inventory],
                images=image_records,
            )
        except ValidationError as e:
            logger.error("Malformed catalog row for product %s: %s", product_id, e)
            raise CatalogError("Failed to load product details") from e

    def list_products(self, mode: ShoppingMode, filters: Optional[CatalogFilters] = None) -> List[Product]:
        db = self._require_db()
        filters = filters or CatalogFilters()
        try:
            docs = [_fields(d, expose_id=True) for d in db.product.find(catalog_filter(mode))]
            ids = [d["id"] for d in docs]
            images: Dict[str, List[dict]] = {}
            for img in db.product_images.find({"product_id": {"$in": ids}}):
                images.setdefault(img["product_id"], []).append(img)
        except PyMongoError as e:
            logger.exception("Error fetching products")
            raise CatalogError("Failed to load products") from e

        products = []
        for doc in docs:
            found = sorted(images.get(doc["id"], []), key=lambda img: img.get("display_order", 0))
            try:
                image_records = [ProductImage(**_fields(img)) for img in found]
                product = Product(**{**doc, "images": [img.image_url for img in image_records]})
            except ValidationError as e:
                # malformed rows are dropped from listings
                logger.warning("Skipping malformed product %s: %s", doc["id"], e)
                continue
            if filters.matches(product, mode):
                products.append(product)
        return products

    def get_profile(self, user_id: str) -> Optional[Profile]:
        db = self._require_db()
        try:
            doc = db.profiles.find_one({"id": user_id})
        except PyMongoError as e:
            logger.exception("Error fetching user profile %s", user_id)
            raise CatalogError("Failed to load profile") from e
        if not doc:
            return None
        try:
            return Profile(**_fields(doc))
        except ValidationError as e:
            raise CatalogError("Malformed profile") from e
