"""In-memory stand-ins for the MongoDB collections the catalog reads."""

from typing import Dict, List, Optional

from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from catalog import ProductSnapshot
from schemas import InventoryRecord, Product


def _matches(doc: dict, flt: dict) -> bool:
    for key, expected in flt.items():
        if isinstance(expected, dict) and "$in" in expected:
            if doc.get(key) not in expected["$in"]:
                return False
        elif doc.get(key) != expected:
            return False
    return True


class FakeCollection:
    def __init__(self):
        self.docs: List[dict] = []

    def insert_one(self, doc: dict) -> ObjectId:
        doc = dict(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return doc["_id"]

    def find(self, flt: Optional[dict] = None):
        return [dict(d) for d in self.docs if _matches(d, flt or {})]

    def find_one(self, flt: Optional[dict] = None):
        found = self.find(flt)
        return found[0] if found else None


class FakeDb:
    def __init__(self):
        self._collections: Dict[str, FakeCollection] = {}

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._collections.setdefault(name, FakeCollection())

    def add_product(self, inventory: Optional[Dict[str, tuple]] = None,
                    images: Optional[List[str]] = None, **fields) -> str:
        doc = {
            "name": "Linen Shirt",
            "category": "Shirts",
            "gender": "Men",
            "color": "White",
            "purchase_price": 40.0,
            "is_purchasable": True,
            "is_rentable": False,
        }
        doc.update(fields)
        product_id = str(self.product.insert_one(doc))
        for size, (buy_stock, rent_stock) in (inventory or {}).items():
            self.inventory.insert_one({
                "product_id": product_id, "size": size,
                "buy_stock": buy_stock, "rent_stock": rent_stock,
            })
        # highest display_order first, so readers must sort
        for order, url in reversed(list(enumerate(images or []))):
            self.product_images.insert_one({
                "product_id": product_id, "image_url": url,
                "image_type": "main", "display_order": order,
            })
        return product_id


class DownCollection:
    def find(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("store unreachable")

    find_one = find


class DownDb:
    def __getattr__(self, name: str) -> DownCollection:
        return DownCollection()


def make_product(**fields) -> Product:
    data = {
        "id": "p1",
        "name": "Velvet Blazer",
        "category": "Blazers",
        "gender": "Women",
        "color": "Black",
        "purchase_price": 80.0,
        "rental_price_daily": 15.0,
        "rental_deposit": 50.0,
        "rental_max_days": 7,
        "is_purchasable": True,
        "is_rentable": True,
        "images": ["https://img.example/blazer.jpg"],
    }
    data.update(fields)
    return Product(**data)


def make_snapshot(stock: Optional[Dict[str, tuple]] = None, **fields) -> ProductSnapshot:
    product = make_product(**fields)
    if stock is None:
        stock = {"S": (2, 1), "M": (5, 2), "L": (0, 0)}
    return ProductSnapshot(
        product=product,
        inventory=[
            InventoryRecord(product_id=product.id, size=size, buy_stock=b, rent_stock=r)
            for size, (b, r) in stock.items()
        ],
    )
