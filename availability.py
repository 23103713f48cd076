"""
Availability Evaluator

Decides whether a product can be shown or added under the active mode,
and which of its sizes still have stock. A size with no inventory record
counts as zero stock.
"""

from typing import List, Set, Tuple

from catalog import ProductSnapshot
from errors import ValidationFailure
from mode import offered_in
from schemas import SIZES, Product, ShoppingMode


def is_available(product: Product, mode: ShoppingMode) -> bool:
    return offered_in(product, mode)


def is_out_of_stock(snapshot: ProductSnapshot, size: str, mode: ShoppingMode) -> bool:
    return snapshot.stock(size, mode) <= 0


def available_sizes(snapshot: ProductSnapshot, mode: ShoppingMode) -> Set[str]:
    if not is_available(snapshot.product, mode):
        return set()
    return {rec.size for rec in snapshot.inventory if snapshot.stock(rec.size, mode) > 0}


def size_options(snapshot: ProductSnapshot, mode: ShoppingMode) -> List[Tuple[str, bool]]:
    """(size, out_of_stock) for every size a picker shows, in display order."""
    if not is_available(snapshot.product, mode):
        return []
    return [(size, is_out_of_stock(snapshot, size, mode)) for size in SIZES]


def check_stock(snapshot: ProductSnapshot, size: str, mode: ShoppingMode, quantity: int = 1) -> None:
    if not size:
        raise ValidationFailure("Please select a size")

    record = snapshot.record(size)
    if record is None:
        raise ValidationFailure("Size not available")

    needed = quantity if mode is ShoppingMode.BUY else 1
    stock = snapshot.stock(size, mode)
    if stock < needed:
        raise ValidationFailure(
            "Not enough stock",
            f"Only {stock} item(s) available for this size.",
        )
