"""
Cart ledgers for the two shopping modes.

Both carts key their lines on (product_id, size). Adding a line that is
already in the buy cart sums the quantities. Adding one that is already
in the rental cart replaces it, keeping only the original line id: a
second rental add means new rental parameters, not a second unit.

Every mutation calls `on_change` with the full line list so the owner
can persist it. Removing or updating a line id that is not present is a
silent no-op.
"""

import logging
from datetime import date
from typing import Callable, Generic, List, Optional, TypeVar

from rental import compute_rental_cost, rental_charge
from schemas import BuyCartLine, CartLine, RentCartLine

logger = logging.getLogger(__name__)

FREE_SHIPPING_THRESHOLD = 50
FLAT_SHIPPING_FEE = 5.99

L = TypeVar("L", BuyCartLine, RentCartLine)

Notify = Callable[[str, Optional[str]], None]


def shipping_cost(amount: float) -> float:
    return 0.0 if amount > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_FEE


def line_total(line: CartLine) -> float:
    """Amount a line contributes to its cart, deposit included for rentals."""
    if isinstance(line, BuyCartLine):
        return round(line.unit_price * line.quantity, 2)
    if isinstance(line, RentCartLine):
        return compute_rental_cost(line.daily_rate, line.duration_days, line.deposit)
    raise TypeError(f"unknown cart line: {type(line).__name__}")


class _Ledger(Generic[L]):
    def __init__(self, lines: Optional[List[L]] = None,
                 on_change: Optional[Callable[[List[L]], None]] = None,
                 notify: Optional[Notify] = None):
        self._lines: List[L] = list(lines or [])
        self._on_change = on_change
        self._notify = notify

    @property
    def lines(self) -> List[L]:
        return list(self._lines)

    @property
    def item_count(self) -> int:
        return len(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self):
        return iter(list(self._lines))

    def get(self, line_id: str) -> Optional[L]:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    def _find(self, product_id: str, size: str) -> int:
        for i, line in enumerate(self._lines):
            if line.product_id == product_id and line.size == size:
                return i
        return -1

    def remove(self, line_id: str) -> None:
        kept = [line for line in self._lines if line.id != line_id]
        if len(kept) == len(self._lines):
            return
        self._lines = kept
        self._changed()

    def clear(self) -> None:
        self._lines = []
        self._changed()

    def _changed(self) -> None:
        if self._on_change:
            self._on_change(list(self._lines))


class BuyCart(_Ledger[BuyCartLine]):
    def add(self, line: BuyCartLine) -> BuyCartLine:
        idx = self._find(line.product_id, line.size)
        if idx >= 0:
            existing = self._lines[idx]
            merged = existing.model_copy(update={"quantity": existing.quantity + line.quantity})
            self._lines[idx] = merged
            result = merged
        else:
            self._lines.append(line)
            result = line
        logger.debug("buy cart: %s (%s) x%d", line.product_id, line.size, result.quantity)
        self._changed()
        if self._notify:
            self._notify("Item added to cart", f"{line.name} ({line.size}) has been added to your cart.")
        return result

    def update_quantity(self, line_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(line_id)
            return
        for i, line in enumerate(self._lines):
            if line.id == line_id:
                self._lines[i] = line.model_copy(update={"quantity": quantity})
                self._changed()
                return

    @property
    def subtotal(self) -> float:
        return round(sum(line.unit_price * line.quantity for line in self._lines), 2)

    @property
    def shipping_cost(self) -> float:
        return shipping_cost(self.subtotal)

    @property
    def total(self) -> float:
        return round(self.subtotal + self.shipping_cost, 2)


class RentCart(_Ledger[RentCartLine]):
    def add(self, line: RentCartLine) -> RentCartLine:
        idx = self._find(line.product_id, line.size)
        if idx >= 0:
            result = line.model_copy(update={"id": self._lines[idx].id})
            self._lines[idx] = result
        else:
            self._lines.append(line)
            result = line
        logger.debug("rental cart: %s (%s) for %d day(s)", line.product_id, line.size, line.duration_days)
        self._changed()
        if self._notify:
            self._notify("Item added to rentals", f"{line.name} ({line.size}) has been added to your rentals.")
        return result

    def update_duration(self, line_id: str, duration_days: int, start_date: date, end_date: date) -> None:
        if duration_days <= 0:
            self.remove(line_id)
            return
        for i, line in enumerate(self._lines):
            if line.id == line_id:
                self._lines[i] = line.model_copy(update={
                    "duration_days": duration_days,
                    "start_date": start_date,
                    "end_date": end_date,
                    "total_price": compute_rental_cost(line.daily_rate, duration_days, line.deposit),
                })
                self._changed()
                return

    @property
    def total_rent_amount(self) -> float:
        return round(sum(rental_charge(line.daily_rate, line.duration_days) for line in self._lines), 2)

    @property
    def total_deposit(self) -> float:
        return round(sum(line.deposit for line in self._lines), 2)

    @property
    def shipping_cost(self) -> float:
        return shipping_cost(self.total_rent_amount)

    @property
    def total_payment(self) -> float:
        return round(self.total_rent_amount + self.total_deposit + self.shipping_cost, 2)
