"""
Client session: the shopping mode, both carts and the notifications
raised while handling a user action.

A session reads its three storage keys once when constructed and writes
the affected key after every mutation. Product-page flows (viewing a
product, adding it to a cart, changing a rental period) live here since
they combine the availability checks, the rental calculator and the
ledgers.
"""

import logging
import os
import threading
import uuid
from collections import OrderedDict
from datetime import date
from typing import Callable, List, Literal, Optional

from pydantic import BaseModel, Field

from availability import available_sizes, check_stock, is_available, size_options
from cart import BuyCart, RentCart
from catalog import ProductSnapshot
from errors import ValidationFailure
from mode import ModeSwitch, price_of
from rental import (
    RENTAL_DURATION_PRESETS,
    clamp_duration,
    compute_end_date,
    compute_rental_cost,
    validate_start_date,
)
from schemas import SIZES, BuyCartLine, Product, RentCartLine, ShoppingMode
from storage import (
    BUY_CART_KEY,
    MODE_KEY,
    RENT_CART_KEY,
    LocalStorage,
    dump_lines,
    load_lines,
)

logger = logging.getLogger(__name__)

MAX_OPEN_SESSIONS = int(os.getenv("MAX_OPEN_SESSIONS", "1024"))


class Notification(BaseModel):
    title: str
    description: Optional[str] = None
    variant: Literal["default", "destructive"] = "default"


class SizeOption(BaseModel):
    size: str
    out_of_stock: bool


class ProductView(BaseModel):
    product: Product
    mode: ShoppingMode
    available: bool
    price: float
    deposit: Optional[float] = None
    rental_max_days: Optional[int] = None
    duration_presets: List[int] = Field(default_factory=list)
    sizes: List[SizeOption] = Field(default_factory=list)
    available_sizes: List[str] = Field(default_factory=list)


class StoreSession:
    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self._notifications: List[Notification] = []

        saved_mode = storage.get(MODE_KEY)
        mode = ShoppingMode.BUY
        if saved_mode in (ShoppingMode.BUY.value, ShoppingMode.RENT.value):
            mode = ShoppingMode(saved_mode)

        self.mode = ModeSwitch(mode, on_change=self._save_mode)
        self.buy_cart = BuyCart(
            load_lines(storage.get(BUY_CART_KEY), "buy"),
            on_change=lambda lines: storage.set(BUY_CART_KEY, dump_lines(lines)),
            notify=self.notify,
        )
        self.rent_cart = RentCart(
            load_lines(storage.get(RENT_CART_KEY), "rent"),
            on_change=lambda lines: storage.set(RENT_CART_KEY, dump_lines(lines)),
            notify=self.notify,
        )

    def _save_mode(self, mode: ShoppingMode) -> None:
        self.storage.set(MODE_KEY, mode.value)

    # notifications

    def notify(self, title: str, description: Optional[str] = None, variant: str = "default") -> None:
        self._notifications.append(Notification(title=title, description=description, variant=variant))

    def drain_notifications(self) -> List[Notification]:
        pending, self._notifications = self._notifications, []
        return pending

    # product page

    def view_product(self, snapshot: ProductSnapshot) -> ProductView:
        product = snapshot.product
        switched = self.mode.resolve_for_product(product)
        if switched is not None:
            label = "Rent" if switched is ShoppingMode.RENT else "Buy"
            self.notify(f"Viewing in {label} mode", f"This item is only available to {switched.value}.")

        mode = self.mode.mode
        rent = mode is ShoppingMode.RENT
        sizes = available_sizes(snapshot, mode)
        return ProductView(
            product=product,
            mode=mode,
            available=is_available(product, mode),
            price=price_of(product, mode),
            deposit=product.rental_deposit if rent else None,
            rental_max_days=product.rental_max_days if rent else None,
            duration_presets=_presets(product.rental_max_days) if rent else [],
            sizes=[SizeOption(size=s, out_of_stock=oos) for s, oos in size_options(snapshot, mode)],
            available_sizes=[s for s in SIZES if s in sizes] + sorted(sizes - set(SIZES)),
        )

    def add_to_buy_cart(self, snapshot: ProductSnapshot, size: Optional[str], quantity: int = 1) -> BuyCartLine:
        product = snapshot.product
        if not is_available(product, ShoppingMode.BUY):
            raise ValidationFailure("Not available", "This item is not available to buy.")
        if quantity < 1:
            raise ValidationFailure("Please select a quantity")
        check_stock(snapshot, size, ShoppingMode.BUY, quantity)

        line = BuyCartLine(
            id=str(uuid.uuid4()),
            product_id=product.id,
            name=product.name,
            size=size,
            unit_price=product.purchase_price,
            quantity=quantity,
            image=product.image,
        )
        return self.buy_cart.add(line)

    def add_to_rent_cart(self, snapshot: ProductSnapshot, size: Optional[str], duration_days: int,
                         start_date: Optional[date] = None, today: Optional[date] = None) -> RentCartLine:
        product = snapshot.product
        if not is_available(product, ShoppingMode.RENT):
            raise ValidationFailure("Not available", "This item is not available to rent.")
        check_stock(snapshot, size, ShoppingMode.RENT)
        if duration_days < 1:
            raise ValidationFailure("Please select rental dates")
        today = today or date.today()
        start_date = start_date or today
        validate_start_date(start_date, today)

        days = self._clamp(duration_days, product.rental_max_days)

        line = RentCartLine(
            id=str(uuid.uuid4()),
            product_id=product.id,
            name=product.name,
            size=size,
            daily_rate=product.rental_price_daily,
            deposit=product.rental_deposit,
            duration_days=days,
            start_date=start_date,
            end_date=compute_end_date(start_date, days),
            total_price=compute_rental_cost(product.rental_price_daily, days, product.rental_deposit),
            max_days=product.rental_max_days,
            image=product.image,
        )
        return self.rent_cart.add(line)

    # rental cart page

    def change_rental_period(self, line_id: str, duration_days: int, start_date: date,
                             today: Optional[date] = None) -> Optional[RentCartLine]:
        if duration_days <= 0:
            self.rent_cart.remove(line_id)
            return None
        validate_start_date(start_date, today)
        line = self.rent_cart.get(line_id)
        if line is None:
            return None
        days = self._clamp(duration_days, line.max_days)
        self.rent_cart.update_duration(line_id, days, start_date, compute_end_date(start_date, days))
        return self.rent_cart.get(line_id)

    def _clamp(self, duration_days: int, max_days: Optional[int]) -> int:
        days, clamped = clamp_duration(duration_days, max_days)
        if clamped:
            self.notify(
                f"Maximum rental period is {days} days",
                "The rental duration has been adjusted.",
            )
        return days


def _presets(max_days: Optional[int]) -> List[int]:
    return [d for d in RENTAL_DURATION_PRESETS if not max_days or d <= max_days]


class SessionRegistry:
    """Open sessions by client session id, at most `max_open` kept in memory.

    The least recently used session is dropped first. Its state is already
    in storage, so the next request for that id reloads it.
    """

    def __init__(self, storage_factory: Callable[[str], LocalStorage], max_open: int = MAX_OPEN_SESSIONS):
        self._storage_factory = storage_factory
        self._max_open = max_open
        self._sessions: "OrderedDict[str, StoreSession]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> StoreSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
                return session
            session = StoreSession(self._storage_factory(session_id))
            self._sessions[session_id] = session
            logger.debug("Opened session %s", session_id)
            while len(self._sessions) > self._max_open:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug("Closed idle session %s", evicted)
            return session
