"""
Mode Switch

The active transaction type, buy or rent. It picks which catalog subset,
which price field and which cart apply. Transitions happen only on an
explicit user action, except that viewing a product only offered in the
other mode switches over to that mode.
"""

import logging
from typing import Callable, Optional

from schemas import Product, ShoppingMode

logger = logging.getLogger(__name__)


def catalog_filter(mode: ShoppingMode) -> dict:
    if mode is ShoppingMode.BUY:
        return {"is_purchasable": True}
    return {"is_rentable": True}


def price_of(product: Product, mode: ShoppingMode) -> float:
    if mode is ShoppingMode.BUY:
        return product.purchase_price
    return product.rental_price_daily or 0


class ModeSwitch:
    def __init__(self, mode: ShoppingMode = ShoppingMode.BUY,
                 on_change: Optional[Callable[[ShoppingMode], None]] = None):
        self._mode = mode
        self._on_change = on_change

    @property
    def mode(self) -> ShoppingMode:
        return self._mode

    def set(self, mode: ShoppingMode) -> None:
        mode = ShoppingMode(mode)
        if mode is self._mode:
            return
        self._mode = mode
        logger.debug("Shopping mode set to %s", mode.value)
        if self._on_change:
            self._on_change(mode)

    def toggle(self) -> ShoppingMode:
        self.set(self._mode.other)
        return self._mode

    def resolve_for_product(self, product: Product) -> Optional[ShoppingMode]:
        """Switch to the other mode if the product is only offered there.

        Returns the new mode when a switch happened, else None.
        """
        current, other = self._mode, self._mode.other
        if offered_in(product, current) or not offered_in(product, other):
            return None
        logger.info("Product %s only available to %s, switching mode", product.id, other.value)
        self.set(other)
        return other


def offered_in(product: Product, mode: ShoppingMode) -> bool:
    return product.is_purchasable if mode is ShoppingMode.BUY else product.is_rentable
