"""
saplings.py - Ownership Ledger of planted lots

Each holder owns an ordered arena of Sapling slots. Slots are appended and
never physically removed: a lot whose quantity reaches zero is tombstoned in
place (live=False), so positions and lot ids stay stable while scans skip it.

Lot selection is first-match: the first live lot, in insertion order, whose
name matches and whose quantity covers the request. There is no best-fit
search and no merging across lots.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional
import threading

from .core import Sapling, require_amount, require_positive_quantity


def first_match(
    lots: Iterable[Sapling],
    sku_name: str,
    min_quantity: int = 1,
) -> Optional[Sapling]:
    """
    Return the first live lot for `sku_name` holding at least `min_quantity`.

    Tombstoned lots never match, whatever their name.
    """
    for lot in lots:
        if lot.live and lot.sku_name == sku_name and lot.quantity >= min_quantity:
            return lot
    return None


class SaplingBook:
    """
    Per-holder lot arenas for one orchard.

    The book only enforces lot-level invariants (quantity never negative,
    tombstone at zero, price kept at unit_price * quantity). Authorization,
    catalog interaction and per-key locking are the Orchard's job. The book's
    own lock guards lot id assignment and every walk over the holder table.
    """

    def __init__(self):
        self._lots: Dict[str, List[Sapling]] = defaultdict(list)
        self._next_lot_id: int = 0
        self._lock = threading.RLock()

    def append(
        self,
        holder: str,
        sku_name: str,
        price: int,
        quantity: int,
        planted_at: datetime,
    ) -> Sapling:
        """Create a new live lot at the end of the holder's sequence."""
        require_positive_quantity(quantity)
        require_amount("price", price)
        with self._lock:
            lot = Sapling(
                lot_id=self._next_lot_id,
                sku_name=sku_name,
                price=price,
                quantity=quantity,
                planted_at=planted_at,
            )
            self._next_lot_id += 1
            self._lots[holder].append(lot)
        return lot

    def find_first(self, holder: str, sku_name: str, min_quantity: int = 1) -> Optional[Sapling]:
        """First-match scan over the holder's lots. Returns the stored lot, not a copy."""
        with self._lock:
            return first_match(self._lots.get(holder, ()), sku_name, min_quantity)

    def decrement(self, lot: Sapling, quantity: int) -> int:
        """
        Take `quantity` units out of a lot.

        The per-unit price is computed from the lot before it shrinks, then
        the lot's total price is reduced by unit_price * quantity. A lot that
        reaches zero is tombstoned.

        Args:
            lot: A live lot previously returned by find_first().
            quantity: Units to take; must not exceed the lot's quantity.

        Returns:
            The per-unit price used.

        Raises:
            ValueError: If the lot is tombstoned or too small.
            ZeroQuantityLot: If the lot is empty (unreachable through find_first).
        """
        require_positive_quantity(quantity)
        with self._lock:
            if not lot.live:
                raise ValueError(f"lot {lot.lot_id} is no longer live")
            if quantity > lot.quantity:
                raise ValueError(f"lot {lot.lot_id} holds {lot.quantity}, cannot take {quantity}")
            unit_price = lot.unit_price()
            lot.quantity -= quantity
            lot.price -= unit_price * quantity
            if lot.quantity == 0:
                lot.price = 0
                lot.live = False
        return unit_price

    def restore(self, lot: Sapling, quantity: int, unit_price: int) -> None:
        """Undo a decrement(), reviving the lot if it had been tombstoned."""
        require_positive_quantity(quantity)
        with self._lock:
            lot.quantity += quantity
            lot.price += unit_price * quantity
            lot.live = True

    def saplings_of(self, holder: str, include_tombstoned: bool = False) -> List[Sapling]:
        """Copies of the holder's lots in insertion order."""
        with self._lock:
            return [
                replace(lot)
                for lot in self._lots.get(holder, ())
                if include_tombstoned or lot.live
            ]

    def holders(self) -> List[str]:
        """Sorted identities that have ever held a lot."""
        with self._lock:
            return sorted(h for h, lots in self._lots.items() if lots)

    def total_quantity(self, sku_name: str, holder: Optional[str] = None) -> int:
        """Units held in live lots for a SKU, for one holder or across all."""
        with self._lock:
            holders = [holder] if holder is not None else list(self._lots)
            return sum(
                lot.quantity
                for h in holders
                for lot in self._lots.get(h, ())
                if lot.live and lot.sku_name == sku_name
            )

    def sku_names(self) -> List[str]:
        """Sorted SKU names with at least one live lot."""
        with self._lock:
            return sorted({
                lot.sku_name
                for lots in self._lots.values()
                for lot in lots
                if lot.live
            })
