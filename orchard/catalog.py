"""
catalog.py - Inventory Catalog of tree SKUs

The catalog is a keyed store of TreeSKU records. It knows nothing about
holders, payment or authorization: the Orchard gates every call and holds the
relevant per-SKU locks. Records are immutable; every change replaces the
record. An internal lock guards the name table so listings can run while
other SKUs are being added or removed.

Operations:
    add()           - create a SKU, or add stock to an existing one
    remove()        - delete a SKU (existing saplings are unaffected)
    update_price()  - replace the unit price (no retroactive repricing)
    get()           - lookup returning None when absent
    take()/restock()- quantity decrement/increment used by plant and return
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, List, Optional
import threading

from .core import (
    TreeSKU, NotFound, Unavailable, MAX_QUANTITY,
    require_amount, require_positive_quantity,
)


class InventoryCatalog:
    """
    Store of tree SKUs keyed by name.

    Example:
        catalog = InventoryCatalog()
        catalog.add("Oak", "SN1", 100, 5)   # True: created
        catalog.add("Oak", "SN9", 999, 2)   # False: stock added, price kept
        catalog.get("Oak").quantity         # 7
    """

    def __init__(self):
        self._skus: Dict[str, TreeSKU] = {}
        self._lock = threading.RLock()

    def __contains__(self, name: str) -> bool:
        return name in self._skus

    def __len__(self) -> int:
        return len(self._skus)

    def names(self) -> List[str]:
        """Sorted SKU names."""
        with self._lock:
            return sorted(self._skus)

    def get(self, name: str) -> Optional[TreeSKU]:
        """Return the SKU record, or None if no SKU with this name exists."""
        return self._skus.get(name)

    def require(self, name: str) -> TreeSKU:
        """Return the SKU record or raise NotFound."""
        sku = self._skus.get(name)
        if sku is None:
            raise NotFound(f"tree {name!r}")
        return sku

    def add(self, name: str, serial: str, price: int, quantity: int) -> bool:
        """
        Create a SKU or add stock to an existing one.

        If the SKU already exists, only its quantity changes; serial and price
        stay as they are (use update_price() to change the price).

        Returns:
            True if a new SKU was created, False if stock was added.

        Raises:
            ValueError: On invalid field values, for new and existing SKUs alike.
            OverflowError: If the resulting quantity would exceed MAX_QUANTITY.
        """
        candidate = TreeSKU(name=name, serial=serial, price=price, quantity=quantity)
        with self._lock:
            existing = self._skus.get(name)
            if existing is None:
                self._skus[name] = candidate
                return True
            self._skus[name] = replace(existing, quantity=self._checked_sum(existing, quantity))
            return False

    def remove(self, name: str) -> TreeSKU:
        """
        Delete a SKU and return the removed record.

        Saplings already planted against the name stay valid; only catalog
        traffic (plant, return) is blocked until the name is added again.
        """
        with self._lock:
            sku = self.require(name)
            del self._skus[name]
            return sku

    def update_price(self, name: str, new_price: int) -> TreeSKU:
        """Replace the unit price. Existing lots keep what they paid."""
        with self._lock:
            sku = self.require(name)
            updated = replace(sku, price=require_amount("price", new_price))
            self._skus[name] = updated
            return updated

    def take(self, name: str, quantity: int) -> TreeSKU:
        """
        Remove `quantity` units from available stock.

        Raises:
            NotFound: If the SKU does not exist.
            Unavailable: If fewer than `quantity` units are available.
        """
        require_positive_quantity(quantity)
        with self._lock:
            sku = self.require(name)
            if sku.quantity < quantity:
                raise Unavailable(name, quantity, sku.quantity)
            updated = replace(sku, quantity=sku.quantity - quantity)
            self._skus[name] = updated
            return updated

    def restock(self, name: str, quantity: int) -> TreeSKU:
        """Return `quantity` units to available stock."""
        require_positive_quantity(quantity)
        with self._lock:
            sku = self.require(name)
            updated = replace(sku, quantity=self._checked_sum(sku, quantity))
            self._skus[name] = updated
            return updated

    @staticmethod
    def _checked_sum(sku: TreeSKU, quantity: int) -> int:
        total = sku.quantity + quantity
        if total > MAX_QUANTITY:
            raise OverflowError(f"{sku.name}: quantity {total} exceeds {MAX_QUANTITY}")
        return total

    def __repr__(self) -> str:
        return f"InventoryCatalog({len(self._skus)} skus)"
