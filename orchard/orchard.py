"""
orchard.py - Stateful tree inventory and ownership ledger

The Orchard class is the central state manager of the system. It is the only
object that mutates the catalog, the sapling book and the reward registry.

Key responsibilities:
    - Implements the OrchardView protocol for read-only access by pure functions
    - Gates admin operations on the Authorizer collaborator
    - Runs plant / transfer / return / claim under per-SKU and per-holder locks
    - Validates everything before mutating: a failed call leaves no trace
    - Writes a Notification for every state change to the sink
    - Tracks logical time (advance_time) for planting timestamps and rewards
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import threading

import structlog

from .core import (
    # Types
    TreeSKU, Sapling, RewardSnapshot, Notification, EventType,
    Authorizer, Custodian, NotificationSink,
    # Constants
    REWARD_INTERVAL, SYSTEM_IDENTITY,
    # Exceptions
    Unauthorized, InvalidAddress, NotFound, Unavailable, InsufficientPayment,
    InsufficientFunds, PaymentFailed,
    # Helpers
    require_amount, require_positive_quantity, is_null_identity,
)
from .catalog import InventoryCatalog
from .saplings import SaplingBook
from .rewards import RewardRegistry, calculate_reward
from .collaborators import RecordingSink
from .locks import KeyedLocks, CUSTODY_KEY, sku_key, holder_key

logger = structlog.get_logger(__name__)


class Orchard:
    """
    Tree inventory, sapling ownership and reward bookkeeping.

    Implements the OrchardView protocol, so the orchard itself can be passed
    to calculate_reward() and other read-only functions.

    Design Principles:
        - Check, then mutate: every precondition is verified before the first
          write, so errors leave state unchanged.
        - Mutual exclusion: mutating calls hold the locks of every SKU and
          holder they touch; reentrant calls on the same thread are rejected.
        - Payment before restock: a return only puts stock back once the
          custodian confirms the refund, and restores the lot if it does not.

    Example:
        orchard = Orchard("main", StaticAuthorizer({"owner"}), InMemoryCustody())
        orchard.add_tree("owner", "Oak", "SN1", 100, 5)
        orchard.plant("alice", "Oak", 2, 200)
        orchard.transfer("alice", "bob", "Oak", 1)
        orchard.return_saplings("alice", "Oak", 1)
    """

    def __init__(
        self,
        name: str,
        authorizer: Authorizer,
        custodian: Custodian,
        sink: Optional[NotificationSink] = None,
        initial_time: Optional[datetime] = None,
        reward_interval: timedelta = REWARD_INTERVAL,
    ):
        """
        Create an orchard.

        Args:
            name: Orchard identifier (appears in notifications and logs)
            authorizer: Decides who may add, remove and reprice trees
            custodian: Holds payments and pays refunds
            sink: Notification sink (default: a new RecordingSink)
            initial_time: Starting logical time (default: 1970-01-01)
            reward_interval: Length of one reward accrual period
        """
        self.name = name
        self.authorizer = authorizer
        self.custodian = custodian
        self.sink = sink if sink is not None else RecordingSink()
        self.reward_interval = reward_interval
        self.catalog = InventoryCatalog()
        self.saplings = SaplingBook()
        self.rewards = RewardRegistry()
        self._locks = KeyedLocks()
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self._next_sequence: int = 0
        self._sequence_lock = threading.Lock()
        self._log = logger.bind(orchard=name)

    # ========================================================================
    # OrchardView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the orchard."""
        return self._current_time

    def get_tree(self, name: str) -> Optional[TreeSKU]:
        """Return the SKU record, or None if it does not exist. Never raises."""
        with self._locks.hold(sku_key(name)):
            return self.catalog.get(name)

    def saplings_of(self, holder: str) -> List[Sapling]:
        """Copies of the holder's live lots in insertion order."""
        with self._locks.hold(holder_key(holder)):
            return self.saplings.saplings_of(holder)

    def get_reward(self, holder: str, sku_name: str) -> Optional[RewardSnapshot]:
        """Latest claimed reward snapshot, or None if never claimed."""
        with self._locks.hold(holder_key(holder)):
            return self.rewards.get(holder, sku_name)

    def list_trees(self) -> List[TreeSKU]:
        """All catalog records, sorted by name."""
        return [sku for sku in (self.catalog.get(n) for n in self.catalog.names()) if sku]

    def planted_quantity(self, sku_name: str) -> int:
        """Units of a SKU held in live lots across all holders."""
        return self.saplings.total_quantity(sku_name)

    def verify_stock(self, expected: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        """
        Check that catalog stock plus planted stock matches expected totals.

        Planting moves units from the catalog into a lot, transfers move units
        between lots and returns move them back; none of these create or
        destroy units. Only add_tree() and remove_tree() change the totals.

        Args:
            expected: Optional dict mapping SKU name to expected total units.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every expected total matches
            - 'supplies': Dict[str, int] - catalog + planted units per SKU
            - 'discrepancies': List[Dict] - sku, expected, actual, difference
        """
        names = set(self.catalog.names()) | set(self.saplings.sku_names())
        if expected:
            names |= set(expected)
        supplies: Dict[str, int] = {}
        discrepancies = []
        for name in sorted(names):
            sku = self.catalog.get(name)
            available = sku.quantity if sku else 0
            supplies[name] = available + self.saplings.total_quantity(name)
            if expected and name in expected and supplies[name] != expected[name]:
                discrepancies.append({
                    'sku': name,
                    'expected': expected[name],
                    'actual': supplies[name],
                    'difference': supplies[name] - expected[name],
                })
        return {
            'valid': not discrepancies,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the orchard's logical clock.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # NOTIFICATIONS
    # ========================================================================

    def _emit(self, event_type: EventType, **payload: Any) -> Notification:
        with self._sequence_lock:
            sequence = self._next_sequence
            self._next_sequence += 1
        notification = Notification(
            event_type=event_type,
            timestamp=self._current_time,
            sequence_number=sequence,
            orchard=self.name,
            payload=tuple(payload.items()),
        )
        self.sink.emit(notification)
        return notification

    def _require_admin(self, caller: str, action: str) -> None:
        if not self.authorizer.is_administrator(caller):
            self._log.warning("unauthorized", caller=caller, action=action)
            raise Unauthorized(caller, action)

    # ========================================================================
    # CATALOG ADMINISTRATION (Mutating)
    # ========================================================================

    def add_tree(self, caller: str, name: str, serial: str, price: int, quantity: int) -> TreeSKU:
        """
        Add a new tree SKU, or add stock to an existing one.

        For an existing SKU only the quantity changes; serial and price are
        left as they are.

        Returns:
            The SKU record after the call.

        Raises:
            Unauthorized: If caller is not an administrator
        """
        self._require_admin(caller, "add_tree")
        with self._locks.exclusive("add_tree", sku_key(name)):
            created = self.catalog.add(name, serial, price, quantity)
            sku = self.catalog.get(name)
            if created:
                self._emit(EventType.SKU_ADDED, name=name, serial=serial,
                           price=price, quantity=quantity)
                self._log.info("tree_added", sku=name, serial=serial, price=price,
                               quantity=quantity)
            else:
                self._emit(EventType.SKU_RESTOCKED, name=name, added=quantity,
                           quantity=sku.quantity)
                self._log.info("tree_restocked", sku=name, added=quantity,
                               quantity=sku.quantity)
            return sku

    def remove_tree(self, caller: str, name: str) -> TreeSKU:
        """
        Remove a tree SKU from the catalog.

        Saplings already planted against it remain valid and transferable.

        Raises:
            Unauthorized: If caller is not an administrator
            NotFound: If the SKU does not exist
        """
        self._require_admin(caller, "remove_tree")
        with self._locks.exclusive("remove_tree", sku_key(name)):
            removed = self.catalog.remove(name)
            self._emit(EventType.SKU_REMOVED, name=name, serial=removed.serial)
            self._log.info("tree_removed", sku=name)
            return removed

    def update_price(self, caller: str, name: str, new_price: int) -> TreeSKU:
        """
        Replace a SKU's unit price. Existing lots are not repriced.

        Raises:
            Unauthorized: If caller is not an administrator
            NotFound: If the SKU does not exist
        """
        self._require_admin(caller, "update_price")
        with self._locks.exclusive("update_price", sku_key(name)):
            old_price = self.catalog.require(name).price
            updated = self.catalog.update_price(name, new_price)
            self._emit(EventType.PRICE_UPDATED, name=name, old_price=old_price,
                       new_price=updated.price)
            self._log.info("price_updated", sku=name, old_price=old_price,
                           new_price=updated.price)
            return updated

    # ========================================================================
    # PAYMENTS (Mutating)
    # ========================================================================

    def receive_payment(self, sender: str, amount: int) -> None:
        """Accept an inbound payment that is not tied to a plant call."""
        require_amount("amount", amount)
        with self._locks.exclusive("receive_payment", CUSTODY_KEY):
            self.custodian.deposit(sender, amount)
            self._emit(EventType.PAYMENT_RECEIVED, sender=sender,
                       recipient=SYSTEM_IDENTITY, amount=amount)
            self._log.info("payment_received", sender=sender, amount=amount)

    # ========================================================================
    # SAPLING PROTOCOL (Mutating)
    # ========================================================================

    def plant(self, caller: str, sku_name: str, quantity: int, payment: int) -> Sapling:
        """
        Reserve `quantity` units of a SKU against `payment`.

        Checks, in order: the SKU exists, enough stock is available, and the
        payment covers price * quantity. Overpayment is kept without change.

        Returns:
            A copy of the new lot.

        Raises:
            NotFound: If the SKU does not exist
            Unavailable: If available stock is below `quantity`
            InsufficientPayment: If payment < price * quantity
        """
        require_positive_quantity(quantity)
        require_amount("payment", payment)
        with self._locks.exclusive("plant", sku_key(sku_name), holder_key(caller), CUSTODY_KEY):
            sku = self.catalog.require(sku_name)
            if sku.quantity < quantity:
                self._log.warning("plant_rejected", reason="unavailable", caller=caller,
                                  sku=sku_name, requested=quantity, available=sku.quantity)
                raise Unavailable(sku_name, quantity, sku.quantity)
            required = sku.cost(quantity)
            if payment < required:
                self._log.warning("plant_rejected", reason="insufficient_payment",
                                  caller=caller, sku=sku_name, required=required, paid=payment)
                raise InsufficientPayment(required, payment)

            # custody first: if the deposit raises, nothing has been written yet
            self.custodian.deposit(caller, payment)
            self.catalog.take(sku_name, quantity)
            lot = self.saplings.append(caller, sku_name, required, quantity, self._current_time)
            self._emit(EventType.PAYMENT_RECEIVED, sender=caller,
                       recipient=SYSTEM_IDENTITY, amount=payment)
            self._emit(EventType.TREE_PLANTED, holder=caller, sku=sku_name,
                       quantity=quantity, price=required, lot_id=lot.lot_id)
            self._log.info("tree_planted", caller=caller, paid=payment, **lot.snapshot())
            return replace(lot)

    def transfer(self, caller: str, to: str, sku_name: str, quantity: int) -> Sapling:
        """
        Move `quantity` units from one of the caller's lots to another identity.

        The source is the first live lot of `sku_name` holding at least
        `quantity`. The recipient gets a new lot with the source's per-unit
        price and its original planting time, so reward accrual carries over.

        Returns:
            A copy of the recipient's new lot.

        Raises:
            InvalidAddress: If `to` is empty or the zero identity
            NotFound: If no single lot can cover `quantity`
        """
        require_positive_quantity(quantity)
        if is_null_identity(to):
            raise InvalidAddress(to)
        with self._locks.exclusive("transfer", holder_key(caller), holder_key(to)):
            source = self.saplings.find_first(caller, sku_name, quantity)
            if source is None:
                self._log.warning("transfer_rejected", reason="no_matching_lot",
                                  caller=caller, sku=sku_name, quantity=quantity)
                raise NotFound(f"sapling {sku_name!r} x{quantity} held by {caller!r}")
            planted_at = source.planted_at
            unit_price = self.saplings.decrement(source, quantity)
            received = self.saplings.append(to, sku_name, unit_price * quantity,
                                            quantity, planted_at)
            self._emit(EventType.SAPLING_TRANSFERRED, sender=caller, recipient=to,
                       sku=sku_name, quantity=quantity)
            self._log.info("sapling_transferred", sender=caller, recipient=to,
                           sku=sku_name, quantity=quantity, source_lot=source.lot_id,
                           lot_id=received.lot_id)
            return replace(received)

    def return_saplings(self, caller: str, sku_name: str, quantity: int) -> int:
        """
        Give `quantity` planted units back to the catalog for a refund.

        The refund is the lot's per-unit price times `quantity`. The lot is
        decremented first, then the custodian pays; stock is restored to the
        catalog only once the payment is confirmed. If the payment fails the
        lot is restored and PaymentFailed is raised, leaving state unchanged.

        Returns:
            The refunded amount.

        Raises:
            NotFound: If the SKU is not in the catalog or no lot covers `quantity`
            InsufficientFunds: If the refund exceeds the custodial balance
            PaymentFailed: If the custodian does not confirm the payment
        """
        require_positive_quantity(quantity)
        with self._locks.exclusive("return_saplings", sku_key(sku_name),
                                   holder_key(caller), CUSTODY_KEY):
            self.catalog.require(sku_name)
            lot = self.saplings.find_first(caller, sku_name, quantity)
            if lot is None:
                self._log.warning("return_rejected", reason="no_matching_lot",
                                  caller=caller, sku=sku_name, quantity=quantity)
                raise NotFound(f"sapling {sku_name!r} x{quantity} held by {caller!r}")
            refund = lot.unit_price() * quantity
            balance = self.custodian.current_balance()
            if refund > balance:
                self._log.warning("return_rejected", reason="insufficient_funds",
                                  caller=caller, refund=refund, balance=balance)
                raise InsufficientFunds(refund, balance)

            unit_price = self.saplings.decrement(lot, quantity)
            try:
                paid = self.custodian.pay(caller, refund)
            except Exception:
                self.saplings.restore(lot, quantity, unit_price)
                raise
            if not paid:
                self.saplings.restore(lot, quantity, unit_price)
                self._log.warning("return_rejected", reason="payment_failed",
                                  caller=caller, refund=refund)
                raise PaymentFailed(caller, refund)

            self.catalog.restock(sku_name, quantity)
            self._emit(EventType.SAPLING_RETURNED, holder=caller, sku=sku_name,
                       quantity=quantity, refund=refund)
            self._log.info("sapling_returned", caller=caller, sku=sku_name,
                           quantity=quantity, refund=refund, lot_id=lot.lot_id)
            return refund

    # ========================================================================
    # REWARDS
    # ========================================================================

    def calculate_reward(self, holder: str, sku_name: str) -> RewardSnapshot:
        """
        Reward accrued by the holder's first live lot of `sku_name`, as of now.

        Raises:
            NotFound: If the holder has no live lot for the SKU
        """
        return calculate_reward(self, holder, sku_name, self.reward_interval)

    def claim_reward(self, caller: str, sku_name: str) -> RewardSnapshot:
        """
        Recompute the caller's reward and overwrite the stored snapshot.

        The lot is not touched, so claiming again later reflects the total
        elapsed time since planting, not the time since the last claim.

        Raises:
            NotFound: If the caller has no live lot for the SKU
        """
        with self._locks.exclusive("claim_reward", holder_key(caller)):
            snapshot = self.calculate_reward(caller, sku_name)
            self.rewards.record(caller, sku_name, snapshot)
            self._emit(EventType.REWARD_CLAIMED, holder=caller, sku=sku_name,
                       **snapshot.as_dict())
            self._log.info("reward_claimed", caller=caller, sku=sku_name,
                           intervals=snapshot.intervals, **snapshot.as_dict())
            return snapshot

    def __repr__(self) -> str:
        return (f"Orchard({self.name!r}, {len(self.catalog)} trees, "
                f"{len(self.saplings.holders())} holders, t={self._current_time})")


