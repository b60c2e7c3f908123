"""
Core types, constants and protocols for the orchard ledger.

This module provides the foundational data structures for the system:
1. Protocols: OrchardView for read-only access, plus the three external
   collaborators (Authorizer, Custodian, NotificationSink)
2. Data structures: TreeSKU, Sapling, RewardSnapshot, Notification
3. Exceptions: OrchardError and domain-specific error types
4. Validation helpers shared by the catalog, the sapling book and the orchard

Nothing in this module mutates orchard state. The Orchard class is the only
owner of mutable state; everything here is either immutable or a plain record
that the Orchard mutates under its own locks.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Any, Protocol, Tuple, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Length of one reward accrual period.
REWARD_INTERVAL = timedelta(days=30)

# Reward accrued per completed interval. Linear, never compounded or capped.
FRUITS_PER_INTERVAL = 10
FLOWERS_PER_INTERVAL = 5
WOODS_PER_INTERVAL = 2

# The null identity. Transfers to it (or to an empty identity) are rejected.
ZERO_IDENTITY = "0x0000000000000000000000000000000000000000"

# Custodial identity used as the counterparty in payment notifications.
SYSTEM_IDENTITY = "system"

# Upper bound on any stock quantity. Python ints never wrap, so exceeding this
# raises OverflowError instead of silently truncating.
MAX_QUANTITY = 2 ** 256 - 1


# ============================================================================
# ENUMS
# ============================================================================

class EventType(Enum):
    """
    Kinds of notification the orchard writes to its sink.

    The sink is write-only from the orchard's point of view; nothing the
    orchard does depends on what a sink records.
    """
    SKU_ADDED = "sku_added"
    SKU_RESTOCKED = "sku_restocked"
    SKU_REMOVED = "sku_removed"
    PRICE_UPDATED = "price_updated"
    TREE_PLANTED = "tree_planted"
    SAPLING_TRANSFERRED = "sapling_transferred"
    SAPLING_RETURNED = "sapling_returned"
    REWARD_CLAIMED = "reward_claimed"
    PAYMENT_RECEIVED = "payment_received"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class OrchardError(Exception):
    """Base exception for all orchard errors."""
    pass


class Unauthorized(OrchardError):
    """Raised when a caller without administrative capability calls an admin operation."""

    def __init__(self, identity: str, action: str):
        self.identity = identity
        self.action = action
        super().__init__(f"{identity!r} is not authorized to {action}")


class InvalidAddress(OrchardError):
    """Raised when a recipient identity is empty or the zero identity."""

    def __init__(self, identity: Optional[str]):
        self.identity = identity
        super().__init__(f"invalid recipient identity: {identity!r}")


class NotFound(OrchardError):
    """Raised when a SKU, or a lot able to satisfy a request, does not exist."""

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"not found: {what}")


class Unavailable(OrchardError):
    """Raised when requested quantity exceeds the catalog's available stock."""

    def __init__(self, sku_name: str, requested: int, available: int):
        self.sku_name = sku_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"{sku_name}: requested {requested}, only {available} available"
        )


class InsufficientPayment(OrchardError):
    """Raised when a plant call pays less than price * quantity."""

    def __init__(self, required: int, paid: int):
        self.required = required
        self.paid = paid
        super().__init__(f"payment {paid} is less than required {required}")


class InsufficientFunds(OrchardError):
    """Raised when a refund exceeds the custodial balance."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"refund {required} exceeds custodial balance {available}")


class PaymentFailed(OrchardError):
    """Raised when the custodian reports an outbound payment did not go through."""

    def __init__(self, identity: str, amount: int):
        self.identity = identity
        self.amount = amount
        super().__init__(f"payment of {amount} to {identity!r} failed")


class ReentrantCall(OrchardError):
    """Raised when a mutating operation is entered while another is running on the same thread."""

    def __init__(self, operation: str, active: str):
        self.operation = operation
        self.active = active
        super().__init__(f"{operation} called while {active} is in progress")


class ZeroQuantityLot(OrchardError):
    """Raised instead of dividing by zero when pricing an empty lot."""

    def __init__(self, lot_id: int):
        self.lot_id = lot_id
        super().__init__(f"lot {lot_id} has zero quantity; per-unit price undefined")


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def require_positive_quantity(quantity: Any) -> int:
    """Validate a quantity argument for plant, transfer and return."""
    if not _is_int(quantity):
        raise ValueError(f"quantity must be int, got {type(quantity).__name__}")
    if quantity <= 0:
        raise ValueError(f"quantity must be positive, got {quantity}")
    if quantity > MAX_QUANTITY:
        raise OverflowError(f"quantity {quantity} exceeds {MAX_QUANTITY}")
    return quantity


def require_amount(name: str, amount: Any) -> int:
    """Validate a non-negative integer amount (price, payment, stock)."""
    if not _is_int(amount):
        raise ValueError(f"{name} must be int, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"{name} cannot be negative, got {amount}")
    if amount > MAX_QUANTITY:
        raise OverflowError(f"{name} {amount} exceeds {MAX_QUANTITY}")
    return amount


def is_null_identity(identity: Optional[str]) -> bool:
    """True for None, blank strings and the zero identity."""
    return not identity or not identity.strip() or identity == ZERO_IDENTITY


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class TreeSKU:
    """
    A tree stock keeping unit in the inventory catalog.

    Attributes:
        name: Unique human-readable name; the catalog key.
        serial: Serial number of the SKU.
        price: Unit price in the smallest payment unit.
        quantity: Units still available to plant.

    Presence in the catalog is what makes a SKU exist; there is no sentinel
    value for "absent". Catalog lookups return None instead.
    """
    name: str
    serial: str
    price: int
    quantity: int

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("TreeSKU name cannot be empty")
        if not self.serial or not self.serial.strip():
            raise ValueError("TreeSKU serial cannot be empty")
        require_amount("price", self.price)
        require_amount("quantity", self.quantity)

    def cost(self, quantity: int) -> int:
        """Total price for planting `quantity` units at the current price."""
        return self.price * quantity


@dataclass(slots=True)
class Sapling:
    """
    One owned lot: a single purchase (or received transfer) held by one holder.

    Saplings are mutable records owned by a SaplingBook. A lot is live while
    its quantity is positive; when it reaches zero it is tombstoned in place
    (live=False) and skipped by every scan.

    Attributes:
        lot_id: Identifier unique within one orchard, assigned in creation order.
        sku_name: Name of the SKU this lot was planted against (by name, not link).
        price: Total price paid for the units remaining in this lot.
        quantity: Units remaining in the lot.
        planted_at: When the lot was originally planted. Transfers copy it.
        live: False once the lot has been fully consumed.
    """
    lot_id: int
    sku_name: str
    price: int
    quantity: int
    planted_at: datetime
    live: bool = True

    def unit_price(self) -> int:
        """
        Per-unit price of the lot.

        Raises:
            ZeroQuantityLot: If the lot is empty. Selection requires
                quantity >= requested >= 1, so callers never reach this.
        """
        if self.quantity == 0:
            raise ZeroQuantityLot(self.lot_id)
        return self.price // self.quantity

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict copy for logging and inspection."""
        return {
            'lot_id': self.lot_id,
            'sku_name': self.sku_name,
            'price': self.price,
            'quantity': self.quantity,
            'planted_at': self.planted_at,
            'live': self.live,
        }


@dataclass(frozen=True, slots=True)
class RewardSnapshot:
    """
    Reward accrued by one lot at a point in time.

    Claiming stores a snapshot and later claims overwrite it; the counters are
    never accumulated across claims.
    """
    fruits: int
    flowers: int
    woods: int
    intervals: int = 0
    computed_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, int]:
        return {'fruits': self.fruits, 'flowers': self.flowers, 'woods': self.woods}


@dataclass(frozen=True, slots=True)
class Notification:
    """
    Immutable record written to the notification sink.

    Attributes:
        event_type: What happened.
        timestamp: Orchard logical time when it happened.
        sequence_number: Monotonic counter within one orchard.
        orchard: Name of the emitting orchard.
        payload: Event fields as a frozen tuple of (key, value) pairs.
    """
    event_type: EventType
    timestamp: datetime
    sequence_number: int
    orchard: str
    payload: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @property
    def payload_dict(self) -> Dict[str, Any]:
        return dict(self.payload)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.payload)
        return f"Notification(#{self.sequence_number} {self.event_type.value}: {fields})"


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class Authorizer(Protocol):
    """Access-control collaborator consulted before every admin operation."""

    def is_administrator(self, identity: str) -> bool:
        ...


@runtime_checkable
class Custodian(Protocol):
    """
    Fund custody collaborator.

    pay() is a single synchronous call; a False return means the payment did
    not happen. deposit() records an inbound payment.
    """

    def current_balance(self) -> int:
        ...

    def pay(self, identity: str, amount: int) -> bool:
        ...

    def deposit(self, identity: str, amount: int) -> None:
        ...


@runtime_checkable
class NotificationSink(Protocol):
    """Fire-and-forget event sink. The orchard never reads from it."""

    def emit(self, notification: Notification) -> None:
        ...


@runtime_checkable
class OrchardView(Protocol):
    """
    Read-only interface to orchard state.

    Pure functions such as calculate_reward() accept an OrchardView to declare
    that they only read. The Orchard implements it; tests may pass a fake.
    """

    @property
    def current_time(self) -> datetime:
        ...

    def get_tree(self, name: str) -> Optional[TreeSKU]:
        ...

    def saplings_of(self, holder: str) -> List[Sapling]:
        """Return copies of the holder's live lots in insertion order."""
        ...

    def get_reward(self, holder: str, sku_name: str) -> Optional[RewardSnapshot]:
        ...
