"""
orchard - Tree Inventory and Sapling Ownership Ledger

Tracks an owner-managed catalog of tree SKUs, lets holders plant (reserve)
units against payment, transfer and return their saplings, and accrues a
time-based reward for every planted lot.

Usage:
    from orchard import Orchard, StaticAuthorizer, InMemoryCustody, REWARD_INTERVAL

    orchard = Orchard("main", StaticAuthorizer({"owner"}), InMemoryCustody())
    orchard.add_tree("owner", "Oak", "SN1", price=100, quantity=5)

    # Plant two units, paying exactly price * quantity
    orchard.plant("alice", "Oak", 2, 200)

    # Hand one unit to bob; he inherits alice's planting time
    orchard.transfer("alice", "bob", "Oak", 1)

    # Thirty days later, bob's lot has accrued one reward interval
    orchard.advance_time(orchard.current_time + REWARD_INTERVAL)
    orchard.claim_reward("bob", "Oak")
"""

# Core types
from .core import (
    OrchardView,
    Authorizer,
    Custodian,
    NotificationSink,
    TreeSKU,
    Sapling,
    RewardSnapshot,
    Notification,
    EventType,
    OrchardError,
    Unauthorized,
    InvalidAddress,
    NotFound,
    Unavailable,
    InsufficientPayment,
    InsufficientFunds,
    PaymentFailed,
    ReentrantCall,
    ZeroQuantityLot,
    REWARD_INTERVAL,
    FRUITS_PER_INTERVAL,
    FLOWERS_PER_INTERVAL,
    WOODS_PER_INTERVAL,
    ZERO_IDENTITY,
    SYSTEM_IDENTITY,
    MAX_QUANTITY,
)

# Orchard
from .orchard import Orchard

# Catalog and ownership ledger
from .catalog import InventoryCatalog
from .saplings import SaplingBook, first_match

# Rewards
from .rewards import (
    RewardRegistry,
    elapsed_intervals,
    compute_reward,
    calculate_reward,
)

# Collaborators
from .collaborators import (
    StaticAuthorizer,
    InMemoryCustody,
    RecordingSink,
    LoggingSink,
)

# Locking
from .locks import KeyedLocks

__all__ = [
    # Core
    'OrchardView', 'Authorizer', 'Custodian', 'NotificationSink',
    'TreeSKU', 'Sapling', 'RewardSnapshot', 'Notification', 'EventType',
    'OrchardError', 'Unauthorized', 'InvalidAddress', 'NotFound', 'Unavailable',
    'InsufficientPayment', 'InsufficientFunds', 'PaymentFailed', 'ReentrantCall',
    'ZeroQuantityLot',
    'REWARD_INTERVAL', 'FRUITS_PER_INTERVAL', 'FLOWERS_PER_INTERVAL',
    'WOODS_PER_INTERVAL', 'ZERO_IDENTITY', 'SYSTEM_IDENTITY', 'MAX_QUANTITY',
    # Orchard
    'Orchard',
    # Catalog and ownership
    'InventoryCatalog', 'SaplingBook', 'first_match',
    # Rewards
    'RewardRegistry', 'elapsed_intervals', 'compute_reward', 'calculate_reward',
    # Collaborators
    'StaticAuthorizer', 'InMemoryCustody', 'RecordingSink', 'LoggingSink',
    # Locking
    'KeyedLocks',
]

__version__ = '1.0.0'
