"""
collaborators.py - In-memory implementations of the orchard's external collaborators

The orchard depends on three protocols defined in core.py:
- Authorizer: administrative capability check
- Custodian: fund custody (balance, inbound deposits, outbound payments)
- NotificationSink: write-only event sink

Classes:
- StaticAuthorizer: fixed set of administrator identities
- InMemoryCustody: a single custodial balance with an optional failure switch
- RecordingSink: keeps every notification in memory for inspection
- LoggingSink: forwards notifications to structlog
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Set, Tuple

import structlog

from .core import EventType, Notification, require_amount

logger = structlog.get_logger(__name__)


class StaticAuthorizer:
    """Authorizer backed by a fixed set of administrator identities."""

    def __init__(self, administrators: Iterable[str] = ()):
        self.administrators: Set[str] = set(administrators)

    def is_administrator(self, identity: str) -> bool:
        return identity in self.administrators

    def grant(self, identity: str) -> None:
        self.administrators.add(identity)

    def revoke(self, identity: str) -> None:
        self.administrators.discard(identity)

    def __repr__(self):
        return f"StaticAuthorizer({sorted(self.administrators)})"


class InMemoryCustody:
    """
    Custodian holding one balance in memory.

    Every deposit and payment is recorded. Setting `fail_payments` makes pay()
    report failure without moving funds, which is how tests exercise the
    refund failure path. An optional `on_pay` callback runs inside pay(); it
    stands in for a recipient that calls back into the orchard.
    """

    def __init__(self, balance: int = 0, fail_payments: bool = False, on_pay=None):
        self.balance = require_amount("balance", balance)
        self.fail_payments = fail_payments
        self.on_pay = on_pay
        self.deposits: List[Tuple[str, int]] = []
        self.payments: List[Tuple[str, int]] = []

    def current_balance(self) -> int:
        return self.balance

    def deposit(self, identity: str, amount: int) -> None:
        require_amount("amount", amount)
        self.balance += amount
        self.deposits.append((identity, amount))

    def pay(self, identity: str, amount: int) -> bool:
        require_amount("amount", amount)
        if self.on_pay is not None:
            self.on_pay(identity, amount)
        if self.fail_payments or amount > self.balance:
            logger.warning("custody_payment_failed", recipient=identity, amount=amount,
                           balance=self.balance)
            return False
        self.balance -= amount
        self.payments.append((identity, amount))
        return True

    def paid_to(self, identity: str) -> int:
        """Total successfully paid to one identity."""
        return sum(amount for who, amount in self.payments if who == identity)

    def __repr__(self):
        return f"InMemoryCustody(balance={self.balance})"


class RecordingSink:
    """Notification sink that keeps everything it receives, in order."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def emit(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def of_type(self, event_type: EventType) -> List[Notification]:
        return [n for n in self.notifications if n.event_type == event_type]

    def last(self, event_type: Optional[EventType] = None) -> Optional[Notification]:
        candidates = self.notifications if event_type is None else self.of_type(event_type)
        return candidates[-1] if candidates else None

    def counts(self) -> Dict[EventType, int]:
        result: Dict[EventType, int] = {}
        for n in self.notifications:
            result[n.event_type] = result.get(n.event_type, 0) + 1
        return result

    def __len__(self) -> int:
        return len(self.notifications)


class LoggingSink:
    """Notification sink that writes each notification as a structlog event."""

    def __init__(self, log=None):
        self._log = log or logger

    def emit(self, notification: Notification) -> None:
        self._log.info(
            notification.event_type.value,
            orchard=notification.orchard,
            sequence=notification.sequence_number,
            timestamp=notification.timestamp.isoformat(),
            **notification.payload_dict,
        )
