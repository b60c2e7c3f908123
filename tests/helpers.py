"""
helpers.py - Test helpers for orchard tests

Provides orchard factories, lot inspection helpers and a minimal OrchardView
implementation for testing pure reward functions without a full Orchard,
plus a hypothesis strategy for random operation sequences.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from hypothesis import strategies as st

from orchard import (
    Orchard, OrchardError, Sapling, TreeSKU, RewardSnapshot,
    StaticAuthorizer, InMemoryCustody, RecordingSink,
)


OWNER = "owner"
T0 = datetime(2025, 1, 1)


def make_orchard(
    balance: int = 0,
    fail_payments: bool = False,
    initial_time: datetime = T0,
    on_pay=None,
) -> Orchard:
    """Create an orchard with OWNER as the only administrator."""
    return Orchard(
        "test",
        StaticAuthorizer({OWNER}),
        InMemoryCustody(balance=balance, fail_payments=fail_payments, on_pay=on_pay),
        sink=RecordingSink(),
        initial_time=initial_time,
    )


def lots_for(orchard: Orchard, holder: str, sku_name: str) -> List[Sapling]:
    """Live lots of one SKU held by one holder, in insertion order."""
    return [lot for lot in orchard.saplings_of(holder) if lot.sku_name == sku_name]


def held(orchard: Orchard, holder: str, sku_name: str) -> int:
    """Total live units of a SKU held by one holder."""
    return sum(lot.quantity for lot in lots_for(orchard, holder, sku_name))


def state_fingerprint(orchard: Orchard) -> Dict:
    """Everything a failed operation must leave untouched."""
    return {
        'trees': orchard.list_trees(),
        'lots': {
            holder: orchard.saplings.saplings_of(holder, include_tombstoned=True)
            for holder in orchard.saplings.holders()
        },
        'balance': orchard.custodian.current_balance(),
        'rewards': {
            (holder, sku): orchard.get_reward(holder, sku)
            for holder in orchard.saplings.holders()
            for sku in orchard.saplings.sku_names()
        },
    }


class FakeView:
    """
    Minimal OrchardView for testing reward functions.

    Example:
        view = FakeView(
            lots={'alice': [Sapling(0, 'Oak', 100, 1, datetime(2025, 1, 1))]},
            time=datetime(2025, 3, 1),
        )
    """

    def __init__(
        self,
        lots: Dict[str, List[Sapling]],
        time: datetime,
        trees: Optional[Dict[str, TreeSKU]] = None,
    ):
        self._lots = lots
        self._time = time
        self._trees = trees or {}

    @property
    def current_time(self) -> datetime:
        return self._time

    def get_tree(self, name: str) -> Optional[TreeSKU]:
        return self._trees.get(name)

    def saplings_of(self, holder: str) -> List[Sapling]:
        return [lot for lot in self._lots.get(holder, []) if lot.live]

    def get_reward(self, holder: str, sku_name: str) -> Optional[RewardSnapshot]:
        return None


# =============================================================================
# RANDOM OPERATION SEQUENCES (for property-based tests)
# =============================================================================

HOLDERS = ["alice", "bob", "carol"]
SKUS = ["Oak", "Pine"]


def operations():
    """Hypothesis strategy for a single orchard operation."""
    holder = st.sampled_from(HOLDERS)
    sku = st.sampled_from(SKUS)
    qty = st.integers(min_value=1, max_value=4)
    return st.one_of(
        st.tuples(st.just("plant"), holder, sku, qty, st.integers(min_value=-50, max_value=50)),
        st.tuples(st.just("transfer"), holder, holder, sku, qty),
        st.tuples(st.just("return"), holder, sku, qty),
        st.tuples(st.just("claim"), holder, sku),
        st.tuples(st.just("advance"), st.integers(min_value=0, max_value=45)),
        st.tuples(st.just("restock"), sku, qty),
        st.tuples(st.just("reprice"), sku, st.integers(min_value=1, max_value=200)),
    )


def apply_operation(orchard: Orchard, op: tuple) -> bool:
    """
    Apply one generated operation. Returns True if it succeeded.

    Expected rejections (OrchardError) return False; anything else propagates.
    Plant payments are the exact cost plus a random offset, so some are short.
    """
    kind = op[0]
    try:
        if kind == "plant":
            _, holder, sku, qty, offset = op
            tree = orchard.get_tree(sku)
            cost = tree.price * qty if tree else 0
            orchard.plant(holder, sku, qty, max(cost + offset, 0))
        elif kind == "transfer":
            _, sender, recipient, sku, qty = op
            orchard.transfer(sender, recipient, sku, qty)
        elif kind == "return":
            _, holder, sku, qty = op
            orchard.return_saplings(holder, sku, qty)
        elif kind == "claim":
            _, holder, sku = op
            orchard.claim_reward(holder, sku)
        elif kind == "advance":
            orchard.advance_time(orchard.current_time + timedelta(days=op[1]))
        elif kind == "restock":
            _, sku, qty = op
            orchard.add_tree(OWNER, sku, "SN-" + sku, 100, qty)
        elif kind == "reprice":
            _, sku, price = op
            orchard.update_price(OWNER, sku, price)
        else:
            raise ValueError(f"unknown operation {kind!r}")
    except OrchardError:
        return False
    return True
