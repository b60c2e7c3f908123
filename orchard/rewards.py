"""
rewards.py - Reward accrual for planted lots

Pure functions compute the reward a lot has accrued since it was planted:

    intervals = floor((as_of - planted_at) / REWARD_INTERVAL)
    fruits    = 10 * intervals
    flowers   =  5 * intervals
    woods     =  2 * intervals

Accrual is linear in elapsed time: no compounding, no cap, and claiming does
not reset the clock. RewardRegistry keeps the latest claimed snapshot per
(holder, SKU) pair and overwrites it on every claim.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from .core import (
    OrchardView, RewardSnapshot, NotFound,
    REWARD_INTERVAL, FRUITS_PER_INTERVAL, FLOWERS_PER_INTERVAL, WOODS_PER_INTERVAL,
)
from .saplings import first_match


def elapsed_intervals(
    planted_at: datetime,
    as_of: datetime,
    interval: timedelta = REWARD_INTERVAL,
) -> int:
    """Whole intervals between planting and `as_of`. Never negative."""
    if interval <= timedelta(0):
        raise ValueError(f"interval must be positive, got {interval}")
    if as_of <= planted_at:
        return 0
    return (as_of - planted_at) // interval


def compute_reward(
    planted_at: datetime,
    as_of: datetime,
    interval: timedelta = REWARD_INTERVAL,
) -> RewardSnapshot:
    """
    Reward accrued by a lot planted at `planted_at`, evaluated at `as_of`.

    Example:
        t0 = datetime(2025, 1, 1)
        compute_reward(t0, t0 + timedelta(days=45)).as_dict()
        # {'fruits': 10, 'flowers': 5, 'woods': 2}
    """
    intervals = elapsed_intervals(planted_at, as_of, interval)
    return RewardSnapshot(
        fruits=intervals * FRUITS_PER_INTERVAL,
        flowers=intervals * FLOWERS_PER_INTERVAL,
        woods=intervals * WOODS_PER_INTERVAL,
        intervals=intervals,
        computed_at=as_of,
    )


def calculate_reward(
    view: OrchardView,
    holder: str,
    sku_name: str,
    interval: timedelta = REWARD_INTERVAL,
) -> RewardSnapshot:
    """
    Reward for the holder's first live lot of `sku_name`, as of view.current_time.

    Only the first matching lot counts; later lots of the same SKU do not add
    to it.

    Raises:
        NotFound: If the holder has no live lot for the SKU.
    """
    lot = first_match(view.saplings_of(holder), sku_name)
    if lot is None:
        raise NotFound(f"sapling {sku_name!r} held by {holder!r}")
    return compute_reward(lot.planted_at, view.current_time, interval)


class RewardRegistry:
    """Latest claimed RewardSnapshot per (holder, SKU name)."""

    def __init__(self):
        self._snapshots: Dict[Tuple[str, str], RewardSnapshot] = {}

    def record(self, holder: str, sku_name: str, snapshot: RewardSnapshot) -> Optional[RewardSnapshot]:
        """Store `snapshot`, replacing (not adding to) any earlier one. Returns the replaced snapshot."""
        key = (holder, sku_name)
        previous = self._snapshots.get(key)
        self._snapshots[key] = snapshot
        return previous

    def get(self, holder: str, sku_name: str) -> Optional[RewardSnapshot]:
        return self._snapshots.get((holder, sku_name))

    def __len__(self) -> int:
        return len(self._snapshots)
