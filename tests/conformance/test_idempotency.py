"""
Idempotency Conformance Tests

INVARIANT: A reward claim overwrites; it never accumulates.

    ∀ holder h, SKU s, time t:
        claim(h, s) at t twice ⟹ stored snapshot = calculate_reward(h, s) at t

Claims do not touch the lot, so a later claim reflects the total time
since planting, not the time since the previous claim.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from datetime import timedelta

from tests.helpers import make_orchard, state_fingerprint, OWNER, T0


def _planted():
    orchard = make_orchard()
    orchard.add_tree(OWNER, "Oak", "SN1", 100, 5)
    orchard.plant("alice", "Oak", 1, 100)
    return orchard


class TestClaimIdempotency:

    @given(
        st.integers(min_value=0, max_value=2000),
        st.integers(min_value=1, max_value=5),
    )
    @settings(max_examples=100, deadline=None)
    def test_repeated_claims_identical(self, days, repeats):
        """PROPERTY: claiming n times at one instant equals claiming once."""
        orchard = _planted()
        orchard.advance_time(T0 + timedelta(days=days))
        first = orchard.claim_reward("alice", "Oak")
        after_first = state_fingerprint(orchard)
        for _ in range(repeats):
            assert orchard.claim_reward("alice", "Oak") == first
        assert state_fingerprint(orchard) == after_first

    @given(st.lists(st.integers(min_value=0, max_value=100), min_size=1, max_size=10))
    @settings(max_examples=100, deadline=None)
    def test_stored_snapshot_matches_fresh_calculation(self, steps):
        """PROPERTY: the stored snapshot is always the latest calculation."""
        orchard = _planted()
        for days in steps:
            orchard.advance_time(orchard.current_time + timedelta(days=days))
            orchard.claim_reward("alice", "Oak")
            assert orchard.get_reward("alice", "Oak") == orchard.calculate_reward("alice", "Oak")

    def test_claims_do_not_compound(self):
        orchard = _planted()
        orchard.advance_time(T0 + timedelta(days=30))
        orchard.claim_reward("alice", "Oak")
        orchard.advance_time(T0 + timedelta(days=60))
        orchard.claim_reward("alice", "Oak")
        # 2 intervals since planting, not 1 + 2
        assert orchard.get_reward("alice", "Oak").fruits == 20
