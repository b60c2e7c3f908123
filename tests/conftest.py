"""
conftest.py - Shared pytest fixtures for orchard tests

Provides common fixtures used across unit, functional and conformance tests:
- Orchards (empty, stocked with trees, with a planted lot)
"""

import pytest

from tests.helpers import make_orchard, OWNER


# =============================================================================
# ORCHARD FIXTURES
# =============================================================================

@pytest.fixture
def empty_orchard():
    """Fresh orchard with no trees and an empty custody balance."""
    return make_orchard()


@pytest.fixture
def stocked_orchard():
    """Orchard with Oak (100 per unit, 5 available) and Pine (40 per unit, 10 available)."""
    orchard = make_orchard()
    orchard.add_tree(OWNER, "Oak", "SN1", 100, 5)
    orchard.add_tree(OWNER, "Pine", "SN2", 40, 10)
    return orchard


@pytest.fixture
def planted_orchard(stocked_orchard):
    """Stocked orchard where alice planted 2 Oak for 200 at T0."""
    stocked_orchard.plant("alice", "Oak", 2, 200)
    return stocked_orchard
