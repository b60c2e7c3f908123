#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Orchard Step by Step

This is a pedagogical demonstration of how the tree inventory works.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation      - The empty orchard, the catalog, administrators
  4-6:   Saplings        - Planting, transferring, first-match lot selection
  7-8:   Returns         - Refunds, payment failure rollback
  9-10:  Rewards         - Time, accrual, overwrite-on-claim
  11:    Conservation    - Every unit accounted for

Run:
    python demo.py            # Interactive mode (press Enter for each step)
    python demo.py --quick    # Run all steps without pausing
    python demo.py --verbose  # Also show the orchard's structured log lines
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import sys

import structlog

from orchard import (
    Orchard, StaticAuthorizer, InMemoryCustody, RecordingSink,
    REWARD_INTERVAL, ZERO_IDENTITY,
    OrchardError, PaymentFailed,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    owner: str = "owner"

    oak_price: int = 100
    oak_stock: int = 5
    pine_price: int = 40
    pine_stock: int = 10


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv
VERBOSE = "--verbose" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_lots(orchard: Orchard, *holders: str):
    for holder in holders:
        lots = orchard.saplings_of(holder)
        if not lots:
            print(f"  {holder:<8} (no live lots)")
        for lot in lots:
            print(f"  {holder:<8} lot #{lot.lot_id}: {lot.quantity} x {lot.sku_name}, "
                  f"paid {lot.price}, planted {lot.planted_at:%Y-%m-%d}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_empty_orchard() -> Orchard:
    """Create an orchard and look at its initial state."""
    step_header(1, "The Empty Orchard",
        "Understand the three collaborators an orchard is built from.")

    print("""
    An orchard keeps three things:

    1. CATALOG  - tree SKUs for sale (name, serial, unit price, stock)
    2. SAPLINGS - per-holder lots, one per purchase
    3. REWARDS  - the last claimed reward snapshot per holder and SKU

    It delegates admin checks to an Authorizer, money to a Custodian and
    event delivery to a NotificationSink.
    """)

    orchard = Orchard(
        "tutorial",
        StaticAuthorizer({CONFIG.owner}),
        InMemoryCustody(),
        sink=RecordingSink(),
        initial_time=CONFIG.start_time,
    )

    section_header("Initial State")
    print(f"Orchard:        {orchard!r}")
    print(f"Current time:   {orchard.current_time}")
    print(f"Custody:        {orchard.custodian!r}")
    print(f"Notifications:  {len(orchard.sink)}")
    return orchard


def step_02_catalog(orchard: Orchard) -> Orchard:
    step_header(2, "Stocking the Catalog",
        "Add SKUs and see that adding again only adds stock.")

    orchard.add_tree(CONFIG.owner, "Oak", "SN1", CONFIG.oak_price, CONFIG.oak_stock)
    orchard.add_tree(CONFIG.owner, "Pine", "SN2", CONFIG.pine_price, CONFIG.pine_stock)
    for sku in orchard.list_trees():
        print(f"  {sku.name:<6} serial={sku.serial} price={sku.price} stock={sku.quantity}")

    section_header("Adding an existing SKU")
    print(">>> orchard.add_tree('owner', 'Pine', 'OTHER', 999, 2)")
    sku = orchard.add_tree(CONFIG.owner, "Pine", "OTHER", 999, 2)
    print(f"  Pine is now serial={sku.serial} price={sku.price} stock={sku.quantity}")
    print("  Serial and price are unchanged; only the stock grew.")
    return orchard


def step_03_administrators(orchard: Orchard) -> Orchard:
    step_header(3, "Administrators",
        "Only identities the Authorizer approves may change the catalog.")

    print(">>> orchard.update_price('mallory', 'Oak', 1)")
    try:
        orchard.update_price("mallory", "Oak", 1)
    except OrchardError as e:
        print(f"  Rejected: {e!r}")
    print(f"  Oak still costs {orchard.get_tree('Oak').price}")
    return orchard


# ============================================================================
# PHASE 2: SAPLINGS (Steps 4-6)
# ============================================================================

def step_04_plant(orchard: Orchard) -> Orchard:
    step_header(4, "Planting",
        "Pay price x quantity to move stock from the catalog into a lot.")

    print(">>> orchard.plant('alice', 'Oak', 2, 200)")
    orchard.plant("alice", "Oak", 2, 200)
    show_lots(orchard, "alice")
    print(f"  Oak stock: {orchard.get_tree('Oak').quantity}")
    print(f"  Custody balance: {orchard.custodian.current_balance()}")

    section_header("Checks run in order")
    for args in [("alice", "Oak", 10, 1000), ("alice", "Oak", 1, 50), ("alice", "Elm", 1, 100)]:
        try:
            orchard.plant(*args)
        except OrchardError as e:
            print(f"  plant{args}: {type(e).__name__}: {e}")
    print("  None of these changed any state.")
    return orchard


def step_05_transfer(orchard: Orchard) -> Orchard:
    step_header(5, "Transferring",
        "Hand units to another holder, keeping price per unit and planting time.")

    orchard.advance_time(CONFIG.start_time + timedelta(days=10))
    print(">>> orchard.transfer('alice', 'bob', 'Oak', 1)")
    orchard.transfer("alice", "bob", "Oak", 1)
    show_lots(orchard, "alice", "bob")
    print("  Bob's lot is dated at alice's planting, not today.")

    section_header("The zero identity is not a valid recipient")
    try:
        orchard.transfer("alice", ZERO_IDENTITY, "Oak", 1)
    except OrchardError as e:
        print(f"  {type(e).__name__}: {e}")
    return orchard


def step_06_first_match(orchard: Orchard) -> Orchard:
    step_header(6, "First-Match Lot Selection",
        "Operations use the first lot large enough; lots are never merged.")

    orchard.plant("carol", "Pine", 1, 40)
    orchard.plant("carol", "Pine", 3, 120)
    show_lots(orchard, "carol")

    print("\n>>> orchard.transfer('carol', 'dave', 'Pine', 2)")
    orchard.transfer("carol", "dave", "Pine", 2)
    show_lots(orchard, "carol", "dave")
    print("  The 1-unit lot was skipped: it could not cover 2 units alone.")
    return orchard


# ============================================================================
# PHASE 3: RETURNS (Steps 7-8)
# ============================================================================

def step_07_return(orchard: Orchard) -> Orchard:
    step_header(7, "Returning Saplings",
        "Give units back for a refund at the lot's own unit price.")

    orchard.update_price(CONFIG.owner, "Oak", 150)
    print("  Oak's catalog price is now 150, but alice paid 100 per unit.")
    print(">>> orchard.return_saplings('alice', 'Oak', 1)")
    refund = orchard.return_saplings("alice", "Oak", 1)
    print(f"  Refund: {refund}")
    print(f"  Oak stock: {orchard.get_tree('Oak').quantity}")
    show_lots(orchard, "alice")
    return orchard


def step_08_payment_failure(orchard: Orchard) -> Orchard:
    step_header(8, "Payment Failure",
        "If the custodian cannot pay, the return is undone completely.")

    orchard.custodian.fail_payments = True
    try:
        orchard.return_saplings("bob", "Oak", 1)
    except PaymentFailed as e:
        print(f"  {type(e).__name__}: {e}")
    orchard.custodian.fail_payments = False
    show_lots(orchard, "bob")
    print(f"  Oak stock unchanged: {orchard.get_tree('Oak').quantity}")
    return orchard


# ============================================================================
# PHASE 4: REWARDS (Steps 9-10)
# ============================================================================

def step_09_accrual(orchard: Orchard) -> Orchard:
    step_header(9, "Reward Accrual",
        "Each full 30-day interval since planting yields 10 fruits, 5 flowers, 2 woods.")

    for days in (29, 30, 59, 60, 95):
        orchard.advance_time(CONFIG.start_time + timedelta(days=days))
        snap = orchard.calculate_reward("bob", "Oak")
        print(f"  day {days:>3}: {snap.intervals} intervals -> {snap.as_dict()}")
    return orchard


def step_10_claim(orchard: Orchard) -> Orchard:
    step_header(10, "Claiming",
        "A claim stores the current reward, replacing the previous snapshot.")

    first = orchard.claim_reward("bob", "Oak")
    print(f"  claim at {orchard.current_time:%Y-%m-%d}: {first.as_dict()}")
    orchard.advance_time(orchard.current_time + REWARD_INTERVAL)
    second = orchard.claim_reward("bob", "Oak")
    print(f"  claim at {orchard.current_time:%Y-%m-%d}: {second.as_dict()}")
    print(f"  stored: {orchard.get_reward('bob', 'Oak').as_dict()}")
    print("  The stored snapshot is the latest total, not a running sum.")
    return orchard


# ============================================================================
# PHASE 5: CONSERVATION (Step 11)
# ============================================================================

def step_11_conservation(orchard: Orchard):
    step_header(11, "Conservation",
        "Catalog stock plus planted units equals everything ever added.")

    result = orchard.verify_stock({
        "Oak": CONFIG.oak_stock,
        "Pine": CONFIG.pine_stock + 2,
    })
    for name, total in result['supplies'].items():
        print(f"  {name:<6} catalog {orchard.get_tree(name).quantity:>3} + "
              f"planted {orchard.planted_quantity(name):>3} = {total}")
    print(f"\n  Valid: {result['valid']}")

    section_header("Notification stream")
    for event_type, count in orchard.sink.counts().items():
        print(f"  {event_type.value:<22} {count}")


def main():
    """Run the complete tutorial."""
    if not VERBOSE:
        structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL))

    print("=" * 70)
    print("       ORCHARD - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    orchard = step_01_empty_orchard()
    for step in (
        step_02_catalog, step_03_administrators,
        step_04_plant, step_05_transfer, step_06_first_match,
        step_07_return, step_08_payment_failure,
        step_09_accrual, step_10_claim,
    ):
        wait_for_enter()
        orchard = step(orchard)
    wait_for_enter()
    step_11_conservation(orchard)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See orchard/orchard.py for the mutation protocol
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
