"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the orchard.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Units are neither created nor destroyed by plant/transfer/return
2. atomicity.py - Failed operations leave no trace
3. idempotency.py - Reward claims overwrite instead of accumulating
4. determinism.py - Reproducible behavior
5. temporal.py - Logical time and reward accrual

These tests use hypothesis for property-based testing.
"""
