"""
Test suite for propex

Contains:
- tests/unit/          : Unit tests for individual modules and marketplace scenarios
- tests/property/      : Property-based tests for ledger and marketplace invariants
"""
