"""
Core domain models, error taxonomy, and event contracts.

This module contains the foundational building blocks that are independent
of the ledger runtime (storage, transactions, subsystems).
"""
