"""
Split Ledger - Source Package

The ledger engine of a shared-expense application: turns expenses into
per-member obligations, keeps a running balance for every member of a
group, and proposes the settling payments that bring the group to zero.

DESIGN PRINCIPLES:
1. Money is Decimal, never float
2. Every mutation is all-or-nothing
3. Balances always sum to zero
4. Same input, same output (no randomness, no clock)
5. Storage and presentation live outside this package
"""

__version__ = "1.0.0"
__author__ = "Split Ledger Team"
