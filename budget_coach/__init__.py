"""
Budget Coach - Source Package

A personal budget tracker: transactions, monthly budgets per category,
debts and payments, plus an AI coach that answers from the user's own
numbers.

DESIGN PRINCIPLES:
1. Every read and write is scoped to one user
2. Money is Decimal, never float
3. The coach only sees a summary built from stored data
4. Every ledger change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Coach Team"
