"""
Cost Basis - Lot Ledger

Tracks the cost basis of money and assets as they move between accounts
and currencies, and records realized gains for tax reporting.

Features:
- Append-only lot log with traceable dotted lot ids
- Proportional cost basis removal
- Taxable and non-taxable exchanges, transfers, fees, merges
- Short/long-term capital gains reporting

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['ledger', 'utils']
