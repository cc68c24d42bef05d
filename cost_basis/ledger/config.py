"""
Ledger Configuration

Fixed thresholds and tolerances used by the lot ledger. Amounts are Decimal,
so every tolerance is expressed as a Decimal too.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from decimal import Decimal

# Holding period (days) at or above which a disposal is long-term
LONG_TERM_HOLDING_DAYS = 365

# Lot.remove: fraction is rounded to this many places before the balance check
REMOVAL_ROUNDING_PLACES = 12

# Lot.remove: fractions above this are clamped to exactly 1 (drops float dust)
FULL_REMOVAL_THRESHOLD = Decimal("0.999999999999999")

# Multi-lot exchanges: residual sell/purchase amounts rounded to this many places must be zero
BATCH_ROUNDING_PLACES = 11

# Merge: per-unit prices must agree after rounding their difference to this many places
MERGE_PRICE_ROUNDING_PLACES = 11

# Full multi-lot transfers: declared amount vs. sum of lot balances
FULL_TRANSFER_TOLERANCE = Decimal("0.0000000000001")

# Name suffix of the per-lot node that collects gains realized by spend()
SPEND_GAINS_SUFFIX = "spendCapitalGains"
