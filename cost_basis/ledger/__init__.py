"""
Ledger Module

The lot ledger, its price table, operation records and reporting views.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from cost_basis.ledger.errors import (
    BatchMismatch,
    CurrencyMismatch,
    IdentityMismatch,
    InsufficientBalance,
    InvalidAmount,
    InvalidSameDayExchange,
    LedgerError,
    LotNotFound,
    MissingPrice,
    OverCommitted,
    UnderCommitted,
)
from cost_basis.ledger.lot import Lot, LotType, TaxableGainsDetails
from cost_basis.ledger.prices import HistoricalPriceTable
from cost_basis.ledger.ledger import Ledger, Summary
from cost_basis.ledger.operations import OperationKindError, parse_operation, replay

__all__ = [
    'Ledger',
    'Summary',
    'Lot',
    'LotType',
    'TaxableGainsDetails',
    'HistoricalPriceTable',
    'parse_operation',
    'replay',
    'LedgerError',
    'LotNotFound',
    'CurrencyMismatch',
    'InsufficientBalance',
    'InvalidAmount',
    'BatchMismatch',
    'OverCommitted',
    'UnderCommitted',
    'IdentityMismatch',
    'MissingPrice',
    'InvalidSameDayExchange',
    'OperationKindError',
]
