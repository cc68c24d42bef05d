"""
Shared utilities for the cost basis ledger.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from .logging_config import setup_logger, get_perf_logger, lot_context, StructuredFormatter

__all__ = ['setup_logger', 'get_perf_logger', 'lot_context', 'StructuredFormatter']
