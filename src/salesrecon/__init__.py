"""
salesrecon: distributor sales report parsing and channel reconciliation.

Parsers turn each distributor's export into canonical ``SalesRecord`` rows;
the store merges them per channel and rebuilds the read-only views.
"""

from .models import MergeKey, ParseResult, SalesRecord

__version__ = "0.1.0"

__all__ = ["MergeKey", "ParseResult", "SalesRecord", "__version__"]
