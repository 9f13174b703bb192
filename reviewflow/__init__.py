"""ReviewFlow: review response drafting metered by a credit ledger."""

__version__ = "0.1.0"
