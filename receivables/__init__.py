"""
Receivables Console - Source Package

An accounts-receivable console for small distributors who receive
bill-wise outstanding exports from their accounting software.

DESIGN PRINCIPLES:
1. The uploaded ledger is the source of truth
2. Reconcile once, then never reshuffle
3. Bad rows degrade, bad files fail
4. Company names are derived, never stored
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Receivables Console Team"
