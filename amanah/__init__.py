"""
Amānah - Ledger of Trusts and Debts

Engine for peer-to-peer obligations between two parties:
record, mutually verify, partially settle, forgive or retract.

DESIGN PRINCIPLES:
1. One party records, the other confirms
2. Every balance can be recomputed from the payment log
3. Operations either succeed completely or change nothing
4. The engine never performs I/O - callers persist and deliver
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Amanah Ledger Team"
