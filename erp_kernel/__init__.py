"""
ERP Kernel

The bookkeeping core shared by every ERP module:
- Integer-keyed relational schema for items, cost layers and the journal
- Balanced, append-only journal posting with reversing entries
- Typed errors and structured logging
"""

__version__ = "0.1.0"
