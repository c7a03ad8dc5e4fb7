"""
ERP engines -- pure calculations with zero I/O.

FIFO depletion planning, weighted averages, document totals, payment
allocation, approval evaluation and inventory drift.  Engines never touch
the database or the clock; services feed them snapshots and persist the
results.
"""
