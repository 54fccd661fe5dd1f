"""
Entry Kernel - approval workflow and inventory ledger core.

Architecture:
    domain/     Pure value objects and state machines (ZERO I/O)
    db/         Engine, declarative base, immutability listeners
    models/     SQLAlchemy ORM models
    services/   Flush-only kernel services (caller owns the transaction)
    selectors/  Read-only queries returning DTOs

Invariants:
    - Entry status is monotonic; confirmed entries are immutable.
    - At most one final confirmer per document type.
    - An entry's inventory effects are applied at most once.
    - Stock is never driven below zero.
"""

__version__ = "0.1.0"
