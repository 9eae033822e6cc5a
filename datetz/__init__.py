"""
datetz - timezone-aware instants for SQLAlchemy models.

A DateTz pairs an epoch-millisecond instant with the IANA timezone it is
displayed in.  It is stored as a ``{timestamp, timezone}`` JSON document,
coerced from the assorted raw inputs application code hands it, and cast
for query operands the same way it is cast for writes.
"""

__version__ = "0.1.0"
