# tests/property/__init__.py
"""Property-based tests for replcm.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of. Recycled names are read back by
replication consumers long after the drop, so naming determinism and
recycle idempotence are non-negotiable.

Test categories:
- core/: Naming purity, partition escaping, recycle idempotence, retention
"""
