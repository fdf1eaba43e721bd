"""
replcm: Change-recycle manager for metadata-store drops.

Dropped table, partition and file data is moved into a checksum-addressed
recycle area instead of being destroyed, so replication consumers reading an
older snapshot can still fetch the exact bytes. A background clearer purges
recycled entries once they exceed their retention age.
"""

__version__ = "0.1.0"
