"""raft-lease-store: Lease store replicated with PySyncObj Raft consensus.

Provides a LeaseStorePort implementation for leasekeeper that needs no
external key/value service.
"""

from .store import RaftLeaseStore

__all__ = ["RaftLeaseStore"]
__version__ = "0.1.0"
