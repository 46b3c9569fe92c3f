"""
Port interfaces for the AEMET CAP cache.

This module defines the port interfaces (Protocols) that define
the contracts between the orchestrators and external adapters.
"""

from .upstream import FetchedPayload, UpstreamPort
from .storage import SnapshotStoragePort

__all__ = ["FetchedPayload", "UpstreamPort", "SnapshotStoragePort"]
