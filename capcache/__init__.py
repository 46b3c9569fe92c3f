"""
AEMET CAP alert cache.

Downloads AEMET CAP bundles per area, indexes alerts by 6-digit zone and
serves the last known-good snapshot when the upstream is unavailable.
"""

__version__ = "2.0.0"
