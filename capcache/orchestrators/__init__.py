"""
Orchestrators for the AEMET CAP cache.

This module contains the orchestrators that coordinate
the flow between ports and adapters.
"""
from .area_fetch import AreaFetchOrchestrator
from .cache_manager import CacheManager, CacheState

__all__ = ["AreaFetchOrchestrator", "CacheManager", "CacheState"]
