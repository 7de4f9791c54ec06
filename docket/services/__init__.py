"""
Service layer for docket.

Contains logic that orchestrates domain objects and infrastructure:
- ScanService: Parallel resolution of many plugin repositories

Services are the primary API for commands to use.
"""

from .scan_service import ScanService, ScanOptions, ScanResult, ScanStatus, PluginIndex, RepositoryScan

__all__ = [
    'ScanService',
    'ScanOptions',
    'ScanResult',
    'ScanStatus',
    'PluginIndex',
    'RepositoryScan',
]
