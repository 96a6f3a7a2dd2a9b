"""
ns2stat Infrastructure - System infrastructure components.

This module contains:
- loader: Parallel loading of round stats JSON files
- store: Published snapshot store and data directory watcher
"""

__all__: list[str] = []
