"""
Command-line interface implementation.

Exposes the ``searchbench`` command group (``search`` and ``describe``).
"""

from .main import main

__all__ = [
    "main",
]
