"""
Command-line interface for the drainbench package.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
