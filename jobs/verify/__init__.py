"""Verification job package.

Modules:
- cli: CLI entry point (main), builds one producer per eligible node
"""

from .cli import build_producers, main

__all__ = ["build_producers", "main"]
