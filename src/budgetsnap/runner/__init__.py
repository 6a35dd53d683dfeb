"""
CLI runner module.

Provides commands:
- init: Create config, database and default categories
- parse: Print candidates for a recognized-text file
- import: Screenshots → stored transactions
- similar: Fuzzy search for similar stored transactions
- export / restore: Encrypted backups
- status: Store statistics
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
