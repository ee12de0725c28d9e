"""CLI package for Pi Agent

Subcommands: serve, login, status and chat.
"""

from cli.main import main

__all__ = [
    "main",
]
