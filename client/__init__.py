"""
Client library for a running relay.
"""
from .relay_client import RelayClient

__all__ = ["RelayClient"]
