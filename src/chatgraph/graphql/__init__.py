"""
GraphQL surface of the chat domain
"""

from .schema import BINDINGS, TYPE_DEFS, build_registry

__all__ = ["BINDINGS", "TYPE_DEFS", "build_registry"]
