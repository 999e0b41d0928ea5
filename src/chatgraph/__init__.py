"""
chatgraph
GraphQL gateway federating users and messages across two stores
"""

__version__ = "0.1.0"

from .config import settings

__all__ = ["settings", "__version__"]
