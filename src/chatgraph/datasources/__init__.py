"""
Data source adapters giving resolvers store-agnostic find/create operations
"""

from .base import DataSource, Filter, Record
from .documents import DocumentDataSource
from .factory import DataSources, create_data_sources
from .memory import InMemoryDataSource, MemoryEntity
from .relational import RelationalDataSource

__all__ = [
    "DataSource",
    "DataSources",
    "DocumentDataSource",
    "Filter",
    "InMemoryDataSource",
    "MemoryEntity",
    "Record",
    "RelationalDataSource",
    "create_data_sources",
]
