"""Factory for building the long-lived data source adapters."""

import asyncio
from dataclasses import dataclass

from ..config import Settings
from ..logging import get_logger
from .base import DataSource
from .documents import DocumentDataSource
from .memory import messages_memory_source, users_memory_source
from .relational import RelationalDataSource

logger = get_logger(__name__)


@dataclass(frozen=True)
class DataSources:
    """The adapters owned by one process: users live in the document store,
    messages in the relational store."""

    users: DataSource
    messages: DataSource

    def all(self) -> tuple[DataSource, ...]:
        return (self.users, self.messages)

    async def connect(self) -> None:
        """Connect every source; on failure, close the ones already opened."""
        opened: list[DataSource] = []
        for source in self.all():
            try:
                await source.connect()
            except Exception as e:
                logger.error("Failed to connect data source", store=source.name, error=str(e))
                for previous in reversed(opened):
                    await previous.close()
                raise
            opened.append(source)

    async def close(self) -> None:
        results = await asyncio.gather(*(s.close() for s in self.all()), return_exceptions=True)
        for source, result in zip(self.all(), results, strict=True):
            if isinstance(result, Exception):
                logger.error("Failed to close data source", store=source.name, error=str(result))

    async def health(self) -> dict[str, bool]:
        checks = await asyncio.gather(*(s.health_check() for s in self.all()))
        return {s.name: ok for s, ok in zip(self.all(), checks, strict=True)}


def create_data_sources(settings: Settings) -> DataSources:
    """Create data source adapters from configuration.

    Args:
        settings: Application settings

    Returns:
        DataSources bundle (not yet connected)

    Raises:
        ValueError: If the configured store backend is unknown, or is the
            in-memory backend in production
    """
    if settings.store_backend == "memory":
        if settings.environment.lower() in ("production", "prod"):
            raise ValueError("In-memory stores cannot be used in production")
        logger.warning("Using in-memory stores; data is lost on shutdown")
        return DataSources(
            users=users_memory_source(
                pool_size=settings.mongo_pool_size, pool_timeout=settings.pool_timeout
            ),
            messages=messages_memory_source(
                pool_size=settings.database_pool_size, pool_timeout=settings.pool_timeout
            ),
        )

    if settings.store_backend == "native":
        return DataSources(
            users=DocumentDataSource(
                settings.mongo_url,
                settings.mongo_database,
                pool_size=settings.mongo_pool_size,
                pool_timeout=settings.pool_timeout,
            ),
            messages=RelationalDataSource(
                settings.database_url,
                pool_size=settings.database_pool_size,
                pool_timeout=settings.pool_timeout,
                echo=settings.sql_echo,
            ),
        )

    raise ValueError(f"Unknown store backend: {settings.store_backend}")
