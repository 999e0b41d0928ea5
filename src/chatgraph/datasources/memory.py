"""In-process data source for local development and tests."""

import asyncio
import itertools
import secrets
from collections.abc import Mapping
from dataclasses import dataclass

from ..logging import get_logger
from .base import DataSource, Filter, Record

logger = get_logger(__name__)


@dataclass(frozen=True)
class MemoryEntity:
    """How records of one entity kind are identified."""

    id_field: str
    auto_increment: bool = False


def _opaque_id() -> str:
    # Same shape as a MongoDB ObjectId hex string
    return secrets.token_hex(12)


class InMemoryDataSource(DataSource):
    """Dict-backed adapter with store-assigned identifiers.

    ``latency`` simulates store I/O by sleeping inside each call while the
    pool slot is held.
    """

    def __init__(
        self,
        name: str,
        entities: Mapping[str, MemoryEntity],
        pool_size: int = 1,
        pool_timeout: float = 30.0,
        latency: float = 0.0,
    ):
        super().__init__(pool_size=pool_size, pool_timeout=pool_timeout)
        self.name = name
        self.latency = latency
        self._entities = dict(entities)
        self._records: dict[str, list[Record]] = {kind: [] for kind in self._entities}
        self._counters = {kind: itertools.count(1) for kind in self._entities}
        self._connected = False

    @property
    def entities(self) -> frozenset[str]:
        return frozenset(self._entities)

    async def connect(self) -> None:
        self._connected = True
        logger.info("In-memory store connected", store=self.name)

    async def close(self) -> None:
        self._connected = False

    async def health_check(self) -> bool:
        return self._connected

    def _next_id(self, entity: str) -> int | str:
        if self._entities[entity].auto_increment:
            return next(self._counters[entity])
        return _opaque_id()

    async def _pause(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)

    @staticmethod
    def _matches(record: Record, filter: Filter) -> bool:
        return all(record.get(key) == value for key, value in filter.items())

    async def _find_many(self, entity: str, filter: Filter) -> list[Record | None]:
        await self._pause()
        return [dict(r) for r in self._records[entity] if self._matches(r, filter)]

    async def _find_one(self, entity: str, filter: Filter) -> Record | None:
        await self._pause()
        for record in self._records[entity]:
            if self._matches(record, filter):
                return dict(record)
        return None

    async def _create(self, entity: str, fields: Record) -> Record:
        await self._pause()
        record = dict(fields)
        record[self._entities[entity].id_field] = self._next_id(entity)
        self._records[entity].append(record)
        return dict(record)


def users_memory_source(**kwargs) -> InMemoryDataSource:
    """In-memory stand-in for the document store."""
    return InMemoryDataSource("documents", {"user": MemoryEntity("userID")}, **kwargs)


def messages_memory_source(**kwargs) -> InMemoryDataSource:
    """In-memory stand-in for the relational store."""
    return InMemoryDataSource(
        "relational", {"message": MemoryEntity("id", auto_increment=True)}, **kwargs
    )

