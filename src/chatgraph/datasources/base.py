"""Core data source interface shared by every backing store adapter."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from ..exceptions import ChatGraphError, ConnectionTimeoutError, StoreOperationError
from ..logging import get_logger

logger = get_logger(__name__)

Record = dict[str, Any]
Filter = dict[str, Any]

T = TypeVar("T")


class DataSource(ABC):
    """Abstract base class for store adapters.

    Subclasses implement the ``_find_many`` / ``_find_one`` / ``_create``
    hooks against their native client. The public methods borrow a slot from
    the adapter's bounded pool first, so callers queue when the pool is
    exhausted and fail with :class:`ConnectionTimeoutError` once
    ``pool_timeout`` elapses. Driver exceptions are wrapped in
    :class:`StoreOperationError`.
    """

    name: str = "datasource"

    # Native exceptions meaning "no connection could be obtained in time"
    timeout_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, pool_size: int = 1, pool_timeout: float = 30.0):
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        self.pool_size = pool_size
        self.pool_timeout = pool_timeout
        self._slots = asyncio.Semaphore(pool_size)

    @property
    @abstractmethod
    def entities(self) -> frozenset[str]:
        """Entity kinds owned by this adapter."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying connection pool."""

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection pool."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check that the store is reachable."""

    @abstractmethod
    async def _find_many(self, entity: str, filter: Filter) -> list[Record | None]:
        pass

    @abstractmethod
    async def _find_one(self, entity: str, filter: Filter) -> Record | None:
        pass

    @abstractmethod
    async def _create(self, entity: str, fields: Record) -> Record:
        pass

    async def find_many(self, entity: str, filter: Filter | None = None) -> list[Record | None]:
        """Find every record of ``entity`` matching ``filter`` (equality on each key)."""
        return await self._call("find_many", entity, lambda: self._find_many(entity, filter or {}))

    async def find_one(self, entity: str, filter: Filter) -> Record | None:
        """Find a single record, or ``None`` when nothing matches."""
        return await self._call("find_one", entity, lambda: self._find_one(entity, filter))

    async def create(self, entity: str, fields: Record) -> Record:
        """Create one record atomically and return it with store-assigned fields."""
        return await self._call("create", entity, lambda: self._create(entity, dict(fields)))

    @asynccontextmanager
    async def borrow(self) -> AsyncIterator[None]:
        """Hold one pool slot for the duration of the block."""
        try:
            await asyncio.wait_for(self._slots.acquire(), timeout=self.pool_timeout)
        except TimeoutError:
            logger.warning(
                "Timed out waiting for store connection",
                store=self.name,
                timeout=self.pool_timeout,
            )
            raise ConnectionTimeoutError(self.name, self.pool_timeout) from None
        try:
            yield
        finally:
            self._slots.release()

    async def _call(self, operation: str, entity: str, fn: Callable[[], Awaitable[T]]) -> T:
        if entity not in self.entities:
            raise ValueError(f"{self.name} does not own entity kind '{entity}'")

        async with self.borrow():
            try:
                return await fn()
            except ChatGraphError:
                raise
            except self.timeout_errors as e:
                logger.warning("Store connection timeout", store=self.name, operation=operation)
                raise ConnectionTimeoutError(self.name, self.pool_timeout) from e
            except Exception as e:
                logger.error(
                    "Store operation failed",
                    store=self.name,
                    operation=operation,
                    entity=entity,
                    error=str(e),
                )
                raise StoreOperationError(self.name, operation, e) from e
