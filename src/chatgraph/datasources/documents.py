"""Document store adapter backed by MongoDB."""

from dataclasses import dataclass
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError, WaitQueueTimeoutError

from ..logging import get_logger
from .base import DataSource, Filter, Record

logger = get_logger(__name__)


@dataclass(frozen=True)
class Collection:
    """Maps an entity kind onto a collection; ``_id`` is exposed as ``id_field``."""

    name: str
    id_field: str


DEFAULT_COLLECTIONS = {"user": Collection("users", "userID")}


class _NoMatch(Exception):
    """The filter can never match (e.g. a malformed identifier)."""


class DocumentDataSource(DataSource):
    """MongoDB adapter using the asyncio client from pymongo."""

    name = "documents"
    timeout_errors = (WaitQueueTimeoutError,)

    def __init__(
        self,
        url: str,
        database: str,
        pool_size: int = 1,
        pool_timeout: float = 30.0,
        collections: dict[str, Collection] | None = None,
        client: AsyncMongoClient | None = None,
    ):
        super().__init__(pool_size=pool_size, pool_timeout=pool_timeout)
        self.url = url
        self.database_name = database
        self.collections = collections or DEFAULT_COLLECTIONS
        self._client = client

    @property
    def entities(self) -> frozenset[str]:
        return frozenset(self.collections)

    @property
    def client(self) -> AsyncMongoClient:
        if self._client is None:
            raise RuntimeError("Document store not connected")
        return self._client

    async def connect(self) -> None:
        if self._client is None:
            self._client = AsyncMongoClient(
                self.url,
                maxPoolSize=self.pool_size,
                waitQueueTimeoutMS=int(self.pool_timeout * 1000),
            )
        try:
            await self.client.admin.command("ping")
        except Exception:
            await self.close()
            raise
        logger.info("Document store connected", database=self.database_name)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Document store connection closed")

    async def health_check(self) -> bool:
        try:
            await self.client.admin.command("ping")
            return True
        except (PyMongoError, RuntimeError) as e:
            logger.error("Document store health check failed", error=str(e))
            return False

    def _collection(self, entity: str):
        return self.client[self.database_name][self.collections[entity].name]

    def _to_query(self, entity: str, filter: Filter) -> dict[str, Any]:
        id_field = self.collections[entity].id_field
        query = dict(filter)
        if id_field in query:
            try:
                query["_id"] = ObjectId(str(query.pop(id_field)))
            except InvalidId:
                raise _NoMatch() from None
        return query

    def _to_record(self, entity: str, document: dict[str, Any] | None) -> Record | None:
        if document is None:
            return None
        record = {k: v for k, v in document.items() if k != "_id"}
        record[self.collections[entity].id_field] = str(document["_id"])
        return record

    async def _find_many(self, entity: str, filter: Filter) -> list[Record | None]:
        try:
            query = self._to_query(entity, filter)
        except _NoMatch:
            return []
        cursor = self._collection(entity).find(query)
        documents = await cursor.to_list(length=None)
        return [self._to_record(entity, d) for d in documents]

    async def _find_one(self, entity: str, filter: Filter) -> Record | None:
        try:
            query = self._to_query(entity, filter)
        except _NoMatch:
            return None
        document = await self._collection(entity).find_one(query)
        return self._to_record(entity, document)

    async def _create(self, entity: str, fields: Record) -> Record:
        document = dict(fields)
        document.pop(self.collections[entity].id_field, None)
        result = await self._collection(entity).insert_one(document)
        document["_id"] = result.inserted_id
        return self._to_record(entity, document)  # type: ignore[return-value]
