"""Relational store adapter backed by SQLAlchemy's asyncio engine."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, MetaData, String, Text, func, inspect, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..logging import get_logger
from .base import DataSource, Filter, Record

logger = get_logger(__name__)

# Naming convention for deterministic constraint/index names
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=naming_convention)


class Messages(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Weak reference to a user in the document store; no foreign key exists
    sent_by: Mapped[str] = mapped_column("sentBy", String(255), nullable=False)
    text: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


DEFAULT_MODELS: dict[str, type[Base]] = {"message": Messages}


def _column_keys(model: type[Base]) -> dict[str, str]:
    """Map record keys (column names) to mapped attribute names."""
    return {attr.columns[0].name: attr.key for attr in inspect(model).column_attrs}


class RelationalDataSource(DataSource):
    """SQL adapter; record keys are column names (``sentBy``, ``createdAt``...)."""

    name = "relational"
    timeout_errors = (PoolTimeoutError,)

    def __init__(
        self,
        url: str,
        pool_size: int = 1,
        pool_timeout: float = 30.0,
        echo: bool = False,
        models: dict[str, type[Base]] | None = None,
    ):
        super().__init__(pool_size=pool_size, pool_timeout=pool_timeout)
        self.url = url
        self.echo = echo
        self.models = models or DEFAULT_MODELS
        self._keys = {entity: _column_keys(model) for entity, model in self.models.items()}
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def entities(self) -> frozenset[str]:
        return frozenset(self.models)

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Relational store not connected")
        return self._engine

    async def connect(self) -> None:
        if self._engine is None:
            self._engine = create_async_engine(
                self.url,
                pool_size=self.pool_size,
                max_overflow=0,
                pool_timeout=self.pool_timeout,
                echo=self.echo,
            )
            self._sessions = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                autoflush=False,
                expire_on_commit=False,
            )
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            await self.close()
            raise
        logger.info("Relational store connected", url=self._engine.url.render_as_string())

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessions = None
            logger.info("Relational store connection closed")

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, RuntimeError) as e:
            logger.error("Relational store health check failed", error=str(e))
            return False

    async def create_schema(self) -> None:
        """Create the tables for every mapped model that does not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Relational schema created", tables=sorted(Base.metadata.tables))

    def _session(self) -> AsyncSession:
        if self._sessions is None:
            raise RuntimeError("Relational store not connected")
        return self._sessions()

    def _to_record(self, entity: str, row: Base) -> Record:
        return {column: getattr(row, attr) for column, attr in self._keys[entity].items()}

    def _to_attributes(self, entity: str, values: dict[str, Any]) -> dict[str, Any]:
        keys = self._keys[entity]
        unknown = sorted(set(values) - set(keys))
        if unknown:
            raise ValueError(f"Unknown {entity} fields: {', '.join(unknown)}")
        return {keys[k]: v for k, v in values.items()}

    async def _find_many(self, entity: str, filter: Filter) -> list[Record | None]:
        model = self.models[entity]
        stmt = select(model).filter_by(**self._to_attributes(entity, filter))
        if "id" in self._keys[entity]:
            stmt = stmt.order_by(model.id)  # type: ignore[attr-defined]
        async with self._session() as session:
            result = await session.execute(stmt)
            return [self._to_record(entity, row) for row in result.scalars().all()]

    async def _find_one(self, entity: str, filter: Filter) -> Record | None:
        stmt = select(self.models[entity]).filter_by(**self._to_attributes(entity, filter)).limit(1)
        async with self._session() as session:
            result = await session.execute(stmt)
            row = result.scalars().first()
            return self._to_record(entity, row) if row is not None else None

    async def _create(self, entity: str, fields: Record) -> Record:
        row = self.models[entity](**self._to_attributes(entity, fields))
        async with self._session() as session:
            async with session.begin():
                session.add(row)
                await session.flush()
                await session.refresh(row)
            return self._to_record(entity, row)
