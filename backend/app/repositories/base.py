import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Sequence

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.errors import DependencyUnavailable, PersistenceFailure

logger = logging.getLogger(__name__)


class BaseRepository:
    """
    Repository base holding the session factory.

    Each call opens and closes its own AsyncSession. Read failures surface as
    DependencyUnavailable, write failures as PersistenceFailure. Cache and
    embedding writes go through _upsert so concurrent writers to one key
    never collide on insert.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _reading(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            raise DependencyUnavailable("database", f"{operation}: {e}", e) from e

    @asynccontextmanager
    async def _writing(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except SQLAlchemyError:
                    await session.rollback()
                    raise
        except SQLAlchemyError as e:
            logger.error(f"Write failed ({operation}): {e}")
            raise PersistenceFailure(operation, e) from e

    @staticmethod
    async def _upsert(
        db: AsyncSession,
        model,
        values: Dict[str, Any],
        key: Sequence[str],
        overwrite: bool = True,
    ) -> None:
        """
        Insert a row, resolving a conflict on `key` inside the database.

        With overwrite the conflicting row takes the new values (last writer
        wins); without it the existing row is kept.
        """
        insert = postgresql.insert if db.bind.dialect.name == "postgresql" else sqlite.insert
        stmt = insert(model).values(**values)
        if overwrite:
            stmt = stmt.on_conflict_do_update(
                index_elements=list(key),
                set_={name: stmt.excluded[name] for name in values if name not in key},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(key))
        await db.execute(stmt)
