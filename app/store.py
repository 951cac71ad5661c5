from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Request
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.errors import not_found, storage
from app.models import Url
from app.schemas import UrlFields


def utcnow() -> datetime:
    # SQLite DateTime columns hold naive values; everything stored is UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MappingStore:
    """
    Owns every persisted Url row.

    Each operation runs in its own session and transaction, so a single
    record is always written atomically and callers only ever see
    detached snapshots.
    """

    def __init__(self, sessions: async_sessionmaker) -> None:
        self._sessions = sessions

    async def lookup_by_path(self, path: str) -> Url | None:
        """
        Exact match on path. Paths are not unique in the schema, so
        duplicates resolve to the lowest id.
        """
        stmt = select(Url).where(Url.path == path).order_by(Url.id).limit(1)
        try:
            async with self._sessions() as session:
                return (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise storage("fetch from path failed", e) from e

    async def list_all(self) -> list[Url]:
        try:
            async with self._sessions() as session:
                rows = await session.execute(select(Url).order_by(Url.id))
                return list(rows.scalars().all())
        except SQLAlchemyError as e:
            raise storage("fetch all failed", e) from e

    async def insert(self, fields: UrlFields) -> Url:
        now = utcnow()
        row = Url(
            path=fields.path,
            title=fields.title,
            body=fields.body,
            icon=fields.icon,
            redirect=fields.redirect,
            hits=0,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._sessions() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as e:
            raise storage("insert failed", e) from e
        return row

    async def update(self, url_id: int, fields: UrlFields) -> None:
        """
        Overwrites the mutable fields of one row and refreshes updated_at.
        id, hits and created_at are never touched.
        """
        stmt = (
            update(Url)
            .where(Url.id == url_id)
            .values(
                path=fields.path,
                title=fields.title,
                body=fields.body,
                icon=fields.icon,
                redirect=fields.redirect,
                updated_at=utcnow(),
            )
        )
        try:
            async with self._sessions() as session, session.begin():
                matched = (await session.execute(stmt)).rowcount
        except SQLAlchemyError as e:
            raise storage("update failed", e) from e

        if matched == 0:
            raise not_found(f"url {url_id} not found")

    async def delete(self, url_id: int) -> None:
        # Deleting an absent id is not an error.
        try:
            async with self._sessions() as session, session.begin():
                await session.execute(delete(Url).where(Url.id == url_id))
        except SQLAlchemyError as e:
            raise storage("delete failed", e) from e

    async def increment_hits(self, url_id: int) -> None:
        # Single UPDATE so concurrent increments never lose a count;
        # a row deleted in the meantime simply matches nothing.
        stmt = update(Url).where(Url.id == url_id).values(hits=Url.hits + 1)
        try:
            async with self._sessions() as session, session.begin():
                await session.execute(stmt)
        except SQLAlchemyError as e:
            raise storage("incr failed", e) from e


def get_store(request: Request) -> MappingStore:
    return request.app.state.store
