"""At-most-once commit recording per ``(project_id, sha)``."""

from __future__ import annotations

import typing as typ

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from taskline.tracking.storage import CommitRecord

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession


class CommitDeduplicator:
    """Check-then-claim guard over the ``commit_records`` unique constraint.

    :meth:`seen` is a cheap read used to skip work such as statistics
    lookups. :meth:`claim` is the authoritative step: it inserts inside a
    savepoint so a concurrent delivery that wins the race turns this insert
    into a no-op instead of failing the surrounding transaction.
    """

    async def seen(
        self,
        session: AsyncSession,
        project_id: str,
        shas: cabc.Iterable[str],
    ) -> frozenset[str]:
        """Return the subset of ``shas`` already recorded for the project."""
        wanted = sorted(set(shas))
        if not wanted:
            return frozenset()
        rows = await session.scalars(
            select(CommitRecord.sha).where(
                CommitRecord.project_id == project_id,
                CommitRecord.sha.in_(wanted),
            )
        )
        return frozenset(rows.all())

    async def is_duplicate(
        self, session: AsyncSession, project_id: str, sha: str
    ) -> bool:
        """Return whether ``sha`` is already recorded for the project."""
        return sha in await self.seen(session, project_id, [sha])

    async def claim(self, session: AsyncSession, record: CommitRecord) -> bool:
        """Insert ``record``; return ``False`` if its key already exists.

        On ``False`` the savepoint is rolled back and ``record`` is left
        transient, so the caller must not touch it further.
        """
        try:
            async with session.begin_nested():
                session.add(record)
                await session.flush()
        except IntegrityError:
            return False
        return True
