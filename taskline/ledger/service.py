"""Atomic application of ledger increments."""

from __future__ import annotations

import typing as typ

from sqlalchemy import Update, and_, case, literal, or_, select, update
from sqlalchemy.exc import IntegrityError

from taskline.tracking.storage import ContributorLedgerEntry, UTCDateTime

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

    from .models import LedgerIncrement

_Entry = ContributorLedgerEntry


def _name_loses_to(name: str) -> ColumnElement[bool]:
    """Return a condition true when the stored name should yield to ``name``."""
    return or_(_Entry.contributor_name.is_(None), _Entry.contributor_name < name)


class ContributorLedger:
    """Add increments to ``contributor_ledger`` rows.

    Every update is a single ``UPDATE ... SET total = total + :n`` with
    ``min``/``max`` expressions for the commit window, so concurrent
    writers never lose each other's counts. The first increment for a key
    inserts the row inside a savepoint; a concurrent insert of the same key
    falls back to the update.

    The stored name follows the latest commit; on equal timestamps the
    greater name is kept, matching ``LedgerIncrement.combine``.
    """

    @staticmethod
    def _update_statement(
        project_id: str, email: str, increment: LedgerIncrement
    ) -> Update:
        values: dict[str, typ.Any] = {
            "total_commits": _Entry.total_commits + increment.commits,
            "total_lines_added": _Entry.total_lines_added + increment.lines_added,
            "total_lines_modified": _Entry.total_lines_modified
            + increment.lines_modified,
            "total_lines_deleted": _Entry.total_lines_deleted + increment.lines_deleted,
            "total_files_changed": _Entry.total_files_changed + increment.files_changed,
        }
        if increment.first_commit_at is not None:
            first = literal(increment.first_commit_at, UTCDateTime())
            values["first_commit_at"] = case(
                (
                    or_(_Entry.first_commit_at.is_(None), _Entry.first_commit_at > first),
                    first,
                ),
                else_=_Entry.first_commit_at,
            )
        name = increment.contributor_name
        if increment.last_commit_at is not None:
            last = literal(increment.last_commit_at, UTCDateTime())
            values["last_commit_at"] = case(
                (
                    or_(_Entry.last_commit_at.is_(None), _Entry.last_commit_at <= last),
                    last,
                ),
                else_=_Entry.last_commit_at,
            )
            if name:
                values["contributor_name"] = case(
                    (_Entry.last_commit_at < last, literal(name)),
                    (
                        and_(
                            or_(
                                _Entry.last_commit_at.is_(None),
                                _Entry.last_commit_at == last,
                            ),
                            _name_loses_to(name),
                        ),
                        literal(name),
                    ),
                    else_=_Entry.contributor_name,
                )
        elif name:
            values["contributor_name"] = case(
                (_name_loses_to(name), literal(name)),
                else_=_Entry.contributor_name,
            )

        return (
            update(_Entry)
            .where(_Entry.project_id == project_id, _Entry.contributor_email == email)
            .values(values)
            .execution_options(synchronize_session=False)
        )

    async def apply(
        self,
        session: AsyncSession,
        project_id: str,
        email: str,
        increment: LedgerIncrement,
    ) -> None:
        """Add ``increment`` to the ``(project_id, email)`` entry."""
        key = email.strip().lower()
        stmt = self._update_statement(project_id, key, increment)
        result = await session.execute(stmt)
        if result.rowcount:
            return

        entry = _Entry(
            project_id=project_id,
            contributor_email=key,
            contributor_name=increment.contributor_name,
            total_commits=increment.commits,
            total_lines_added=increment.lines_added,
            total_lines_modified=increment.lines_modified,
            total_lines_deleted=increment.lines_deleted,
            total_files_changed=increment.files_changed,
            first_commit_at=increment.first_commit_at,
            last_commit_at=increment.last_commit_at,
        )
        try:
            async with session.begin_nested():
                session.add(entry)
                await session.flush()
        except IntegrityError:
            await session.execute(stmt)

    async def apply_many(
        self,
        session: AsyncSession,
        project_id: str,
        increments: cabc.Mapping[str, LedgerIncrement],
    ) -> None:
        """Apply one increment per contributor email."""
        for email in sorted(increments):
            await self.apply(session, project_id, email, increments[email])

    @staticmethod
    async def entries(
        session: AsyncSession, project_id: str
    ) -> list[ContributorLedgerEntry]:
        """Return the project's ledger rows ordered by email."""
        rows = await session.scalars(
            select(_Entry)
            .where(_Entry.project_id == project_id)
            .order_by(_Entry.contributor_email)
        )
        return list(rows.all())
