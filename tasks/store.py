"""
tasks/store.py -- SQLAlchemy-backed persistence layer for to-do tasks.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in tasks/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. TaskStore is the repository; _row_to_task
is the mapper. Route handlers never touch SQL directly.

Ownership: every read and write matches on (id, user_id) and skips
soft-deleted rows. A task that exists but belongs to someone else is
reported exactly like a missing one (RecordNotFoundError), so ids of other
users' tasks cannot be probed.

Security: all queries use bound parameters. Sort columns come from a fixed
whitelist, never from raw user input.

Usage:
    store = TaskStore("sqlite:///taskboard.db")
    task = store.create_task(Task(user_id=1, title="Write report"))
    page = store.list_tasks(1, TaskQuery(status="todo", sort_by="due_date", order="asc"))
    store.update_status(task.id, 1, "completed")
    store.delete_task(task.id, 1)
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, case, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import RecordNotFoundError, StoreError
from tasks.models import DEFAULT_PRIORITY, DEFAULT_STATUS, PRIORITIES, Task, TaskPage, TaskQuery

_MAX_PAGE_SIZE = 100

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("title", String(200), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("due_date", String(32)),  # ISO 8601, UTC
    Column("priority", String(10), nullable=False, server_default=DEFAULT_PRIORITY),
    Column("status", String(20), nullable=False, server_default=DEFAULT_STATUS),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("deleted_at", String(32), index=True),  # NULL = live row
)

# Priority sorts by rank (low < medium < high), not alphabetically.
_PRIORITY_RANK = case(
    *[(_tasks.c.priority == p, rank) for rank, p in enumerate(PRIORITIES)],
    else_=len(PRIORITIES),
)

_SORT_COLUMNS = {
    "created_at": _tasks.c.created_at,
    "due_date": _tasks.c.due_date,
    "priority": _PRIORITY_RANK,
    "title": _tasks.c.title,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _owned(task_id: int, user_id: int):
    return (_tasks.c.id == task_id) & (_tasks.c.user_id == user_id) & _tasks.c.deleted_at.is_(None)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TaskStore:
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # Sync route handlers run in a threadpool; one connection may be
            # touched by several worker threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_task(self, task: Task) -> Task:
        """Insert a new task and return it as stored (id and timestamps filled in)."""
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _tasks.insert().values(
                        user_id=task.user_id,
                        title=task.title,
                        description=task.description or "",
                        due_date=task.due_date,
                        priority=task.priority or DEFAULT_PRIORITY,
                        status=task.status or DEFAULT_STATUS,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
                task_id = result.inserted_primary_key[0]
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to create task: {exc}") from exc
        return self.get_task(task_id, task.user_id)

    def update_task(
        self,
        task_id: int,
        user_id: int,
        *,
        title: str,
        description: str = "",
        due_date: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> Task:
        """Replace a task's details. priority is left unchanged when None.

        title, description and due_date are always written, so omitting
        due_date clears it.
        """
        values = {
            "title": title,
            "description": description or "",
            "due_date": due_date,
            "updated_at": _now_iso(),
        }
        if priority:
            values["priority"] = priority
        self._update(task_id, user_id, values, "update task")
        return self.get_task(task_id, user_id)

    def update_status(self, task_id: int, user_id: int, status: str) -> Task:
        """Set only the status of a task."""
        self._update(task_id, user_id, {"status": status, "updated_at": _now_iso()}, "update task status")
        return self.get_task(task_id, user_id)

    def delete_task(self, task_id: int, user_id: int) -> None:
        """Soft-delete a task. The row stays, but no query returns it again."""
        now = _now_iso()
        self._update(task_id, user_id, {"deleted_at": now, "updated_at": now}, "delete task")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_task(self, task_id: int, user_id: int) -> Task:
        """Fetch one live task owned by user_id. Raises RecordNotFoundError otherwise."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_tasks.select().where(_owned(task_id, user_id))).fetchone()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to retrieve task: {exc}") from exc
        if row is None:
            raise RecordNotFoundError("Task not found")
        return _row_to_task(row)

    def list_tasks(self, user_id: int, query: Optional[TaskQuery] = None) -> TaskPage:
        """Return one page of the user's live tasks, filtered and sorted.

        total_items counts every matching task (not just this page);
        total_pages is ceil(total_items / page_size) and 0 when nothing matches.
        Ties on the sort key fall back to id so paging is stable.
        """
        q = query or TaskQuery()
        page = max(q.page, 1)
        page_size = min(max(q.page_size, 1), _MAX_PAGE_SIZE)

        where = (_tasks.c.user_id == user_id) & _tasks.c.deleted_at.is_(None)
        if q.status:
            where = where & (_tasks.c.status == q.status)
        if q.priority:
            where = where & (_tasks.c.priority == q.priority)

        sort_col = _SORT_COLUMNS.get(q.sort_by, _tasks.c.created_at)
        if q.order == "asc":
            ordering = (sort_col.asc(), _tasks.c.id.asc())
        else:
            ordering = (sort_col.desc(), _tasks.c.id.desc())

        try:
            with self.engine.connect() as conn:
                total = conn.execute(select(func.count()).select_from(_tasks).where(where)).scalar() or 0
                rows = conn.execute(
                    _tasks.select()
                    .where(where)
                    .order_by(*ordering)
                    .limit(page_size)
                    .offset((page - 1) * page_size)
                ).fetchall()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to retrieve tasks: {exc}") from exc

        return TaskPage(
            tasks=[_row_to_task(r) for r in rows],
            current_page=page,
            page_size=page_size,
            total_items=total,
            total_pages=(total + page_size - 1) // page_size,
        )

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _update(self, task_id: int, user_id: int, values: dict, action: str) -> None:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_tasks.update().where(_owned(task_id, user_id)).values(**values))
                conn.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to {action}: {exc}") from exc
        if result.rowcount == 0:
            raise RecordNotFoundError("Task not found")


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description or "",
        due_date=row.due_date,
        priority=row.priority,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )
