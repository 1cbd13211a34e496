"""
tasks/models.py -- Domain dataclasses for to-do tasks.

These are pure data containers with zero logic. Filtering, sorting, paging
and ownership checks live in tasks/store.py.
"""

from dataclasses import dataclass, field
from typing import Optional

PRIORITIES = ("low", "medium", "high")
STATUSES = ("todo", "in_progress", "completed")

DEFAULT_PRIORITY = "medium"
DEFAULT_STATUS = "todo"


@dataclass
class Task:
    """A to-do item owned by exactly one user.

    user_id is the owner. Every store method that reads or writes a task
    takes the caller's user id as well and matches on both, so a task is
    never visible to anyone else.

    id is None before the record is written to the database.
    """

    user_id: int
    title: str
    description: str = ""
    due_date: Optional[str] = None  # ISO 8601, UTC
    priority: str = DEFAULT_PRIORITY  # "low" | "medium" | "high"
    status: str = DEFAULT_STATUS  # "todo" | "in_progress" | "completed"
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
    deleted_at: Optional[str] = None


@dataclass
class TaskQuery:
    """Filter, sort and paging options for TaskStore.list_tasks().

    Values are already validated by the API layer. page and page_size are
    clamped again in the store so direct callers cannot request page 0 or an
    unbounded page.
    """

    status: Optional[str] = None
    priority: Optional[str] = None
    sort_by: str = "created_at"  # "created_at" | "due_date" | "priority" | "title"
    order: str = "desc"  # "asc" | "desc"
    page: int = 1
    page_size: int = 10


@dataclass
class TaskPage:
    """One page of list_tasks() results plus the totals needed for navigation."""

    tasks: list[Task] = field(default_factory=list)
    current_page: int = 1
    page_size: int = 10
    total_items: int = 0
    total_pages: int = 0
