"""
api/routes/v1/tasks.py -- Task CRUD routes for the Taskboard REST API.

Routes:
  POST   /tasks               -- create task (status starts at todo)
  GET    /tasks               -- list own tasks; paging, filtering, sorting
  GET    /tasks/{task_id}     -- task detail
  PUT    /tasks/{task_id}     -- replace title/description/due_date/priority
  PATCH  /tasks/{task_id}/status -- update status only
  DELETE /tasks/{task_id}     -- soft delete

Every route requires a session. The router-level dependency runs the request
gate once per request; handlers read the resolved owner id back from
request.state via current_user_id(). TaskStore raises RecordNotFoundError for
missing, deleted, and foreign tasks alike; api/main.py maps it to 404.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import (
    MessageResponse,
    OrderEnum,
    PaginationMeta,
    PriorityEnum,
    SortByEnum,
    StatusEnum,
    TaskListResponse,
    TaskResponse,
    TaskStatusWrite,
    TaskWrite,
)
from auth.dependencies import current_user_id, get_current_user
from tasks.models import DEFAULT_PRIORITY, Task, TaskQuery
from tasks.store import TaskStore

router = APIRouter(dependencies=[Depends(get_current_user)])


def _store(request: Request) -> TaskStore:
    return request.app.state.task_store


# ---------------------------------------------------------------------------
# POST /tasks
# ---------------------------------------------------------------------------


@router.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(request: Request, body: TaskWrite) -> TaskResponse:
    """Create a task owned by the caller."""
    task = _store(request).create_task(
        Task(
            user_id=current_user_id(request),
            title=body.title,
            description=body.description,
            due_date=body.due_date_iso(),
            priority=body.priority.value if body.priority else DEFAULT_PRIORITY,
        )
    )
    return TaskResponse.from_task(task)


# ---------------------------------------------------------------------------
# GET /tasks
# ---------------------------------------------------------------------------


@router.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    request: Request,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=5, le=100),
    status: Optional[StatusEnum] = None,
    priority: Optional[PriorityEnum] = None,
    sort_by: SortByEnum = SortByEnum.created_at,
    order: OrderEnum = OrderEnum.desc,
) -> TaskListResponse:
    """Return one page of the caller's tasks. Defaults: newest first, 10 per page."""
    result = _store(request).list_tasks(
        current_user_id(request),
        TaskQuery(
            status=status.value if status else None,
            priority=priority.value if priority else None,
            sort_by=sort_by.value,
            order=order.value,
            page=page,
            page_size=page_size,
        ),
    )
    return TaskListResponse(
        tasks=[TaskResponse.from_task(t) for t in result.tasks],
        pagination=PaginationMeta(
            current_page=result.current_page,
            page_size=result.page_size,
            total_items=result.total_items,
            total_pages=result.total_pages,
        ),
    )


# ---------------------------------------------------------------------------
# Single-task routes
# ---------------------------------------------------------------------------


@router.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(request: Request, task_id: int) -> TaskResponse:
    return TaskResponse.from_task(_store(request).get_task(task_id, current_user_id(request)))


@router.put("/tasks/{task_id}", response_model=TaskResponse)
def update_task(request: Request, task_id: int, body: TaskWrite) -> TaskResponse:
    """Replace a task's details. Status is changed through the /status route."""
    task = _store(request).update_task(
        task_id,
        current_user_id(request),
        title=body.title,
        description=body.description,
        due_date=body.due_date_iso(),
        priority=body.priority.value if body.priority else None,
    )
    return TaskResponse.from_task(task)


@router.patch("/tasks/{task_id}/status", response_model=TaskResponse)
def update_task_status(request: Request, task_id: int, body: TaskStatusWrite) -> TaskResponse:
    task = _store(request).update_status(task_id, current_user_id(request), body.status.value)
    return TaskResponse.from_task(task)


@router.delete("/tasks/{task_id}", response_model=MessageResponse)
def delete_task(request: Request, task_id: int) -> MessageResponse:
    _store(request).delete_task(task_id, current_user_id(request))
    return MessageResponse(message="Task deleted successfully")
