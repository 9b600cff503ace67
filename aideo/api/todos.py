from __future__ import annotations

from fastapi import APIRouter, Depends

from aideo.api.schemas import TodoBatchBody, TodoCreateBody, TodoUpdateBody
from aideo.deps import get_todo_repo
from aideo.models.todo import Priority, TodoFilter, TodoStatus

router = APIRouter(prefix="/v1", tags=["todos"])


@router.get("/todos")
async def list_todos(
    status: TodoStatus | None = None,
    completed: bool | None = None,
    priority: Priority | None = None,
    search: str | None = None,
    tag: str | None = None,
    repo=Depends(get_todo_repo),
):
    todo_filter = TodoFilter(
        status=status,
        completed=completed,
        priority=priority,
        search=search or None,
        tag=tag or None,
    )
    todos = await repo.get_all(todo_filter)
    return {"todos": [todo.to_dict() for todo in todos]}


@router.post("/todos")
async def create_todo(body: TodoCreateBody, repo=Depends(get_todo_repo)):
    todo = await repo.create(body.to_request())
    return {"todo": todo.to_dict()}


@router.post("/todos/batch")
async def batch_create_todos(body: TodoBatchBody, repo=Depends(get_todo_repo)):
    todos = await repo.batch_create([item.to_request() for item in body.todos])
    return {"todos": [todo.to_dict() for todo in todos]}


@router.get("/todos/statistics")
async def todo_statistics(repo=Depends(get_todo_repo)):
    stats = await repo.get_statistics()
    return {"statistics": stats.to_dict()}


@router.delete("/todos/completed")
async def delete_completed_todos(repo=Depends(get_todo_repo)):
    count = await repo.delete_completed()
    return {"deleted_count": count}


@router.get("/todos/{todo_id}")
async def get_todo(todo_id: str, repo=Depends(get_todo_repo)):
    todo = await repo.get_by_id(todo_id)
    return {"todo": todo.to_dict()}


@router.patch("/todos/{todo_id}")
async def update_todo(todo_id: str, body: TodoUpdateBody, repo=Depends(get_todo_repo)):
    todo = await repo.update(todo_id, body.to_request())
    return {"todo": todo.to_dict()}


@router.delete("/todos/{todo_id}")
async def delete_todo(todo_id: str, repo=Depends(get_todo_repo)):
    await repo.delete(todo_id)
    return {"deleted": True, "id": todo_id}
