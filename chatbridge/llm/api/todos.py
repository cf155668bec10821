"""Daily standup and todo endpoints."""

from fastapi import APIRouter, Depends

from ..dependencies import get_current_user_id, get_todo_store
from ..schemas.todo import (
    AddTodoRequest,
    OrganizeTodosRequest,
    OrganizeTodosResult,
    TodayStandup,
    Todo,
    UpdateTodoRequest,
)
from ..services.todo_store import TodoStore

router = APIRouter(prefix="/todos", tags=["todos"])


@router.get("/today", response_model=TodayStandup)
async def get_today_standup(
    user_id: str = Depends(get_current_user_id),
    todos: TodoStore = Depends(get_todo_store),
) -> TodayStandup:
    return await todos.get_today_standup(user_id)


@router.post("", response_model=list[Todo])
async def add_todo(
    request: AddTodoRequest,
    user_id: str = Depends(get_current_user_id),
    todos: TodoStore = Depends(get_todo_store),
) -> list[Todo]:
    return await todos.add_todos(
        user_id,
        [request.text],
        standup_id=request.standup_id,
        parent_todo_id=request.parent_todo_id,
    )


@router.patch("/{todo_id}", response_model=Todo)
async def update_todo(
    todo_id: str,
    request: UpdateTodoRequest,
    user_id: str = Depends(get_current_user_id),
    todos: TodoStore = Depends(get_todo_store),
) -> Todo:
    changes = {}
    if "parent_todo_id" in request.model_fields_set:
        changes["parent_todo_id"] = request.parent_todo_id
    return await todos.update_todo(
        user_id, todo_id, text=request.text, status=request.status, **changes
    )


@router.delete("/{todo_id}", response_model=Todo)
async def delete_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    todos: TodoStore = Depends(get_todo_store),
) -> Todo:
    return await todos.delete_todo(user_id, todo_id)


@router.post("/organize", response_model=OrganizeTodosResult)
async def organize_todos(
    request: OrganizeTodosRequest,
    user_id: str = Depends(get_current_user_id),
    todos: TodoStore = Depends(get_todo_store),
) -> OrganizeTodosResult:
    return await todos.organize_todos(user_id, request.relationships)
