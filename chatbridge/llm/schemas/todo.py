"""Pydantic schemas for daily standups, their todos and the todo endpoints."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

TodoStatusLiteral = Literal["pending", "in_progress", "completed", "cancelled"]
OUTSTANDING_STATUSES: frozenset[str] = frozenset({"pending", "in_progress"})


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class Standup(BaseModel):
    id: str = Field(default_factory=_new_id)
    day: date
    user_id: str
    created_at: datetime = Field(default_factory=_utcnow)


class Todo(BaseModel):
    id: str = Field(default_factory=_new_id)
    text: str
    standup_id: str
    status: TodoStatusLiteral = "pending"
    parent_todo_id: str | None = None
    user_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class TodayStandup(BaseModel):
    previous_standup: Standup | None = None
    standup: Standup
    todos: list[Todo] = Field(default_factory=list)
    previous_todos: list[Todo] = Field(default_factory=list)


class AddTodoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1)
    standup_id: str | None = Field(None, alias="standupId")
    parent_todo_id: str | None = Field(None, alias="parentTodoId")


class UpdateTodoRequest(BaseModel):
    """Partial update; fields left out are untouched, `parentTodoId: null` detaches."""

    model_config = ConfigDict(populate_by_name=True)

    text: str | None = Field(None, min_length=1)
    status: TodoStatusLiteral | None = None
    parent_todo_id: str | None = Field(None, alias="parentTodoId")


class TodoRelationship(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    child_todo_text: str = Field(..., alias="childTodoText")
    parent_todo_text: str = Field(..., alias="parentTodoText")


class OrganizeTodosRequest(BaseModel):
    relationships: list[TodoRelationship]


class OrganizedTodo(BaseModel):
    child: Todo
    parent: Todo
    updated_todo: Todo


class OrganizeTodosResult(BaseModel):
    updated_todos: list[OrganizedTodo] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
