"""In-memory, user-scoped store of daily standups and their todos."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, timezone
from uuid import uuid4

from ...core.exceptions import StandupNotFoundError, TodoNotFoundError
from ...core.logging_config import get_logger
from ..schemas.todo import (
    OUTSTANDING_STATUSES,
    OrganizedTodo,
    OrganizeTodosResult,
    Standup,
    TodayStandup,
    Todo,
    TodoRelationship,
    TodoStatusLiteral,
)

logger = get_logger(__name__)

_UNSET = object()


class TodoStore:
    """One standup per user and day, each owning an ordered list of todos.

    The first read of a day's standup that finds it empty copies the
    outstanding todos of the user's most recent earlier standup into it,
    keeping parent links between the copies.
    """

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today
        self._standups: dict[str, Standup] = {}
        self._todos: dict[str, Todo] = {}
        self._lock = asyncio.Lock()

    async def get_today_standup(self, user_id: str) -> TodayStandup:
        async with self._lock:
            standup = self._today_standup(user_id)
            previous = self._previous_standup(user_id, standup.day)

            if previous is not None and not self._todos_of(user_id, standup.id):
                copied = self._carry_over(user_id, previous, standup)
                if copied:
                    logger.info(
                        "todos_carried_over",
                        user_id=user_id,
                        standup_id=standup.id,
                        from_standup_id=previous.id,
                        count=copied,
                    )

            return TodayStandup(
                previous_standup=previous.model_copy() if previous else None,
                standup=standup.model_copy(),
                todos=_copies(self._todos_of(user_id, standup.id)),
                previous_todos=_copies(self._todos_of(user_id, previous.id)) if previous else [],
            )

    async def add_todos(
        self,
        user_id: str,
        texts: Sequence[str],
        *,
        standup_id: str | None = None,
        parent_todo_id: str | None = None,
    ) -> list[Todo]:
        """Append pending todos to `standup_id`, or to today's standup when omitted."""

        async with self._lock:
            if standup_id is None:
                standup_id = self._today_standup(user_id).id
            else:
                self._owned_standup(user_id, standup_id)
            if parent_todo_id is not None:
                self._owned_todo(user_id, parent_todo_id)

            created = [
                Todo(text=text, standup_id=standup_id, user_id=user_id, parent_todo_id=parent_todo_id)
                for text in texts
            ]
            for todo in created:
                self._todos[todo.id] = todo
        logger.info("todos_added", user_id=user_id, standup_id=standup_id, count=len(created))
        return _copies(created)

    async def update_todo(
        self,
        user_id: str,
        todo_id: str,
        *,
        text: str | None = None,
        status: TodoStatusLiteral | None = None,
        parent_todo_id: str | None | object = _UNSET,
    ) -> Todo:
        """Apply the given fields; pass `parent_todo_id=None` to detach from a parent."""

        async with self._lock:
            todo = self._owned_todo(user_id, todo_id)
            if parent_todo_id is not _UNSET and parent_todo_id is not None:
                self._owned_todo(user_id, parent_todo_id)  # type: ignore[arg-type]

            if text is not None:
                todo.text = text
            if status is not None:
                todo.status = status
            if parent_todo_id is not _UNSET:
                todo.parent_todo_id = parent_todo_id  # type: ignore[assignment]
            todo.updated_at = _utcnow()
            return todo.model_copy()

    async def delete_todo(self, user_id: str, todo_id: str) -> Todo:
        async with self._lock:
            todo = self._owned_todo(user_id, todo_id)
            del self._todos[todo_id]
        logger.info("todo_deleted", user_id=user_id, todo_id=todo_id)
        return todo

    async def organize_todos(
        self, user_id: str, relationships: Iterable[TodoRelationship]
    ) -> OrganizeTodosResult:
        """Nest today's todos under each other, matching both sides by exact text.

        Unmatched texts and self-parenting are reported in `errors` and skipped;
        the remaining relationships are still applied.
        """

        today = await self.get_today_standup(user_id)
        by_text = {todo.text: todo for todo in today.todos}
        result = OrganizeTodosResult()

        async with self._lock:
            for relationship in relationships:
                child = by_text.get(relationship.child_todo_text)
                parent = by_text.get(relationship.parent_todo_text)
                if child is None:
                    result.errors.append(f'Child todo not found: "{relationship.child_todo_text}"')
                    continue
                if parent is None:
                    result.errors.append(f'Parent todo not found: "{relationship.parent_todo_text}"')
                    continue
                if child.id == parent.id:
                    result.errors.append(
                        f'Cannot set todo as its own parent: "{relationship.child_todo_text}"'
                    )
                    continue

                stored = self._todos.get(child.id)
                if stored is None:
                    continue
                stored.parent_todo_id = parent.id
                stored.updated_at = _utcnow()
                result.updated_todos.append(
                    OrganizedTodo(child=child, parent=parent, updated_todo=stored.model_copy())
                )

        logger.info(
            "todos_organized",
            user_id=user_id,
            updated=len(result.updated_todos),
            errors=len(result.errors),
        )
        return result

    def _today_standup(self, user_id: str) -> Standup:
        today = self._today()
        for standup in self._standups.values():
            if standup.user_id == user_id and standup.day == today:
                return standup
        standup = Standup(day=today, user_id=user_id)
        self._standups[standup.id] = standup
        logger.info("standup_created", user_id=user_id, standup_id=standup.id, day=today.isoformat())
        return standup

    def _previous_standup(self, user_id: str, before: date) -> Standup | None:
        earlier = [s for s in self._standups.values() if s.user_id == user_id and s.day < before]
        return max(earlier, key=lambda standup: standup.day, default=None)

    def _carry_over(self, user_id: str, source: Standup, target: Standup) -> int:
        outstanding = [
            todo for todo in self._todos_of(user_id, source.id) if todo.status in OUTSTANDING_STATUSES
        ]
        new_ids = {todo.id: str(uuid4()) for todo in outstanding}
        for todo in outstanding:
            copy = Todo(
                id=new_ids[todo.id],
                text=todo.text,
                standup_id=target.id,
                status=todo.status,
                parent_todo_id=new_ids.get(todo.parent_todo_id) if todo.parent_todo_id else None,
                user_id=user_id,
            )
            self._todos[copy.id] = copy
        return len(outstanding)

    def _todos_of(self, user_id: str, standup_id: str) -> list[Todo]:
        return [
            todo
            for todo in self._todos.values()
            if todo.standup_id == standup_id and todo.user_id == user_id
        ]

    def _owned_standup(self, user_id: str, standup_id: str) -> Standup:
        standup = self._standups.get(standup_id)
        if standup is None or standup.user_id != user_id:
            raise StandupNotFoundError(standup_id)
        return standup

    def _owned_todo(self, user_id: str, todo_id: str) -> Todo:
        todo = self._todos.get(todo_id)
        if todo is None or todo.user_id != user_id:
            raise TodoNotFoundError(todo_id)
        return todo


def _copies(todos: Iterable[Todo]) -> list[Todo]:
    return [todo.model_copy() for todo in todos]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)
