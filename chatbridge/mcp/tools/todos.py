"""Tools over the caller's daily standup todos."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field

from ...core.config import ChatBridgeSettings
from ...core.exceptions import AuthenticationError
from ...core.types import AuthContext
from ...llm.schemas.todo import Todo, TodoRelationship, TodoStatusLiteral
from ...llm.schemas.tools import ToolResult
from ...llm.services.todo_store import TodoStore
from ..registry import ToolDescriptor
from ..widgets import TODO_WIDGET, widget_meta

_STATUS_MARKS = {"pending": "[ ]", "in_progress": "[~]", "completed": "[x]", "cancelled": "[-]"}


class AddTodosInput(BaseModel):
    texts: list[str] = Field(..., min_length=1, description="Todo texts to add, one per item")
    parent_todo_id: str | None = Field(None, description="Nest the new todos under this todo")


class UpdateTodoInput(BaseModel):
    id: str = Field(..., description="Id of the todo to change")
    text: str | None = Field(None, min_length=1)
    status: TodoStatusLiteral | None = None


class DeleteTodoInput(BaseModel):
    id: str = Field(..., description="Id of the todo to delete")


class OrganizeTodosInput(BaseModel):
    relationships: list[TodoRelationship] = Field(
        ..., description="Child/parent pairs of today's todos, matched by exact text"
    )


def _require_user(auth: AuthContext) -> str:
    if not auth.user_id:
        raise AuthenticationError("Todos require an authenticated user")
    return auth.user_id


def render_todos(todos: Sequence[Todo]) -> str:
    """Indented checklist; children follow their parent."""

    children: dict[str | None, list[Todo]] = {}
    known = {todo.id for todo in todos}
    for todo in todos:
        parent = todo.parent_todo_id if todo.parent_todo_id in known else None
        children.setdefault(parent, []).append(todo)

    lines: list[str] = []

    def walk(parent: str | None, depth: int) -> None:
        for todo in children.get(parent, []):
            lines.append(f"{'  ' * depth}- {_STATUS_MARKS[todo.status]} {todo.text} (id: {todo.id})")
            walk(todo.id, depth + 1)

    walk(None, 0)
    return "\n".join(lines)


def build_todo_tools(todos: TodoStore, settings: ChatBridgeSettings) -> list[ToolDescriptor]:
    async def show_todos(args: BaseModel, auth: AuthContext) -> ToolResult:
        today = await todos.get_today_standup(_require_user(auth))
        if today.todos:
            text = "Here's your todo list:\n" + render_todos(today.todos)
        else:
            text = "Your todo list for today is empty."
        return ToolResult.text(
            text,
            structured_content=today.model_dump(mode="json"),
            meta=widget_meta(TODO_WIDGET, auth, settings),
        )

    async def add_todos(args: AddTodosInput, auth: AuthContext) -> ToolResult:
        created = await todos.add_todos(
            _require_user(auth), args.texts, parent_todo_id=args.parent_todo_id
        )
        return ToolResult.text(
            f"Added {len(created)} todo(s):\n" + render_todos(created),
            structured_content={"todos": [todo.model_dump(mode="json") for todo in created]},
        )

    async def update_todo(args: UpdateTodoInput, auth: AuthContext) -> ToolResult:
        todo = await todos.update_todo(
            _require_user(auth), args.id, text=args.text, status=args.status
        )
        return ToolResult.text(
            f"Updated todo: {render_todos([todo])}",
            structured_content={"todo": todo.model_dump(mode="json")},
        )

    async def delete_todo(args: DeleteTodoInput, auth: AuthContext) -> ToolResult:
        todo = await todos.delete_todo(_require_user(auth), args.id)
        return ToolResult.text(f'Deleted todo "{todo.text}"')

    async def organize_todos(args: OrganizeTodosInput, auth: AuthContext) -> ToolResult:
        result = await todos.organize_todos(_require_user(auth), args.relationships)
        lines = [
            f'Nested "{item.child.text}" under "{item.parent.text}"' for item in result.updated_todos
        ]
        lines.extend(result.errors)
        return ToolResult.text(
            "\n".join(lines) or "Nothing to organize.",
            structured_content=result.model_dump(mode="json"),
        )

    return [
        ToolDescriptor(
            name="show_todos",
            title="Show Todos",
            description="Display the user's todo list for today's standup",
            handler=show_todos,
            metadata=widget_meta(TODO_WIDGET),
        ),
        ToolDescriptor(
            name="add_todos",
            title="Add Todos",
            description="Add one or more pending todos to today's standup",
            input_model=AddTodosInput,
            handler=add_todos,
        ),
        ToolDescriptor(
            name="update_todo",
            title="Update Todo",
            description="Change the text or status of a todo",
            input_model=UpdateTodoInput,
            handler=update_todo,
        ),
        ToolDescriptor(
            name="delete_todo",
            title="Delete Todo",
            description="Delete a todo by id",
            input_model=DeleteTodoInput,
            handler=delete_todo,
        ),
        ToolDescriptor(
            name="organize_todos",
            title="Organize Todos",
            description="Nest today's todos under parent todos, matching them by their exact text",
            input_model=OrganizeTodosInput,
            handler=organize_todos,
        ),
    ]
