"""Arithmetic tools."""

from pydantic import BaseModel, Field

from ...core.types import AuthContext
from ...llm.schemas.tools import ToolResult
from ..registry import ToolDescriptor


class AddInput(BaseModel):
    a: float = Field(..., description="First addend")
    b: float = Field(..., description="Second addend")


def _format_number(value: float) -> str:
    return str(int(value)) if value.is_integer() else repr(value)


async def add(args: AddInput, auth: AuthContext) -> ToolResult:
    total = args.a + args.b
    return ToolResult.text(_format_number(total))


ADD_TOOL = ToolDescriptor(
    name="add",
    title="Add numbers",
    description="Add two numbers and return their sum.",
    input_model=AddInput,
    handler=add,
)
