"""Shared type definitions."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class AuthContext:
    """Identity handed to tool handlers alongside their arguments."""

    user_id: str | None
    token: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def as_auth_info(self) -> dict[str, Any]:
        """Render the `{token, extra: {userId}}` shape tool hosts expect."""

        return {"token": self.token, "extra": {**self.extra, "userId": self.user_id}}
