"""The authenticated caller, as seen by the services."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Principal:
    """
    Identity of the caller.

    `user_id` is the token subject; every ownership check compares it with
    the owning project's user_id.
    """
    user_id: str
    email: Optional[str] = None
    role: str = "authenticated"

    @classmethod
    def from_claims(cls, payload: Dict[str, Any]) -> "Principal":
        return cls(
            user_id=str(payload["sub"]),
            email=payload.get("email"),
            role=payload.get("role", "authenticated"),
        )
