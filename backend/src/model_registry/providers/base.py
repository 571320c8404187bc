"""Abstract model provider interface for the registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ...errors import ProviderError


class ModelProvider(ABC):
    """
    Abstract model provider. Implement this to plug in any backend.

    The registry, the session service and the wizard tools only depend on this
    interface. `create_session` returns provider session data (a SessionHandle
    dump for chat providers, a conversation dump for the wizard);
    `send_message` returns at least `{"message": str}`.
    """

    name: str = "base"

    @abstractmethod
    async def create_session(
        self,
        *,
        instructions: str,
        session_id: str | None = None,
    ) -> dict[str, Any]:
        ...

    @abstractmethod
    async def send_message(
        self,
        *,
        message: str | None,
        session_data: dict[str, Any],
        session_id: str | None = None,
    ) -> dict[str, Any]:
        ...

    async def evaluate_solution(
        self,
        *,
        leia_meta: dict[str, str],
        result: str,
    ) -> dict[str, Any]:
        """Score a student result against the expected solution: `{score, evaluation}`."""
        raise ProviderError(f"evaluate_solution is not supported by the {self.name} provider")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"
