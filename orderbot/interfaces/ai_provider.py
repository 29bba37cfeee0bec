"""Interface contract for AI providers answering support questions."""

from abc import ABC, abstractmethod
from typing import Any


class AIProvider(ABC):
    """Answers free-text customer questions while a conversation is in SUPPORT."""

    @abstractmethod
    async def generate_response(self, message: str, context: dict[str, Any]) -> str:
        """Return the answer to ``message``.

        ``context`` carries ``tenant_id``, ``user_id`` and the tenant's menu
        ``categories`` by name.
        """
        raise NotImplementedError
