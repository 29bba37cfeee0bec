"""Interface contract for store administration commands sent over chat."""

from abc import ABC, abstractmethod


class StoreAdmin(ABC):
    """Runs administrative commands for a tenant's store."""

    @abstractmethod
    async def run_command(self, tenant_id: str, command: str) -> str | None:
        """Execute ``command`` and return the reply, or None if it is not a known command."""
        raise NotImplementedError
