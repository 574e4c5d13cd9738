"""
Research service abstraction.

The research service is an opaque asynchronous job API: a task run is
submitted with metadata and a webhook URL, completion is announced by a
signed webhook, and the structured result is fetched by run id. This
service never performs research itself.
"""

from abc import ABC, abstractmethod
from typing import Any


class ResearchServiceError(Exception):
    """Submitting a task run or fetching its result failed."""


class ResearchProvider(ABC):
    """Abstract base for research task providers."""

    @abstractmethod
    async def create_task_run(
        self,
        input: str,
        metadata: dict[str, Any],
        webhook_url: str,
        output_schema: dict[str, Any],
    ) -> str:
        """Submit a task run and return its run id."""
        ...

    @abstractmethod
    async def get_task_run_result(self, run_id: str) -> dict[str, Any]:
        """Return the full result payload ({"run": ..., "output": ...}) for run_id."""
        ...
