"""
Parallel Task API provider.

Uses an httpx async client per call. Submissions are not retried: a failed
submission surfaces as ResearchServiceError and the caller reports it.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from app.research.provider import ResearchProvider, ResearchServiceError

logger = logging.getLogger(__name__)

# Beta features: MCP tool calls during the run and webhook delivery
CREATE_BETAS = "mcp-server-2025-07-17,webhook-2025-08-12"
RESULT_BETAS = "mcp-server-2025-07-17"
WEBHOOK_EVENT_TYPES = ["task_run.status"]


class ParallelProvider(ResearchProvider):
    """Concrete research provider backed by the Parallel Task API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.parallel.ai",
        processor: str = "ultra8x",
        mcp_url: str = "",
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.processor = processor
        self.mcp_url = mcp_url
        self.timeout = timeout

    # ------------------------------------------------------------------
    # ResearchProvider interface
    # ------------------------------------------------------------------

    async def create_task_run(
        self,
        input: str,
        metadata: dict[str, Any],
        webhook_url: str,
        output_schema: dict[str, Any],
    ) -> str:
        body: dict[str, Any] = {
            "input": input,
            "processor": self.processor,
            "metadata": metadata,
            "webhook": {"url": webhook_url, "event_types": WEBHOOK_EVENT_TYPES},
            "task_spec": {"output_schema": {"type": "json", "json_schema": output_schema}},
        }
        if self.mcp_url:
            body["mcp_servers"] = [{"name": "Reddit", "url": self.mcp_url, "type": "url"}]

        data = await self._request("POST", "/v1/tasks/runs", CREATE_BETAS, json=body)
        run_id = data.get("run_id")
        if not run_id:
            raise ResearchServiceError("Task run response did not include a run_id")
        logger.info(
            "Created task run %s for %s (processor=%s)",
            run_id,
            metadata.get("hostname"),
            self.processor,
        )
        return run_id

    async def get_task_run_result(self, run_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/v1/tasks/runs/{run_id}/result", RESULT_BETAS)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self, method: str, path: str, betas: str, **kwargs: Any
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON body."""
        headers = {"x-api-key": self.api_key, "parallel-beta": betas}
        start = time.monotonic()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, headers=headers
            ) as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Parallel API %s %s returned HTTP %s", method, path, exc.response.status_code
            )
            raise ResearchServiceError(
                f"Research service returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Parallel API %s %s failed: %s", method, path, exc)
            raise ResearchServiceError(f"Research service unreachable: {exc}") from exc
        except ValueError as exc:
            raise ResearchServiceError("Research service returned invalid JSON") from exc

        logger.debug("Parallel API %s %s latency=%.2fs", method, path, time.monotonic() - start)
        if not isinstance(data, dict):
            raise ResearchServiceError("Research service returned an unexpected payload")
        return data
