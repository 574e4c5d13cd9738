"""
Research provider factory.

Returns the configured ResearchProvider. The instance is cached so every
request shares the same configuration.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.research.provider import ResearchProvider

if TYPE_CHECKING:
    from app.config import Settings

logger = logging.getLogger(__name__)

_provider_cache: dict[str, ResearchProvider] = {}


def get_research_provider(settings: Settings | None = None) -> ResearchProvider:
    """Return a ResearchProvider for the configured research service.

    Raises:
        ValueError: If PARALLEL_API_KEY is missing.
    """
    if settings is None:
        from app.config import get_settings

        settings = get_settings()

    if "parallel" in _provider_cache:
        return _provider_cache["parallel"]

    if not settings.parallel_api_key:
        raise ValueError(
            "PARALLEL_API_KEY is required for the research provider. "
            "Set it in your environment or .env file."
        )

    from app.research.parallel_provider import ParallelProvider

    provider = ParallelProvider(
        api_key=settings.parallel_api_key,
        base_url=settings.parallel_api_url,
        processor=settings.parallel_processor,
        mcp_url=settings.mcp_url,
        timeout=settings.research_timeout,
    )
    _provider_cache["parallel"] = provider
    logger.info("Created research provider: parallel processor=%s", settings.parallel_processor)
    return provider


def clear_provider_cache() -> None:
    """Clear the provider cache. Useful for testing."""
    _provider_cache.clear()
