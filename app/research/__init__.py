"""Research service abstraction. Research is delegated, never performed here."""

from app.research.parallel_provider import ParallelProvider
from app.research.provider import ResearchProvider, ResearchServiceError
from app.research.router import get_research_provider
from app.research.task_schema import TASK_OUTPUT_SCHEMA

__all__ = [
    "ParallelProvider",
    "ResearchProvider",
    "ResearchServiceError",
    "TASK_OUTPUT_SCHEMA",
    "get_research_provider",
]
