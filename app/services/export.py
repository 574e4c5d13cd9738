"""Paginated JSON export of every stored analysis (/dump)."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from app.models.analysis import Analysis
from app.schemas.analysis import AnalysisRow, DumpPage
from app.services.analysis_store import AnalysisStore

logger = logging.getLogger(__name__)

DUMP_PAGE_SIZE = 500


def dump_row(analysis: Analysis) -> dict[str, Any]:
    """Flatten one analysis: columns, then run, output content keys and basis."""
    row: dict[str, Any] = AnalysisRow.model_validate(analysis).model_dump()
    if not analysis.result:
        return row
    try:
        parsed = json.loads(analysis.result)
    except ValueError:
        logger.error("Failed to parse result for %s", analysis.hostname)
        return row

    if parsed.get("run"):
        row["run"] = parsed["run"]
    output = parsed.get("output") or {}
    if isinstance(output.get("content"), dict):
        row.update(output["content"])
    if output.get("basis"):
        row["basis"] = output["basis"]
    return row


def build_dump_page(store: AnalysisStore, page: int, limit: int = DUMP_PAGE_SIZE) -> DumpPage:
    rows, total = store.dump_page(limit, (page - 1) * limit)
    return DumpPage(
        page=page,
        limit=limit,
        total=total,
        totalPages=math.ceil(total / limit),
        hasNext=page * limit < total,
        hasPrevious=page > 1,
        data=[dump_row(row) for row in rows],
    )
