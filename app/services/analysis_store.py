"""Analysis store: the only component that reads or writes the analyses table.

Routers and services go through AnalysisStore rather than querying the model
directly, so every access to the table is serialized through one owner.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from app.models.analysis import STATUS_DONE, Analysis, utc_now_iso

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50

# Columns update_terminal may patch alongside the result.
EXTRA_FIELDS = frozenset(
    {"company_name", "category", "business_description", "industry_sector", "keywords"}
)


class AnalysisStore:
    """CRUD and listing queries over the analyses table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ── Single-row operations ────────────────────────────────────────

    def get(self, hostname: str) -> Analysis | None:
        return self.db.get(Analysis, hostname)

    def create(self, analysis: Analysis) -> Analysis:
        """Insert analysis, replacing any existing row with the same hostname."""
        merged = self.db.merge(analysis)
        self.db.commit()
        return merged

    def delete(self, hostname: str) -> None:
        self.db.query(Analysis).filter(Analysis.hostname == hostname).delete(
            synchronize_session="fetch"
        )
        self.db.commit()

    def rollback(self) -> None:
        """Discard a failed transaction so the session can be reused."""
        self.db.rollback()

    def count_by_owner(self, username: str | None) -> int:
        return self.db.query(Analysis).filter(Analysis.username == (username or "")).count()

    def update_terminal(
        self,
        hostname: str,
        result: str | None,
        error: str | None,
        extra_fields: dict[str, Any] | None = None,
    ) -> None:
        """Mark an analysis done with its result or error.

        Only keys present in extra_fields are written; absent keys keep their
        stored values. Unknown hostnames are ignored.
        """
        values: dict[str, Any] = {
            "status": STATUS_DONE,
            "result": result,
            "error": error,
            "updated_at": utc_now_iso(),
        }
        for key, value in (extra_fields or {}).items():
            if key not in EXTRA_FIELDS:
                raise ValueError(f"Unsupported analysis field: {key}")
            values[key] = value

        updated = (
            self.db.query(Analysis)
            .filter(Analysis.hostname == hostname)
            .update(values, synchronize_session="fetch")
        )
        self.db.commit()
        if not updated:
            logger.warning("update_terminal: no analysis for %s", hostname)

    def increment_visits(self, hostname: str) -> None:
        self.db.query(Analysis).filter(Analysis.hostname == hostname).update(
            {Analysis.visits: Analysis.visits + 1}, synchronize_session="fetch"
        )
        self.db.commit()

    # ── Listings ─────────────────────────────────────────────────────

    def _successful(self):
        return self.db.query(Analysis).filter(
            Analysis.status == STATUS_DONE, Analysis.error.is_(None)
        )

    def list_popular(self, limit: int) -> list[Analysis]:
        return self._successful().order_by(Analysis.visits.desc()).limit(limit).all()

    def list_recent(self, limit: int) -> list[Analysis]:
        return self._successful().order_by(Analysis.created_at.desc()).limit(limit).all()

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[Analysis]:
        """Case-insensitive search over hostname, name, category, industry and keywords.

        Ranking: exact hostname, exact company name, hostname prefix,
        company-name prefix, then any other substring match. Ties go to the
        most visited, then the most recent.
        """
        q = query.strip().lower()
        if not q:
            return []
        contains = f"%{q}%"
        prefix = f"{q}%"
        hostname = func.lower(Analysis.hostname)
        company_name = func.lower(Analysis.company_name)
        rank = case(
            (hostname == q, 1),
            (company_name == q, 2),
            (hostname.like(prefix), 3),
            (company_name.like(prefix), 4),
            else_=5,
        )
        return (
            self.db.query(Analysis)
            .filter(
                or_(
                    hostname.like(contains),
                    company_name.like(contains),
                    func.lower(Analysis.category).like(contains),
                    func.lower(Analysis.industry_sector).like(contains),
                    func.lower(Analysis.keywords).like(contains),
                )
            )
            .order_by(rank, Analysis.visits.desc(), Analysis.created_at.desc())
            .limit(limit)
            .all()
        )

    def dump_page(self, limit: int, offset: int) -> tuple[list[Analysis], int]:
        """Return one page of all analyses (newest first) and the total row count."""
        total = self.db.query(Analysis).count()
        rows = (
            self.db.query(Analysis)
            .order_by(Analysis.created_at.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return rows, total
