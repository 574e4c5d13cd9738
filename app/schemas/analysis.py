"""Analysis schemas: research output content and dump rows."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CompetitorEntry(BaseModel):
    """One competitor listed in a research output."""

    model_config = ConfigDict(extra="allow")

    name: str = ""
    hostname: str = ""
    description: str = ""


class AnalysisRow(BaseModel):
    """Stored analysis columns, minus the raw result blob."""

    model_config = ConfigDict(from_attributes=True)

    hostname: str
    company_domain: str
    company_name: str
    status: str
    username: str
    profile_image_url: str
    created_at: str
    updated_at: str
    visits: int
    error: str | None = None
    category: str | None = None
    business_description: str | None = None
    industry_sector: str | None = None
    keywords: str | None = None


class DumpPage(BaseModel):
    """One page of the /dump export."""

    page: int
    limit: int
    total: int
    totalPages: int
    hasNext: bool
    hasPrevious: bool
    data: list[dict[str, Any]] = Field(default_factory=list)
