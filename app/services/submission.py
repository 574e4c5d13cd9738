"""Submit competitive analyses to the research service."""

from __future__ import annotations

import logging

from app.models.analysis import STATUS_PENDING, Analysis, utc_now_iso
from app.research.provider import ResearchProvider
from app.research.task_schema import TASK_INPUT_TEMPLATE, TASK_OUTPUT_SCHEMA
from app.schemas.auth import AuthUser
from app.services.analysis_store import AnalysisStore
from app.services.domain import company_name_from_hostname

logger = logging.getLogger(__name__)


def build_metadata(hostname: str, is_deep: bool, requester: AuthUser | None) -> dict:
    """Metadata echoed back on the webhook; the only link to the request context."""
    return {
        "hostname": hostname,
        "is_deep": is_deep,
        "username": requester.username if requester else "",
        "profile_image_url": requester.profile_image_url if requester else "",
    }


async def submit_analysis(
    store: AnalysisStore,
    provider: ResearchProvider,
    hostname: str,
    *,
    is_deep: bool,
    callback_url: str,
    requester: AuthUser | None,
) -> Analysis:
    """Submit a task run for hostname and record it as pending.

    The pending row replaces any existing row for hostname.
    Raises ResearchServiceError when the submission fails; no row is written then.
    """
    metadata = build_metadata(hostname, is_deep, requester)
    run_id = await provider.create_task_run(
        input=TASK_INPUT_TEMPLATE.format(hostname=hostname),
        metadata=metadata,
        webhook_url=callback_url,
        output_schema=TASK_OUTPUT_SCHEMA,
    )
    logger.info("Submitted analysis for %s run_id=%s deep=%s", hostname, run_id, is_deep)

    now = utc_now_iso()
    return store.create(
        Analysis(
            hostname=hostname,
            company_domain=hostname,
            company_name=company_name_from_hostname(hostname),
            status=STATUS_PENDING,
            username=metadata["username"],
            profile_image_url=metadata["profile_image_url"],
            created_at=now,
            updated_at=now,
            visits=0,
            result=None,
            error=None,
            category=None,
            business_description=None,
            industry_sector=None,
            keywords=None,
        )
    )
