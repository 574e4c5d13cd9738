"""Research service webhook processing.

A task run status event moves an analysis from pending to done, with either
a stored result or an error. Deep analyses then fan out one non-deep
analysis per discovered competitor. The webhook metadata is the only link
back to the original request; there is no job table.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from app.research.provider import ResearchProvider, ResearchServiceError
from app.schemas.auth import AuthUser
from app.schemas.webhook import TASK_RUN_STATUS_EVENT, TaskRunEvent
from app.services.analysis_store import AnalysisStore
from app.services.domain import is_valid_domain, normalize_hostname
from app.services.freshness import is_analysis_old
from app.services.submission import submit_analysis

logger = logging.getLogger(__name__)

SUPPORTED_SIGNATURE_VERSIONS = frozenset({"v1"})

ERROR_NOT_A_COMPANY = (
    "This domain does not appear to be an active company with real products or "
    "services. Please try a different company."
)
ERROR_EMPTY_STRINGS = (
    "Could not complete task - outputs contained empty strings. Please try again."
)
ERROR_NO_COMPETITORS = "Could not complete task - No competitors found. Please try again."
ERROR_UNEXPECTED_FORMAT = "Unexpected output format"
ERROR_ANALYSIS_FAILED = "Analysis failed"


class MissingHostnameError(ValueError):
    """A completed event arrived without a hostname in its metadata."""


# ── Signature verification ───────────────────────────────────────────


def compute_signature(secret: str, webhook_id: str, timestamp: str, body: str | bytes) -> str:
    """Base64 HMAC-SHA256 of '{id}.{timestamp}.{body}', computed over the raw body bytes."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    message = f"{webhook_id}.{timestamp}.".encode("utf-8") + body
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(
    secret: str,
    webhook_id: str,
    timestamp: str,
    body: str | bytes,
    signature_header: str,
) -> bool:
    """Return True if any 'v1,<signature>' candidate in the header matches.

    The header may carry several space-separated candidates; candidates with
    an unsupported version prefix are ignored.
    """
    if not secret:
        return False
    expected = compute_signature(secret, webhook_id, timestamp, body)
    for candidate in signature_header.split():
        version, _, received = candidate.partition(",")
        if version not in SUPPORTED_SIGNATURE_VERSIONS or not received:
            continue
        if hmac.compare_digest(received, expected):
            return True
    return False


# ── Result evaluation ────────────────────────────────────────────────


@dataclass
class ResultOutcome:
    """What to persist for one fetched task result."""

    result: str | None
    error: str | None
    extra_fields: dict[str, Any] = field(default_factory=dict)
    content: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.error is None


def _contains_empty_string(value: Any) -> bool:
    if isinstance(value, str):
        return value == ""
    if isinstance(value, dict):
        return any(_contains_empty_string(v) for v in value.values())
    if isinstance(value, list):
        return any(_contains_empty_string(v) for v in value)
    return False


def _as_text(value: Any) -> str | None:
    if isinstance(value, list):
        value = ", ".join(str(v) for v in value if v)
    return str(value) if value else None


def evaluate_result(result: dict[str, Any], *, require_competitors: bool = False) -> ResultOutcome:
    """Apply the data-quality gates to a fetched task result.

    Gates, in order: non-JSON output, company_fits_criteria explicitly false,
    any empty string in the output, and (legacy schema only) no competitors.
    """
    output = result.get("output") or {}
    content = output.get("content")
    if output.get("type") != "json" or not isinstance(content, dict):
        return ResultOutcome(result=None, error=ERROR_UNEXPECTED_FORMAT)

    if content.get("company_fits_criteria") is False:
        return ResultOutcome(result=None, error=ERROR_NOT_A_COMPANY, content=content)

    serialized = json.dumps(result)
    if _contains_empty_string(content):
        return ResultOutcome(result=serialized, error=ERROR_EMPTY_STRINGS, content=content)

    if require_competitors and not content.get("competitors"):
        return ResultOutcome(result=serialized, error=ERROR_NO_COMPETITORS, content=content)

    extra_fields: dict[str, Any] = {
        "category": _as_text(content.get("category")),
        "business_description": _as_text(content.get("business_description")),
        "industry_sector": _as_text(content.get("industry_sector")),
        "keywords": _as_text(content.get("keywords")),
    }
    if content.get("company_name"):
        extra_fields["company_name"] = str(content["company_name"])
    return ResultOutcome(result=serialized, error=None, extra_fields=extra_fields, content=content)


# ── Competitor fan-out ───────────────────────────────────────────────


def _is_truthy(value: Any) -> bool:
    return value is True or (isinstance(value, str) and value.lower() == "true")


def competitor_hostnames(content: dict[str, Any], exclude: str | None = None) -> list[str]:
    """Normalized, de-duplicated competitor hostnames from a research output."""
    seen: set[str] = set()
    hostnames: list[str] = []
    for competitor in content.get("competitors") or []:
        if not isinstance(competitor, dict) or not competitor.get("hostname"):
            continue
        hostname = normalize_hostname(str(competitor["hostname"]))
        if not is_valid_domain(hostname) or hostname == exclude or hostname in seen:
            continue
        seen.add(hostname)
        hostnames.append(hostname)
    return hostnames


async def fan_out_competitors(
    store: AnalysisStore,
    provider: ResearchProvider,
    hostnames: list[str],
    *,
    callback_url: str,
    requester: AuthUser | None,
) -> list[str]:
    """Submit a non-deep analysis for each competitor lacking a fresh, error-free one.

    Submissions run concurrently. A failed submission is logged and skipped;
    it never fails the caller. Returns the hostnames that were submitted.
    """

    async def _submit_one(hostname: str) -> str | None:
        existing = store.get(hostname)
        if existing is not None and not existing.error and not is_analysis_old(existing.created_at):
            logger.info("Fan-out: %s already analyzed, skipping", hostname)
            return None
        logger.info("Fan-out: submitting %s", hostname)
        await submit_analysis(
            store,
            provider,
            hostname,
            is_deep=False,
            callback_url=callback_url,
            requester=requester,
        )
        return hostname

    outcomes = await asyncio.gather(
        *(_submit_one(hostname) for hostname in hostnames), return_exceptions=True
    )
    submitted: list[str] = []
    for hostname, outcome in zip(hostnames, outcomes):
        if isinstance(outcome, BaseException):
            logger.error("Fan-out submission failed for %s: %s", hostname, outcome)
        elif outcome is not None:
            submitted.append(outcome)
    return submitted


# ── Event handling ───────────────────────────────────────────────────


def _requester_from_metadata(metadata: dict[str, Any]) -> AuthUser | None:
    username = metadata.get("username")
    if not username:
        return None
    return AuthUser(
        username=str(username),
        profile_image_url=str(metadata.get("profile_image_url") or ""),
    )


async def handle_task_run_event(
    store: AnalysisStore,
    provider: ResearchProvider | None,
    event: TaskRunEvent,
    *,
    callback_url: str,
    require_competitors: bool = False,
) -> None:
    """Apply one verified webhook event to the analysis it refers to.

    Every completed or failed event ends with the analysis in the done state,
    including when no research provider is configured (provider is None).
    Redelivered events rewrite the same done row and are harmless.

    Raises:
        MissingHostnameError: a completed event has no hostname in its metadata.
    """
    if event.type != TASK_RUN_STATUS_EVENT:
        logger.info("Ignoring webhook event type %s", event.type)
        return

    data = event.data
    hostname = data.metadata.get("hostname")

    if data.status == "failed":
        if not hostname:
            logger.warning("Failed event for run %s has no hostname; ignoring", data.run_id)
            return
        message = (data.error.message if data.error else None) or ERROR_ANALYSIS_FAILED
        logger.info("Analysis for %s failed: %s", hostname, message)
        store.update_terminal(hostname, None, message)
        return

    if data.status != "completed":
        logger.info("Ignoring status %s for run %s", data.status, data.run_id)
        return

    if not hostname:
        raise MissingHostnameError("Missing hostname in metadata")

    try:
        if provider is None:
            raise ResearchServiceError("research service is not configured")
        if not data.run_id:
            raise ValueError("event has no run_id")
        result = await provider.get_task_run_result(data.run_id)
        outcome = evaluate_result(result, require_competitors=require_competitors)
        store.update_terminal(hostname, outcome.result, outcome.error, outcome.extra_fields)
    except Exception as exc:
        logger.exception("Error fetching result for %s", hostname)
        store.rollback()
        store.update_terminal(hostname, None, f"Error fetching result: {exc}")
        return

    if not outcome.succeeded:
        logger.info("Analysis for %s rejected: %s", hostname, outcome.error)
        return
    logger.info("Analysis for %s completed", hostname)

    # The fetched run echoes the submission metadata; prefer it over the event copy.
    run_metadata = (result.get("run") or {}).get("metadata") or data.metadata
    if not _is_truthy(run_metadata.get("is_deep")):
        return

    hostnames = competitor_hostnames(outcome.content, exclude=hostname)
    if not hostnames:
        return
    submitted = await fan_out_competitors(
        store,
        provider,
        hostnames,
        callback_url=callback_url,
        requester=_requester_from_metadata(run_metadata),
    )
    logger.info(
        "Fan-out for %s: %d of %d competitors submitted", hostname, len(submitted), len(hostnames)
    )
