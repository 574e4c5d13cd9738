"""Builders shared by the test modules."""

from __future__ import annotations

import json
from typing import Any

from app.models.analysis import STATUS_DONE, STATUS_PENDING, Analysis, utc_now_iso
from app.services.auth import create_access_token
from app.services.webhook import compute_signature
from tests.test_constants import TEST_PROFILE_IMAGE_URL, TEST_WEBHOOK_SECRET


def company_content(**overrides: Any) -> dict[str, Any]:
    """A research output with every field filled in."""
    content: dict[str, Any] = {
        "company_fits_criteria": True,
        "company_name": "Acme Corp",
        "company_domain": "acme.com",
        "category": "Developer Tools",
        "business_description": "Acme builds rockets for coyotes.",
        "industry_sector": "Aerospace",
        "keywords": ["rockets", "anvils"],
        "founded_year": "1949",
        "employee_count": "250",
        "headquarters_location": "Arizona, USA",
        "total_funding_raised": "$50M",
        "current_valuation": "$400M",
        "latest_funding_round": "Series B",
        "investment_summary": "Backed by desert investors.",
        "unique_value_proposition": "Reliable rockets",
        "market_size_and_growth": "Large and growing.",
        "target_market_analysis": "Coyotes and roadrunner hunters.",
        "market_opportunities": "Expansion into anvils.",
        "competitive_landscape_overview": "Crowded.",
        "competitors": [
            {"name": "Beta Rockets", "hostname": "beta.com", "description": "Rival."},
            {"name": "Gamma Launch", "hostname": "gamma.com", "description": "Rival."},
        ],
        "products_summary": "Rockets, skates.",
        "pricing_summary": "Premium.",
        "recent_news_developments": "Launched a new skate.",
        "target_company_reddit_analysis": "Redditors love it.",
        "reddit_overall_sentiment": "high",
        "executive_summary": "Acme leads the rocket market.",
    }
    content.update(overrides)
    return content


def task_result(content: Any = None, output_type: str = "json", **run: Any) -> dict[str, Any]:
    """Task run result payload as returned by the research service."""
    return {
        "run": {"run_id": "run_1", "status": "completed", **run},
        "output": {
            "type": output_type,
            "content": company_content() if content is None else content,
            "basis": [{"field": "company_name", "citations": []}],
        },
    }


def make_analysis(hostname: str = "acme.com", **overrides: Any) -> Analysis:
    now = utc_now_iso()
    values: dict[str, Any] = {
        "hostname": hostname,
        "company_domain": hostname,
        "company_name": hostname.split(".")[0].capitalize(),
        "status": STATUS_PENDING,
        "username": "",
        "profile_image_url": "",
        "created_at": now,
        "updated_at": now,
        "visits": 0,
        "result": None,
        "error": None,
        "category": None,
        "business_description": None,
        "industry_sector": None,
        "keywords": None,
    }
    values.update(overrides)
    return Analysis(**values)


def make_done_analysis(hostname: str = "acme.com", content: Any = None, **overrides: Any) -> Analysis:
    """A successful analysis whose result holds content."""
    overrides.setdefault("result", json.dumps(task_result(content)))
    return make_analysis(hostname, status=STATUS_DONE, **overrides)


def auth_token(username: str, profile_image_url: str = TEST_PROFILE_IMAGE_URL) -> str:
    return create_access_token({"sub": username, "profile_image_url": profile_image_url})


def signed_webhook_headers(
    body: str,
    webhook_id: str = "wh_1",
    timestamp: str = "1757500000",
    secret: str = TEST_WEBHOOK_SECRET,
) -> dict[str, str]:
    signature = compute_signature(secret, webhook_id, timestamp, body)
    return {
        "webhook-id": webhook_id,
        "webhook-timestamp": timestamp,
        "webhook-signature": f"v1,{signature}",
        "content-type": "application/json",
    }


def status_event(
    hostname: str | None = "acme.com",
    status: str = "completed",
    is_deep: bool = False,
    run_id: str = "run_1",
    error: str | None = None,
    username: str = "",
) -> dict[str, Any]:
    metadata: dict[str, Any] = {"is_deep": is_deep, "username": username, "profile_image_url": ""}
    if hostname is not None:
        metadata["hostname"] = hostname
    data: dict[str, Any] = {"run_id": run_id, "status": status, "metadata": metadata}
    if error is not None:
        data["error"] = {"message": error}
    return {"type": "task_run.status", "timestamp": "2025-09-20T12:00:00Z", "data": data}
