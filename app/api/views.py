"""HTML-serving view routes for the competitor analysis UI."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from app.api.deps import get_store, get_user_context, public_origin, webhook_callback_url
from app.config import get_settings
from app.research.provider import ResearchServiceError
from app.research.router import get_research_provider
from app.schemas.analysis import CompetitorEntry
from app.schemas.auth import UserContext
from app.services.analysis_store import AnalysisStore
from app.services.domain import is_valid_hostname, normalize_hostname
from app.services.export import DUMP_PAGE_SIZE, build_dump_page
from app.services.freshness import is_analysis_old
from app.services.og_card import build_og_card
from app.services.reports import analysis_not_found_message, render_markdown_report, result_content
from app.services.submission import submit_analysis

logger = logging.getLogger(__name__)

router = APIRouter()

_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))

POPULAR_LIMIT = 6
RECENT_LIMIT = 30
ADMIN_PAGE_SIZE = 50
MARKDOWN_MAX_AGE = 3600
DUMP_MAX_AGE = 300
# Keeps (page - 1) * limit inside a 64-bit SQL integer
MAX_PAGE = 2**62 // DUMP_PAGE_SIZE


def _redirect_to_analysis(hostname: str) -> RedirectResponse:
    return RedirectResponse(url=f"/analysis/{hostname}", status_code=302)


# ── Listing ──────────────────────────────────────────────────────────


@router.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    store: AnalysisStore = Depends(get_store),
    ctx: UserContext = Depends(get_user_context),
):
    """Home page: most visited and most recent completed analyses."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "user": ctx.user,
            "popular": store.list_popular(POPULAR_LIMIT),
            "recent": store.list_recent(RECENT_LIMIT),
        },
    )


# ── Submission ───────────────────────────────────────────────────────


@router.get("/new")
async def new_analysis(
    request: Request,
    company: str | None = None,
    store: AnalysisStore = Depends(get_store),
    ctx: UserContext = Depends(get_user_context),
):
    """Start a deep analysis for ?company=, or redirect to the existing one.

    An existing analysis is replaced only when it failed, or when it is
    stale and the requester is logged in.
    """
    if not company or not company.strip():
        return PlainTextResponse("Company domain is required", status_code=400)
    hostname = normalize_hostname(company)

    existing = store.get(hostname)
    if existing is not None:
        if ctx.authenticated and is_analysis_old(existing.created_at):
            logger.info("Replacing stale analysis for %s", hostname)
            store.delete(hostname)
        elif existing.error:
            logger.info("Replacing failed analysis for %s", hostname)
            store.delete(hostname)
        else:
            return _redirect_to_analysis(hostname)

    if not await is_valid_hostname(hostname):
        return templates.TemplateResponse(
            request,
            "invalid_domain.html",
            {"user": ctx.user, "hostname": hostname},
            status_code=400,
        )

    if not ctx.authenticated:
        redirect_to = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        return templates.TemplateResponse(
            request,
            "login_required.html",
            {
                "user": None,
                "company": company.strip(),
                "login_url": "/login?" + urlencode({"redirect_to": redirect_to}),
            },
            status_code=401,
        )

    settings = get_settings()
    if not settings.is_admin(ctx.username):
        owned = store.count_by_owner(ctx.username)
        if owned >= settings.analysis_limit:
            logger.info("Quota reached for %s (%d analyses)", ctx.username, owned)
            return PlainTextResponse(
                f"Maximum of {settings.analysis_limit} analyses allowed per user. "
                "Host it yourself if you need more! \n\n"
                "https://github.com/janwilmake/competitor-analysis",
                status_code=429,
            )

    try:
        await submit_analysis(
            store,
            get_research_provider(),
            hostname,
            is_deep=True,
            callback_url=webhook_callback_url(request),
            requester=ctx.user,
        )
    except (ResearchServiceError, ValueError):
        logger.exception("Error creating analysis task for %s", hostname)
        return PlainTextResponse("Error creating analysis task", status_code=500)

    return _redirect_to_analysis(hostname)


# ── Reports ──────────────────────────────────────────────────────────


@router.get("/analysis/{hostname}", response_class=HTMLResponse)
def analysis_detail(
    request: Request,
    hostname: str,
    store: AnalysisStore = Depends(get_store),
    ctx: UserContext = Depends(get_user_context),
):
    """Report page for one analysis; counts a visit once it is done."""
    analysis = store.get(hostname)
    if analysis is None:
        return templates.TemplateResponse(
            request,
            "analysis_not_found.html",
            {"user": ctx.user, "hostname": hostname},
            status_code=404,
        )

    if analysis.error:
        return templates.TemplateResponse(
            request, "analysis_error.html", {"user": ctx.user, "analysis": analysis}
        )

    if analysis.is_done:
        store.increment_visits(hostname)

    content = result_content(analysis)
    competitors = [
        CompetitorEntry.model_validate(c)
        for c in content.get("competitors") or []
        if isinstance(c, dict)
    ]
    origin = public_origin(request)
    return templates.TemplateResponse(
        request,
        "analysis.html",
        {
            "user": ctx.user,
            "analysis": analysis,
            "content": content,
            "competitors": competitors,
            "is_old": is_analysis_old(analysis.created_at),
            "page_title": f"{analysis.company_name} Competitive Analysis - Market Research",
            "page_url": f"{origin}/analysis/{hostname}",
            "og_image_url": f"{origin}/og/{hostname}",
        },
    )


@router.get("/md/{hostname}")
def analysis_markdown(
    request: Request,
    hostname: str,
    store: AnalysisStore = Depends(get_store),
):
    """Markdown report covering the company and its analyzed competitors."""
    report = render_markdown_report(store, hostname)
    if report is None:
        return PlainTextResponse(
            analysis_not_found_message(public_origin(request), hostname), status_code=404
        )
    return Response(
        content=report,
        media_type="text/markdown; charset=utf-8",
        headers={"Cache-Control": f"public, max-age={MARKDOWN_MAX_AGE}"},
    )


@router.get("/og/{hostname}")
def og_image(
    request: Request,
    hostname: str,
    store: AnalysisStore = Depends(get_store),
):
    """SVG share card; a placeholder until the analysis succeeds."""
    template_name, context, max_age = build_og_card(store.get(hostname), hostname)
    return templates.TemplateResponse(
        request,
        template_name,
        context,
        media_type="image/svg+xml",
        headers={"Cache-Control": f"public, max-age={max_age}"},
    )


# ── Search and export ────────────────────────────────────────────────


@router.get("/search/{query}", response_class=HTMLResponse)
def search(
    request: Request,
    query: str,
    store: AnalysisStore = Depends(get_store),
    ctx: UserContext = Depends(get_user_context),
):
    """Ranked search over all analyses, whatever their status."""
    query = query.strip()
    if not query:
        return PlainTextResponse("Search query is required", status_code=400)
    return templates.TemplateResponse(
        request,
        "search.html",
        {"user": ctx.user, "query": query, "results": store.search(query)},
    )


def _parse_page(raw: str | None) -> int | None:
    """Page numbers below 1 clamp to 1; non-numeric or oversized values are invalid."""
    if raw is None or raw == "":
        return 1
    try:
        page = int(raw)
    except ValueError:
        return None
    if page > MAX_PAGE:
        return None
    return max(1, page)


@router.get("/dump")
def dump(
    page: str | None = None,
    store: AnalysisStore = Depends(get_store),
):
    """Paginated JSON export of every analysis."""
    page_number = _parse_page(page)
    if page_number is None:
        return PlainTextResponse("Invalid page number", status_code=400)
    return JSONResponse(
        content=build_dump_page(store, page_number).model_dump(),
        headers={"Cache-Control": f"public, max-age={DUMP_MAX_AGE}"},
    )


@router.get("/admin", response_class=HTMLResponse)
def admin(
    request: Request,
    page: str | None = None,
    store: AnalysisStore = Depends(get_store),
    ctx: UserContext = Depends(get_user_context),
):
    """Read-only data browser for admins."""
    if not get_settings().is_admin(ctx.username):
        return PlainTextResponse("Admin only", status_code=401)
    page_number = _parse_page(page)
    if page_number is None:
        return PlainTextResponse("Invalid page number", status_code=400)
    dump_page = build_dump_page(store, page_number, limit=ADMIN_PAGE_SIZE)
    return templates.TemplateResponse(
        request,
        "admin.html",
        {"user": ctx.user, "page": dump_page},
    )


def not_found_page(request: Request) -> HTMLResponse:
    """404 page for unknown paths."""
    return templates.TemplateResponse(request, "404.html", {"user": None}, status_code=404)
