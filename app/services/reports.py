"""Markdown competitive intelligence report across a company and its analyzed competitors."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from app.models.analysis import Analysis
from app.services.analysis_store import AnalysisStore
from app.services.domain import normalize_hostname

logger = logging.getLogger(__name__)

PRIMARY_MARK = "🎯 "
UNDISCLOSED = frozenset({"Not found", "Not disclosed", "Not publicly disclosed"})
SENTIMENT_EMOJI = {"high": "😊", "medium": "😐", "low": "😞"}
SENTIMENT_SCORE = {"high": 3, "medium": 2, "low": 1}

DETAIL_FIELDS = [
    ("category", "Category"),
    ("industry_sector", "Industry Sector"),
    ("founded_year", "Founded"),
    ("employee_count", "Employees"),
    ("headquarters_location", "Headquarters"),
    ("total_funding_raised", "Funding"),
    ("current_valuation", "Valuation"),
]


@dataclass
class CompanyReport:
    """One analyzed company: display name plus its research output content."""

    hostname: str
    company_name: str
    data: dict[str, Any] = field(default_factory=dict)
    is_primary: bool = False

    @property
    def label(self) -> str:
        return f"{PRIMARY_MARK if self.is_primary else ''}{self.company_name}"


def result_content(analysis: Analysis) -> dict[str, Any]:
    """Research output content stored on a successful analysis, or {}."""
    if not analysis.result:
        return {}
    try:
        parsed = json.loads(analysis.result)
    except ValueError:
        logger.warning("Stored result for %s is not valid JSON", analysis.hostname)
        return {}
    content = (parsed.get("output") or {}).get("content")
    return content if isinstance(content, dict) else {}


def load_report_companies(
    store: AnalysisStore, hostname: str
) -> tuple[CompanyReport, list[CompanyReport]] | None:
    """Return the primary company and its successfully analyzed competitors.

    None when hostname has no successful analysis.
    """
    analysis = store.get(hostname)
    if analysis is None or not analysis.is_successful:
        return None
    data = result_content(analysis)
    primary = CompanyReport(hostname, analysis.company_name, data, is_primary=True)

    competitors: list[CompanyReport] = []
    for entry in data.get("competitors") or []:
        comp_hostname = entry.get("hostname") if isinstance(entry, dict) else None
        if not comp_hostname:
            continue
        comp_hostname = normalize_hostname(str(comp_hostname))
        comp = store.get(comp_hostname)
        if comp is not None and comp.is_successful:
            competitors.append(
                CompanyReport(comp_hostname, comp.company_name, result_content(comp))
            )
    return primary, competitors


def _disclosed(value: Any) -> bool:
    return bool(value) and value not in UNDISCLOSED


def _named_paragraphs(companies: list[CompanyReport], key: str) -> list[str]:
    return [f"**{c.label}:** {c.data[key]}\n" for c in companies if c.data.get(key)]


def _titled_sections(title: str, companies: list[CompanyReport], key: str) -> list[str]:
    with_data = [c for c in companies if c.data.get(key)]
    if not with_data:
        return []
    lines = [f"## {title}\n"]
    for company in with_data:
        lines.append(f"### {company.label}\n")
        lines.append(f"{company.data[key]}\n")
    return lines


def build_competitive_report(
    primary: CompanyReport,
    competitors: list[CompanyReport],
    today: date | None = None,
) -> str:
    """Render the comprehensive Markdown report."""
    today = today or date.today()
    companies = [primary, *competitors]
    p = primary.data
    lines: list[str] = [
        "# Comprehensive Competitive Intelligence Report\n",
        f"**Primary Company:** {primary.company_name or primary.hostname}  ",
        f"**Domain:** {p.get('company_domain') or primary.hostname}  ",
        f"**Analysis Date:** {today.isoformat()}  ",
        f"**Companies Analyzed:** {len(companies)} "
        f"({primary.company_name} + {len(competitors)} competitors)\n",
        "---\n",
    ]

    if p.get("executive_summary"):
        lines += ["## Executive Summary\n", f"{p['executive_summary']}\n", "---\n"]

    lines.append("## Company Overview Comparison\n")
    lines.append("### Business Description\n")
    lines += _named_paragraphs(companies, "business_description")

    uvp = _named_paragraphs(companies, "unique_value_proposition")
    if uvp:
        lines.append("### Unique Value Propositions\n")
        lines += uvp

    # Details table: one column per company, rows only where someone has data
    lines.append("### Company Details Comparison\n")
    header = " | ".join(
        f"{PRIMARY_MARK}**{c.company_name}**" if c.is_primary else c.company_name
        for c in companies
    )
    table = [f"| Field | {header} |", "|-------|" + "|".join("-------" for _ in companies) + "|"]
    for key, label in DETAIL_FIELDS:
        if any(_disclosed(c.data.get(key)) for c in companies):
            cells = " | ".join(
                str(c.data[key]) if _disclosed(c.data.get(key)) else "N/A" for c in companies
            )
            table.append(f"| **{label}** | {cells} |")
    lines.append("\n".join(table) + "\n")

    funded = [
        c
        for c in companies
        if _disclosed(c.data.get("total_funding_raised"))
        or _disclosed(c.data.get("current_valuation"))
        or c.data.get("investment_summary")
    ]
    if funded:
        lines.append("## Investment & Funding Analysis\n")
        for company in funded:
            d = company.data
            lines.append(f"### {company.label}\n")
            if _disclosed(d.get("total_funding_raised")):
                lines.append(f"**Total Funding:** {d['total_funding_raised']}\n")
            if _disclosed(d.get("current_valuation")):
                lines.append(f"**Valuation:** {d['current_valuation']}\n")
            if d.get("latest_funding_round"):
                lines.append(f"**Latest Round:** {d['latest_funding_round']}\n")
            if d.get("investment_summary"):
                lines.append(f"{d['investment_summary']}\n")

    market_sections = [
        ("Market Size & Growth Analysis", "market_size_and_growth"),
        ("Target Market Analysis", "target_market_analysis"),
        ("Market Opportunities", "market_opportunities"),
    ]
    if any(c.data.get(key) for c in companies for _, key in market_sections):
        lines.append("## Market Analysis Comparison\n")
        for title, key in market_sections:
            paragraphs = _named_paragraphs(companies, key)
            if paragraphs:
                lines.append(f"### {title}\n")
                lines += paragraphs

    if p.get("competitive_landscape_overview"):
        lines += ["## Competitive Landscape Overview\n", f"{p['competitive_landscape_overview']}\n"]

    lines += _titled_sections("Products & Features Analysis", companies, "products_summary")
    lines += _titled_sections("Pricing Analysis", companies, "pricing_summary")
    lines += _titled_sections("Recent Developments", companies, "recent_news_developments")
    lines += _reddit_section(companies)

    if len(companies) > 1:
        lines += _strategic_analysis(companies)

    lines += _implications(primary, competitors)

    coverage = ", ".join(c.company_name for c in competitors)
    lines += [
        "---\n",
        f"*Comprehensive competitive intelligence report generated on {today.isoformat()}*\n",
        f"**Data Sources:** {len(companies)} company analyses including AI-powered research, "
        "Reddit sentiment analysis, and public market data\n",
        f"**Coverage:** {primary.company_name} (primary)"
        + (f" + {coverage}" if coverage else "")
        + "\n",
        "*For the most current information, please verify directly with company sources "
        "and consider conducting follow-up research.*",
    ]
    return "\n".join(lines) + "\n"


def _reddit_section(companies: list[CompanyReport]) -> list[str]:
    with_reddit = [c for c in companies if c.data.get("target_company_reddit_analysis")]
    if not with_reddit:
        return []
    lines = ["## Reddit Community Insights Comparison\n"]
    for company in with_reddit:
        sentiment = company.data.get("reddit_overall_sentiment") or "unknown"
        emoji = SENTIMENT_EMOJI.get(sentiment, "❓")
        lines.append(f"### {company.label} {emoji} ({sentiment} sentiment)\n")
        lines.append(f"{company.data['target_company_reddit_analysis']}\n")

    if len(with_reddit) > 1:
        lines.append("### Reddit Sentiment Summary\n")
        table = [
            "| Company | Sentiment | Analysis Available |",
            "|---------|-----------|-------------------|",
        ]
        for company in with_reddit:
            sentiment = company.data.get("reddit_overall_sentiment") or "Unknown"
            emoji = SENTIMENT_EMOJI.get(sentiment, "❓")
            table.append(f"| {company.label} | {emoji} {sentiment} | ✅ |")
        lines.append("\n".join(table) + "\n")
    return lines


def _strategic_analysis(companies: list[CompanyReport]) -> list[str]:
    lines = ["## Cross-Company Strategic Analysis\n", "### Key Differentiators\n"]
    for company in companies:
        uvp = company.data.get("unique_value_proposition")
        if uvp:
            lines.append(f"**{company.label}:** Focus on {str(uvp).lower()}\n")

    lines.append("### Competitive Positioning\n")
    lines.append(f"Based on the analysis of {len(companies)} companies:\n")

    funded = [c for c in companies if _disclosed(c.data.get("total_funding_raised"))]
    if len(funded) > 1:
        # Reverse lexical order of the funding strings; a rough proxy, not a ranking
        funded.sort(key=lambda c: str(c.data["total_funding_raised"]), reverse=True)
        block = ["**Funding Landscape:**"]
        block += [f"• {c.label}: {c.data['total_funding_raised']}" for c in funded]
        lines.append("\n".join(block) + "\n")

    sized = [c for c in companies if _disclosed(c.data.get("employee_count"))]
    if len(sized) > 1:
        block = ["**Company Size:**"]
        block += [f"• {c.label}: {c.data['employee_count']} employees" for c in sized]
        lines.append("\n".join(block) + "\n")
    return lines


def _implications(primary: CompanyReport, competitors: list[CompanyReport]) -> list[str]:
    p = primary.data
    sentiment = p.get("reddit_overall_sentiment")
    summary = [
        f"• **Market Position:** Competing against {len(competitors)} analyzed competitors"
    ]
    if sentiment:
        summary.append(f"• **Community Sentiment:** {str(sentiment).capitalize()} sentiment on Reddit")
    if p.get("unique_value_proposition"):
        summary.append(f"• **Key Differentiator:** {p['unique_value_proposition']}")

    scores = [
        SENTIMENT_SCORE.get(c.data["reddit_overall_sentiment"], 0)
        for c in competitors
        if c.data.get("reddit_overall_sentiment")
    ]
    if scores:
        average = sum(scores) / len(scores)
        own = SENTIMENT_SCORE.get(sentiment or "", 0)
        if own > average:
            summary.append(
                "• **Sentiment Advantage:** Higher community sentiment than competitor average"
            )
        elif own < average:
            summary.append(
                "• **Sentiment Opportunity:** Room to improve community perception "
                "relative to competitors"
            )

    engagement = "Maintain" if sentiment == "high" else "Improve"
    return [
        f"## Strategic Implications for {primary.company_name}\n",
        "### Competitive Intelligence Summary\n",
        "\n".join(summary) + "\n",
        "### Recommendations\n",
        "\n".join(
            [
                f"1. **Monitor Competitive Developments:** Keep tracking the {len(competitors)} "
                "identified competitors for strategic changes",
                "2. **Leverage Unique Positioning:** Continue to emphasize differentiation "
                "in market communications",
                f"3. **Community Engagement:** {engagement} Reddit and social media presence",
                "4. **Regular Analysis:** Update this competitive analysis quarterly to track "
                "market shifts",
            ]
        )
        + "\n",
    ]


def analysis_not_found_message(origin: str, hostname: str) -> str:
    return (
        f"Analysis not found. Please go to {origin}/new?company={hostname} "
        "to add this company."
    )


def render_markdown_report(store: AnalysisStore, hostname: str) -> str | None:
    """Markdown report for hostname, or None if it has no successful analysis."""
    companies = load_report_companies(store, hostname)
    if companies is None:
        return None
    primary, competitors = companies
    return build_competitive_report(primary, competitors)
