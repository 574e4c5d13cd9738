"""Structured output schema requested from the research service for every analysis."""

from __future__ import annotations

from typing import Any

REDDIT_SENTIMENTS = ("high", "medium", "low")


def _text(description: str) -> dict[str, str]:
    return {"type": "string", "description": description}


TASK_INPUT_TEMPLATE = (
    "Conduct comprehensive competitive intelligence analysis for company: {hostname} "
    "including a Reddit sentiment analysis"
)

TASK_OUTPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "description": "Competitive intelligence profile of one company and its closest competitors.",
    "additionalProperties": False,
    "properties": {
        "company_fits_criteria": {
            "type": "boolean",
            "description": (
                "True only if the domain belongs to an active company with real "
                "products or services."
            ),
        },
        "company_name": _text("Official company name."),
        "company_domain": _text("Primary website domain, without scheme or www."),
        "category": _text("Short product category, e.g. 'Developer Tools'."),
        "business_description": _text("Two or three sentences on what the company does."),
        "industry_sector": _text("Industry sector the company operates in."),
        "keywords": _text("Comma-separated keywords describing the company and its market."),
        "founded_year": _text("Year founded, or 'Not found'."),
        "employee_count": _text("Approximate headcount, or 'Not found'."),
        "headquarters_location": _text("City and country of headquarters, or 'Not found'."),
        "unique_value_proposition": _text("What sets the company apart, in one sentence."),
        "total_funding_raised": _text("Total funding raised, or 'Not disclosed'."),
        "current_valuation": _text("Latest known valuation, or 'Not publicly disclosed'."),
        "latest_funding_round": _text("Most recent round with date and lead investors."),
        "investment_summary": _text("Narrative of the funding and investor history."),
        "market_size_and_growth": _text("Market size and growth rate with sources."),
        "target_market_analysis": _text("Who the customers are and how they buy."),
        "market_opportunities": _text("Open opportunities in the market."),
        "competitive_landscape_overview": _text("How the competitive landscape is structured."),
        "competitors": {
            "type": "array",
            "description": "Closest direct competitors, most relevant first.",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "name": _text("Competitor name."),
                    "hostname": _text("Competitor website domain, without scheme or www."),
                    "description": _text("One line on how it competes."),
                },
                "required": ["name", "hostname", "description"],
            },
        },
        "products_summary": _text("Products and key features compared with competitors."),
        "pricing_summary": _text("Pricing model and tiers compared with competitors."),
        "recent_news_developments": _text("Notable news from the last twelve months."),
        "target_company_reddit_analysis": _text(
            "What Reddit users say about the company, using the Reddit tool."
        ),
        "reddit_overall_sentiment": {
            "type": "string",
            "enum": list(REDDIT_SENTIMENTS),
            "description": "Overall Reddit sentiment towards the company.",
        },
        "executive_summary": _text("Executive summary of the competitive position."),
    },
}

TASK_OUTPUT_SCHEMA["required"] = list(TASK_OUTPUT_SCHEMA["properties"])
