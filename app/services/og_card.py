"""Layout for the 1200x630 SVG share card served at /og/{hostname}."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from app.models.analysis import Analysis
from app.services.domain import company_name_from_hostname
from app.services.reports import result_content

CARD_WIDTH = 1200
CARD_MARGIN = 100
MAX_COMPETITORS = 6
NAME_LIMIT = 15

CARD_TEMPLATE = "og/card.svg"
PLACEHOLDER_TEMPLATE = "og/placeholder.svg"
CARD_MAX_AGE = 86400
PLACEHOLDER_MAX_AGE = 3600


@dataclass
class CompetitorLogo:
    name: str
    hostname: str
    x: float

    @property
    def favicon_url(self) -> str:
        return favicon_url(self.hostname, 64)


def favicon_url(hostname: str, size: int) -> str:
    return f"https://www.google.com/s2/favicons?domain={quote(hostname, safe='')}&sz={size}"


def truncate_name(name: str, limit: int = NAME_LIMIT) -> str:
    return name[:limit] + "..." if len(name) > limit else name


def layout_competitors(competitors: list[dict[str, Any]]) -> list[CompetitorLogo]:
    """Spread up to six competitor logos evenly across the card width.

    A single competitor is centered.
    """
    shown = [c for c in competitors if isinstance(c, dict)][:MAX_COMPETITORS]
    if len(shown) == 1:
        positions = [CARD_WIDTH / 2]
    else:
        spacing = (CARD_WIDTH - 2 * CARD_MARGIN) / (len(shown) - 1) if shown else 0
        positions = [CARD_MARGIN + index * spacing for index in range(len(shown))]
    return [
        CompetitorLogo(
            name=truncate_name(str(c.get("name") or c.get("hostname") or "")),
            hostname=str(c.get("hostname") or ""),
            x=round(x, 2),
        )
        for c, x in zip(shown, positions)
    ]


def build_og_card(analysis: Analysis | None, hostname: str) -> tuple[str, dict[str, Any], int]:
    """Return (template name, template context, cache max-age) for hostname.

    Anything but a successful analysis gets the "in progress" placeholder.
    """
    if analysis is None or not analysis.is_successful:
        return (
            PLACEHOLDER_TEMPLATE,
            {
                "hostname": hostname,
                "company_name": company_name_from_hostname(hostname),
                "logo_url": favicon_url(hostname, 128),
            },
            PLACEHOLDER_MAX_AGE,
        )

    content = result_content(analysis)
    return (
        CARD_TEMPLATE,
        {
            "hostname": hostname,
            "company_name": content.get("company_name") or analysis.company_name,
            "logo_url": favicon_url(hostname, 128),
            "competitors": layout_competitors(content.get("competitors") or []),
        },
        CARD_MAX_AGE,
    )
