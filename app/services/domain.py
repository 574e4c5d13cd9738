"""Hostname normalization and existence checks.

is_valid_hostname is a heuristic: a syntactic check followed by a
DNS-over-HTTPS lookup. False positives and negatives are acceptable.
"""

from __future__ import annotations

import logging
import re

import httpx

logger = logging.getLogger(__name__)

PRIMARY_DOH_URL = "https://1.1.1.1/dns-query"
FALLBACK_DOH_URL = "https://dns.google/resolve"
PRIMARY_TIMEOUT = 3.0
FALLBACK_TIMEOUT = 2.0

_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{0,61}[a-zA-Z0-9]?(\.[a-zA-Z]{2,})+$")
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_hostname(value: str) -> str:
    """Lowercase hostname without scheme, path, port or leading www."""
    hostname = _SCHEME_RE.sub("", value.strip().lower())
    hostname = hostname.split("/", 1)[0].split("?", 1)[0].split(":", 1)[0]
    if hostname.startswith("www."):
        hostname = hostname[len("www.") :]
    return hostname


def company_name_from_hostname(domain: str) -> str:
    """Guess a display name from a domain: 'news.ycombinator.com' -> 'News Ycombinator'."""
    clean = _SCHEME_RE.sub("", domain)
    if clean.startswith("www."):
        clean = clean[len("www.") :]
    last_dot = clean.rfind(".")
    if last_dot > 0:
        clean = clean[:last_dot]
    return " ".join(word[:1].upper() + word[1:] for word in clean.split("."))


def is_valid_domain(hostname: str) -> bool:
    return bool(_DOMAIN_RE.match(hostname))


async def _resolve(url: str, hostname: str, timeout: float) -> bool:
    """Query one DoH resolver. Raises httpx.HTTPError on transport or HTTP failure."""
    async with httpx.AsyncClient(
        timeout=timeout,
        headers={"Accept": "application/dns-json"},
    ) as client:
        response = await client.get(url, params={"name": hostname, "type": "A"})
        response.raise_for_status()
        data = response.json()
    # Status 0 (NOERROR) means the name exists, even without A records (e.g. MX-only)
    return data.get("Status") == 0


async def is_valid_hostname(hostname: str) -> bool:
    """Return True if hostname is well-formed and resolves via DNS-over-HTTPS.

    Tries the primary resolver, falls back to the secondary on any failure,
    and returns False when both fail.
    """
    if not is_valid_domain(hostname):
        return False

    try:
        return await _resolve(PRIMARY_DOH_URL, hostname, PRIMARY_TIMEOUT)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Primary DNS lookup failed for %s: %s; trying fallback", hostname, exc)

    try:
        return await _resolve(FALLBACK_DOH_URL, hostname, FALLBACK_TIMEOUT)
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("DNS lookup failed on both resolvers for %s: %s", hostname, exc)
        return False
