"""
Allowed-domain rules for API keys.

A profile may restrict its key to a list of domains. An empty list means
"any domain". Entries are stored cleaned: lower-case, no scheme, no
trailing slash, optional :port kept.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from postcode_api.core.errors import DomainNotAllowed

_LOCALHOST_RE = re.compile(r"^localhost(?::\d+)?$")
_DOMAIN_RE = re.compile(
    r"^(?:"
    r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}(?::\d+)?"
    r"|(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z0-9][a-z0-9-]{0,61}[a-z0-9](?::\d+)?"
    r")$"
)


def clean_domain(domain: str) -> str:
    """Lower-case, trim, drop http(s):// and one trailing slash."""
    cleaned = domain.strip().lower()
    if cleaned.startswith(("http://", "https://")):
        cleaned = cleaned.split("//", 1)[1]
    return cleaned.removesuffix("/")


def is_valid_domain(domain: str) -> bool:
    """True for localhost[:port], IPv4[:port] or a dotted hostname[:port]."""
    cleaned = clean_domain(domain)
    return bool(_LOCALHOST_RE.match(cleaned) or _DOMAIN_RE.match(cleaned))


def request_domain(origin: str | None, referer: str | None) -> str | None:
    """The host[:port] a browser request came from, or None."""
    for header in (origin, referer):
        if not header:
            continue
        netloc = urlsplit(header).netloc
        if netloc:
            return netloc.lower()
    return None


def ensure_domain_allowed(allowed_domains: list[str], domain: str | None) -> None:
    """
    Enforce a profile's allow-list.

    Raises DomainNotAllowed when the list is non-empty and the request
    domain is missing or not on it.
    """
    if not allowed_domains:
        return
    if domain is None or domain not in allowed_domains:
        raise DomainNotAllowed()
