# src/core/text.py - v1
"""Small text helpers over HTML block content."""

from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timezone

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_YEAR_RE = re.compile(r"\b(202[0-9])\b")


def strip_tags(html: str) -> str:
    """Replace tags with spaces and collapse whitespace."""
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", html)).strip()


def count_words(html: str) -> int:
    text = strip_tags(html)
    return len(text.split(" ")) if text else 0


def fix_year(text: str, year: int | None = None) -> str:
    """Replace stale 202x years with the current year."""
    current = str(year or datetime.now(timezone.utc).year)
    return _YEAR_RE.sub(current, text)


def slugify(text: str) -> str:
    """ASCII, lowercase, hyphen-separated slug without year tokens."""
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower())
    slug = _YEAR_RE.sub("", slug)
    return re.sub(r"-{2,}", "-", slug).strip("-")


def first_paragraph_text(html: str, limit: int = 300) -> str:
    """Plain text of the first <p>, truncated to limit characters."""
    match = re.search(r"<p[^>]*>(.*?)</p>", html, re.IGNORECASE | re.DOTALL)
    text = strip_tags(match.group(1) if match else html)
    return text[:limit]
