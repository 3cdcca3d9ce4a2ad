# text_filters.py
"""
Pure text helpers shared by the chat endpoint and the widget.

Nothing in here performs I/O; every function maps a string to a string or
a bool so the heuristics can be checked against plain input/output tables.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional, Pattern, Tuple

from models import LeadInfo

# ─────────────────────────────────────────────────────────────
# Regex Utilities
# ─────────────────────────────────────────────────────────────
EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
CALL_INTENT_RE = re.compile(r"schedule.*call|book.*call|discovery call", re.IGNORECASE)

DEFAULT_SCHEDULING_DOMAIN = "calendly.com"


@lru_cache(maxsize=8)
def _scheduling_patterns(domain: str) -> Tuple[Pattern[str], Pattern[str]]:
    # "//" forms may carry userinfo; scheme-less hosts must not be an email's domain
    prefix = r"(?:(?:https?:)?//(?:[^\s/@]+@)?|(?<![A-Z0-9@._%+/-]))"
    host = prefix + r"(?:[A-Z0-9-]+\.)*" + re.escape(domain) + r"(?![A-Z0-9.-]*[A-Z0-9])"
    url = host + r"(?:[/?#][^\s)\]]*)?"
    # [label](url "title") – the whole link goes, label included
    markdown = re.compile(r"\[[^\]]*\]\(\s*<?" + url + r">?[^)]*\)", re.IGNORECASE)
    bare = re.compile(url, re.IGNORECASE)
    return markdown, bare


def strip_scheduling_links(text: str, domain: str = DEFAULT_SCHEDULING_DOMAIN) -> str:
    """
    Remove links to the scheduling domain: markdown links first, then bare URLs.
    Surrounding text is left exactly as it was.
    """
    if not text:
        return text or ""
    markdown, bare = _scheduling_patterns(domain.lower())
    text = markdown.sub("", text)
    return bare.sub("", text)


def clean_reply_for_display(text: str, domain: str = DEFAULT_SCHEDULING_DOMAIN) -> str:
    return strip_scheduling_links(text, domain).strip()


def contains_email(text: str) -> bool:
    return bool(EMAIL_RE.search(text or ""))


def is_lead(raw_reply: str, lead: Optional[LeadInfo] = None) -> bool:
    """Heuristic: an email in the model's reply, or one handed in by the widget."""
    if contains_email(raw_reply):
        return True
    return bool(lead is not None and lead.email)


def suggests_call(text: str) -> bool:
    return bool(CALL_INTENT_RE.search(text or ""))
