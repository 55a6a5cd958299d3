"""Transforms for derived dimensions.

every transform has the same shape: (row, source_value) -> value. the row is
passed along so a transform could look at sibling columns, but none of the
built-in ones need to. they must never raise - GA4 sends back whatever it
feels like and one weird page path shouldn't kill a whole report.
"""

import re
from typing import Any
from urllib.parse import urljoin, urlparse

# page paths come back relative, so resolve them against a fixed origin.
# absolute urls (cross-domain tracking) keep their own host
PLACEHOLDER_ORIGIN = "https://example.com"

TITLE_SEPARATOR = " - "

_WHITESPACE = re.compile(r"\s+")

USER_TYPE_LABELS = {
    "new": "New User",
    "returning": "Returning User",
}

DEVICE_CATEGORY_LABELS = {
    "desktop": "Desktop",
    "mobile": "Mobile",
    "tablet": "Tablet",
}


def domain(row: dict[str, Any], page_path: str) -> str:
    """Hostname of a page path, or empty string if it can't be parsed."""
    if not page_path:
        return ""
    try:
        return urlparse(urljoin(PLACEHOLDER_ORIGIN, page_path)).hostname or ""
    except ValueError:
        # urlparse chokes on things like unbalanced ipv6 brackets
        return ""


def page_title(row: dict[str, Any], title: str) -> str:
    """Drop the site-name suffix ("Shoes - My Store" -> "Shoes")."""
    if not title:
        return ""
    head, sep, _ = title.rpartition(TITLE_SEPARATOR)
    if sep:
        title = head
    return _WHITESPACE.sub(" ", title).strip()


def user_type(row: dict[str, Any], value: str) -> str:
    if not value:
        return ""
    return USER_TYPE_LABELS.get(value.lower(), value)


def device_category(row: dict[str, Any], value: str) -> str:
    if not value:
        return ""
    return DEVICE_CATEGORY_LABELS.get(value.lower(), value)
