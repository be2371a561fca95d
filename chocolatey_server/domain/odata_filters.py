"""
Interpretation of the OData `$filter` expressions sent by Chocolatey clients.

Rather than parse the OData grammar, only the two shapes the client emits
are recognized. For install/upgrade commands:

    (tolower(Id) eq 'foo') and IsLatestVersion

For search commands:

    (((Id ne null) and substringof('foo',tolower(Id))) or
      ((Description ne null) and substringof('foo',tolower(Description)))) or
      ((Tags ne null) and substringof(' foo ',tolower(Tags)))

Everything else is unrecognized and must be rejected by the caller.
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Tuple

from chocolatey_server.domain.models import FilterKind, FilterQuery

EXACT_ID_PATTERN = re.compile(r"tolower\(Id\)\s+eq\s+'(.*?)'", re.IGNORECASE)
SUBSTRING_PATTERN = re.compile(
    r"substringof\('(.*?)',\s*tolower\(.*?\)\)", re.IGNORECASE
)


def match_exact_id(expression: str) -> Optional[str]:
    """
    Return the package id from a `tolower(Id) eq '<id>'` clause, if present.

    The `IsLatestVersion` clause the client appends is ignored.
    """
    match = EXACT_ID_PATTERN.search(expression)
    return match.group(1) if match else None


def match_substring(expression: str) -> Optional[str]:
    """
    Return the fragment from the first `substringof('<term>',tolower(...))`.

    The client repeats the same term for Id, Description and Tags, so the
    first operand is enough.
    """
    match = SUBSTRING_PATTERN.search(expression)
    return match.group(1) if match else None


# Checked in order; exact-id wins when both shapes appear.
_MATCHERS: List[Tuple[FilterKind, Callable[[str], Optional[str]]]] = [
    ("exact_id", match_exact_id),
    ("substring", match_substring),
]


def parse_filter(expression: Optional[str]) -> FilterQuery:
    """
    Classify a raw `$filter` value as an exact-id lookup, a substring search,
    or unrecognized.
    """
    if expression:
        for kind, matcher in _MATCHERS:
            term = matcher(expression)
            if term is not None:
                return FilterQuery(kind=kind, term=term)
    return FilterQuery(kind="unrecognized")


def strip_quotes(value: Optional[str]) -> str:
    """
    Remove the single quotes surrounding an OData string literal,
    e.g. `'foo'` -> `foo`. Unquoted values are returned unchanged.
    """
    value = (value or "").strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value
