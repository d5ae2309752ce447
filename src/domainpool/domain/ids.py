"""Domain ID normalization and name validation.

Domain IDs are derived from the DNS name the operator supplies
(``haze.bio`` -> ``haze-bio``) so they are safe as path segments and
CLI arguments.

INVARIANT: IDs are permanent. Once a domain is created its ID never changes.
"""

from __future__ import annotations

import re

# One or more labels separated by dots; labels are alnum with inner hyphens.
_DNS_NAME = re.compile(
    r"^(?=.{1,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)(\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)*$"
)
_DOMAIN_ID = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


def normalize_domain_id(raw: str) -> str:
    """Lower-case *raw* and replace dots with hyphens.

    Examples:
        >>> normalize_domain_id("Haze.Bio")
        'haze-bio'
        >>> normalize_domain_id("  cute-domain ")
        'cute-domain'
    """
    return raw.strip().lower().replace(".", "-")


def normalize_name(raw: str) -> str:
    """Canonical form of a DNS name: stripped, lower-cased, no trailing dot."""
    return raw.strip().lower().rstrip(".")


def is_valid_domain_id(domain_id: str) -> bool:
    """Check whether *domain_id* is already in normalized form."""
    return _DOMAIN_ID.match(domain_id) is not None


def is_valid_name(name: str) -> bool:
    """Check whether *name* is a syntactically valid DNS name."""
    return _DNS_NAME.match(name) is not None
