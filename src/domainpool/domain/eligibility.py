"""Eligibility policy for domain assignment.

Stateless predicates over (domain, user facts, current time). The
allocation engine composes them in a fixed order so that the first
failing check is the one reported:

    NOT_FOUND -> EXPIRED -> PREMIUM_REQUIRED -> AT_CAPACITY
              -> QUOTA_EXCEEDED -> ALREADY_ASSIGNED

An expired, full, premium-only domain therefore reports ``EXPIRED``.
Nothing here performs I/O; storage and clocks are the caller's concern.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from domainpool.domain.models import Domain

STANDARD_QUOTA = 1
PREMIUM_QUOTA = 2
EXPIRING_WINDOW = timedelta(days=14)


class ErrorCode(StrEnum):
    """Named outcomes surfaced to callers. Never collapsed into a generic failure."""

    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    PREMIUM_REQUIRED = "PREMIUM_REQUIRED"
    AT_CAPACITY = "AT_CAPACITY"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    ALREADY_ASSIGNED = "ALREADY_ASSIGNED"
    CONFLICT = "CONFLICT"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    FORBIDDEN = "FORBIDDEN"
    DUPLICATE = "DUPLICATE"
    INVALID_INPUT = "INVALID_INPUT"


MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.NOT_FOUND: "Domain not found",
    ErrorCode.EXPIRED: "This domain has expired",
    ErrorCode.PREMIUM_REQUIRED: "Premium subscription required",
    ErrorCode.AT_CAPACITY: "At capacity",
    ErrorCode.QUOTA_EXCEEDED: "Limit reached",
    ErrorCode.ALREADY_ASSIGNED: "You already have this domain assigned",
    ErrorCode.CONFLICT: "Concurrent update conflict; try again",
    ErrorCode.STORAGE_UNAVAILABLE: "Storage unavailable",
}


@dataclass(frozen=True)
class Denial:
    """Why an assignment was refused."""

    code: ErrorCode
    message: str
    detail: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QuotaPolicy:
    """Per-user assignment limits keyed on premium status."""

    standard: int = STANDARD_QUOTA
    premium: int = PREMIUM_QUOTA

    def quota_for(self, has_premium: bool) -> int:
        return self.premium if has_premium else self.standard


# --- Predicates ---


def is_expired(domain: Domain, now: datetime) -> bool:
    """A domain is usable only while ``now < expires_at``."""
    return now >= domain.expires_at


def requires_premium_denied(domain: Domain, has_premium: bool) -> bool:
    return domain.only_premium and not has_premium


def is_at_capacity(domain: Domain) -> bool:
    if domain.max_usage == 0:
        return False
    return domain.current_usage >= domain.max_usage


def quota_exceeded(
    has_premium: bool,
    current_assignment_count: int,
    policy: QuotaPolicy | None = None,
) -> bool:
    quota = (policy or QuotaPolicy()).quota_for(has_premium)
    return current_assignment_count >= quota


def is_expiring(
    domain: Domain,
    now: datetime,
    window: timedelta = EXPIRING_WINDOW,
) -> bool:
    """True when the domain is still live but expires within *window*."""
    return now < domain.expires_at and domain.expires_at - now <= window


def is_available(domain: Domain, *, has_premium: bool, now: datetime) -> bool:
    """Filter predicate for the "available to this user now" list."""
    return (
        not is_expired(domain, now)
        and not requires_premium_denied(domain, has_premium)
        and not is_at_capacity(domain)
    )


# --- Composition ---


def evaluate_assignment(
    domain: Domain | None,
    *,
    has_premium: bool,
    current_assignment_count: int,
    already_assigned: bool,
    now: datetime,
    policy: QuotaPolicy | None = None,
) -> Denial | None:
    """Run every check in order and return the first denial, or None if allowed."""
    if domain is None:
        return Denial(ErrorCode.NOT_FOUND, MESSAGES[ErrorCode.NOT_FOUND])
    if is_expired(domain, now):
        return Denial(
            ErrorCode.EXPIRED,
            MESSAGES[ErrorCode.EXPIRED],
            {"expires_at": domain.expires_at.isoformat()},
        )
    if requires_premium_denied(domain, has_premium):
        return Denial(ErrorCode.PREMIUM_REQUIRED, MESSAGES[ErrorCode.PREMIUM_REQUIRED])
    # The holder's own claim already occupies one of the slots.
    if not already_assigned and is_at_capacity(domain):
        return Denial(
            ErrorCode.AT_CAPACITY,
            MESSAGES[ErrorCode.AT_CAPACITY],
            {"max_usage": domain.max_usage, "current_usage": domain.current_usage},
        )
    policy = policy or QuotaPolicy()
    # A re-claim of a held domain is a duplicate, not a quota breach.
    held_elsewhere = current_assignment_count - (1 if already_assigned else 0)
    if quota_exceeded(has_premium, held_elsewhere, policy):
        return Denial(
            ErrorCode.QUOTA_EXCEEDED,
            MESSAGES[ErrorCode.QUOTA_EXCEEDED],
            {"quota": policy.quota_for(has_premium), "premium": has_premium},
        )
    if already_assigned:
        return Denial(ErrorCode.ALREADY_ASSIGNED, MESSAGES[ErrorCode.ALREADY_ASSIGNED])
    return None
