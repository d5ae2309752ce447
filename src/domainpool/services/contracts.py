"""Typed payload contracts for service and adapter boundaries.

Payloads are validated before they leave the service layer so shape
regressions (a renamed key, a naive timestamp) fail fast in tests.
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T", bound=BaseModel)


def dump_validated(model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="json")


class DomainItem(BaseModel):
    """One domain row as exposed to callers."""

    id: str
    name: str
    only_premium: bool
    max_usage: int
    current_usage: int
    expires_at: str
    created_at: str
    updated_at: str


class AssignmentItem(BaseModel):
    id: int
    uid: int
    domain_id: str
    assigned_at: str
    created_at: str
    updated_at: str


class HeldItem(BaseModel):
    """One row of a user's held domains."""

    assignment: AssignmentItem
    domain: DomainItem
    is_expiring: bool
    is_expired: bool


class AvailableDomainsData(BaseModel):
    """Payload contract for ``ViewService.list_available``."""

    uid: int
    premium: bool
    count: int
    items: list[DomainItem]


class UserDomainsData(BaseModel):
    """Payload contract for ``ViewService.list_assigned``."""

    uid: int
    count: int
    quota: int
    items: list[HeldItem]


class AssignData(BaseModel):
    """Payload contract for ``AllocationService.assign``."""

    assignment: AssignmentItem
    domain: DomainItem


class RemoveData(BaseModel):
    """Payload contract for ``AllocationService.remove``."""

    uid: int
    domain_id: str
    domain: DomainItem


class SweepItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    domain_id: str
    name: str
    expires_at: str
    assignments: int


class SweepData(BaseModel):
    """Payload contract for ``ExpiryService.sweep``."""

    reclaim: bool
    count: int
    reclaimed: int
    items: list[SweepItem]


class CheckIssue(BaseModel):
    """One integrity finding returned by ``CheckService.check``."""

    model_config = ConfigDict(extra="allow")

    category: str
    severity: Literal["warning", "error"]
    domain_id: str | None = None
    message: str
    fix_action: str | None = None


class EventItem(BaseModel):
    """One row of the lifecycle event log."""

    id: int
    hook_name: str
    domain_id: str | None = None
    uid: int | None = None
    status: str
    retries: int = 0
    error: str | None = None
    created: str | None = None


class PluginItem(BaseModel):
    name: str
    hooks: list[str]


class EventBacklogData(BaseModel):
    """Payload contract for ``EventService.backlog``."""

    count: int
    items: list[EventItem]
    plugins: list[PluginItem]
