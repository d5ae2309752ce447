"""Typed lifecycle events.

One pydantic model per hook in :class:`DomainPoolHookSpec`. A payload is
validated before it reaches the WAL, so a replayed row always matches the
hook signature it was written for. ``subject_domain`` and ``subject_uid``
feed the WAL's indexed subject columns.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel


class LifecycleEvent(BaseModel):
    """Base for hook payloads. Field names are the hook's keyword arguments."""

    model_config = {"frozen": True, "extra": "forbid"}

    hook: ClassVar[str]

    @property
    def subject_domain(self) -> str | None:
        return getattr(self, "domain_id", None)

    @property
    def subject_uid(self) -> int | None:
        return getattr(self, "uid", None)


class AssignEvent(LifecycleEvent):
    hook: ClassVar[str] = "post_assign"

    uid: int
    domain_id: str
    domain_name: str
    assignment_id: int


class RemoveEvent(LifecycleEvent):
    hook: ClassVar[str] = "post_remove"

    uid: int
    domain_id: str
    domain_name: str


class DomainCreateEvent(LifecycleEvent):
    hook: ClassVar[str] = "post_domain_create"

    domain: dict[str, Any]

    @property
    def subject_domain(self) -> str | None:
        return self.domain.get("id")


class DomainDeleteEvent(LifecycleEvent):
    hook: ClassVar[str] = "post_domain_delete"

    domain_id: str
    assignments_removed: int


class SweepEvent(LifecycleEvent):
    """Pool-wide; carries no single subject."""

    hook: ClassVar[str] = "post_sweep"

    expired: list[str]
    reclaimed: int


EVENTS: dict[str, type[LifecycleEvent]] = {
    model.hook: model
    for model in (AssignEvent, RemoveEvent, DomainCreateEvent, DomainDeleteEvent, SweepEvent)
}


class UnknownHookError(ValueError):
    """Raised for a hook name with no lifecycle event model."""


def build_event(hook_name: str, payload: dict[str, Any]) -> LifecycleEvent:
    """Validate *payload* against the model registered for *hook_name*.

    Raises :class:`UnknownHookError` or ``pydantic.ValidationError``.
    """
    model = EVENTS.get(hook_name)
    if model is None:
        msg = f"No lifecycle event named {hook_name!r}"
        raise UnknownHookError(msg)
    return model.model_validate(payload)
