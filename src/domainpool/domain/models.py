"""Domain and Assignment records.

Frozen Pydantic models mirroring the ``domains`` and ``domain_assignments``
tables. Timestamps are always timezone-aware UTC.

INVARIANT: ``current_usage == |assignments referencing the domain|`` as
observed outside a write transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class Domain(BaseModel):
    """A claimable domain in the shared pool."""

    model_config = {"frozen": True}

    id: str
    name: str
    only_premium: bool = False
    max_usage: int = Field(default=0, ge=0)  # 0 = unlimited
    current_usage: int = Field(default=0, ge=0)
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    @property
    def unlimited(self) -> bool:
        return self.max_usage == 0

    @property
    def remaining(self) -> int | None:
        """Free slots, or None when capacity is unlimited."""
        if self.unlimited:
            return None
        return max(self.max_usage - self.current_usage, 0)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class Assignment(BaseModel):
    """A claim binding one user to one domain. Never mutated in place."""

    model_config = {"frozen": True}

    id: int
    uid: int
    domain_id: str
    assigned_at: datetime
    created_at: datetime
    updated_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class HeldDomain(BaseModel):
    """Read-model row: an assignment joined with its domain."""

    model_config = {"frozen": True}

    assignment: Assignment
    domain: Domain
    is_expiring: bool
    is_expired: bool = False

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
