"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, domainpool.toml only contains
overrides. A fresh pool needs no config file at all.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class PoolConfig(BaseModel):
    """[pool] section."""

    model_config = {"frozen": True}

    name: str = "domainpool"
    # None = SQLite at {root}/.domainpool/domainpool.db
    db_url: str | None = None
    busy_timeout: float = Field(default=5.0, gt=0)


class AllocationConfig(BaseModel):
    """[allocation] section."""

    model_config = {"frozen": True}

    standard_quota: int = Field(default=1, ge=0)
    premium_quota: int = Field(default=2, ge=0)
    max_attempts: int = Field(default=5, ge=1)
    backoff_min: float = Field(default=0.01, ge=0)
    backoff_max: float = Field(default=0.5, ge=0)


class ExpiryConfig(BaseModel):
    """[expiry] section."""

    model_config = {"frozen": True}

    # Whether the sweep deletes assignments on expired domains.
    reclaim: bool = False
    expiring_window_days: int = Field(default=14, ge=0)
    default_lifetime_days: int = Field(default=365, ge=1)
    sweep_interval_seconds: int = Field(default=3600, ge=1)


class CheckConfig(BaseModel):
    """[check] section."""

    model_config = {"frozen": True}

    backup_retention_days: int = 30
    backup_max_count: int = 10


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    local_dir: str | None = None
    disabled: list[str] = Field(default_factory=list)


class PoolFileConfig(BaseModel):
    """Root model for a parsed domainpool.toml."""

    model_config = {"frozen": True}

    pool: PoolConfig = Field(default_factory=PoolConfig)
    allocation: AllocationConfig = Field(default_factory=AllocationConfig)
    expiry: ExpiryConfig = Field(default_factory=ExpiryConfig)
    check: CheckConfig = Field(default_factory=CheckConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> PoolFileConfig:
        return cls.model_validate(data)
