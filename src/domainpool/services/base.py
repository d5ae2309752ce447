"""BaseService — foundation for all domainpool services.

Every service receives a :class:`Pool` at construction time and owns its
transaction boundaries via ``self._pool.transaction()`` or
``self._pool.snapshot()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from domainpool.domain.eligibility import MESSAGES, ErrorCode
from domainpool.infrastructure.errors import WriteConflict
from domainpool.services.result import ServiceResult

if TYPE_CHECKING:
    from domainpool.infrastructure.pool import Pool

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class AllocationService(BaseService):
            def assign(self, uid: int, domain_id: str) -> ServiceResult:
                with self._pool.transaction() as txn:
                    ...
    """

    def __init__(self, pool: Pool) -> None:
        self._pool = pool

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a lifecycle event after commit. No-op if the bus is not initialized.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        bus = self._pool.event_bus
        if bus is None:
            return
        try:
            bus.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")

    def _storage_failure(self, op: str, exc: Exception) -> ServiceResult:
        """Convert a storage exception raised out of a transaction into a result."""
        if isinstance(exc, WriteConflict):
            code = ErrorCode.CONFLICT
        else:
            code = ErrorCode.STORAGE_UNAVAILABLE
        logger.warning("%s failed with %s: %s", op, code, exc)
        return ServiceResult.failure(op, code, MESSAGES[code], {"reason": str(exc)})
