"""AllocationService — claim and release domains.

Each operation is one write transaction over the catalog and the ledger.
Eligibility is evaluated inside the transaction, after the write lock is
held, so the checks and the writes see the same state:

    load domain + user's assignments -> evaluate_assignment
        -> claim_slot (CAS on current_usage) -> insert assignment -> commit

A lost race surfaces as :class:`WriteConflict` and the whole unit is
retried with exponential backoff; when attempts run out the caller gets
``CONFLICT``. A denial discovered after a write has started rolls the
transaction back before it is reported.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import DBAPIError, IntegrityError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from domainpool.domain.eligibility import (
    MESSAGES,
    Denial,
    ErrorCode,
    QuotaPolicy,
    evaluate_assignment,
)
from domainpool.domain.ids import normalize_domain_id
from domainpool.infrastructure.errors import StorageError, WriteConflict
from domainpool.services.base import BaseService
from domainpool.services.contracts import AssignData, RemoveData, dump_validated
from domainpool.services.result import ServiceError, ServiceResult
from domainpool.services.telemetry import get_current_span, trace_span, traced

if TYPE_CHECKING:
    from domainpool.domain.models import Assignment, Domain

logger = logging.getLogger(__name__)

ASSIGNMENT_NOT_FOUND = "Assignment not found for this user and domain"


class _Denied(Exception):
    """Raised inside a transaction to roll it back and report *denial*."""

    def __init__(self, denial: Denial) -> None:
        super().__init__(denial.message)
        self.denial = denial


class AllocationService(BaseService):
    """Assigns domains to users and releases them."""

    def _retrying(self) -> Retrying:
        cfg = self._pool.settings.allocation
        return Retrying(
            retry=retry_if_exception_type(WriteConflict),
            stop=stop_after_attempt(cfg.max_attempts),
            wait=wait_exponential(
                multiplier=cfg.backoff_min, min=cfg.backoff_min, max=cfg.backoff_max
            ),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )

    def _quota_policy(self) -> QuotaPolicy:
        cfg = self._pool.settings.allocation
        return QuotaPolicy(standard=cfg.standard_quota, premium=cfg.premium_quota)

    # ------------------------------------------------------------------
    # Assign
    # ------------------------------------------------------------------

    @traced
    def assign(self, uid: int, domain_id: str) -> ServiceResult:
        """Claim *domain_id* for *uid*.

        Checks run in a fixed order and the first failure is reported:
        NOT_FOUND, EXPIRED, PREMIUM_REQUIRED, AT_CAPACITY, QUOTA_EXCEEDED,
        ALREADY_ASSIGNED. On success the assignment row and the usage
        increment commit together.
        """
        op = "assign_domain"
        domain_id = normalize_domain_id(domain_id)
        retrying = self._retrying()

        try:
            assignment, domain = retrying(self._assign_once, uid, domain_id)
        except _Denied as exc:
            logger.info("assign denied uid=%s domain=%s code=%s", uid, domain_id, exc.denial.code)
            return ServiceResult(ok=False, op=op, error=ServiceError.from_denial(exc.denial))
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)
        finally:
            span = get_current_span()
            if span is not None:
                span.annotate("attempts", retrying.statistics.get("attempt_number", 1))

        logger.info("assigned uid=%s domain=%s assignment=%s", uid, domain_id, assignment.id)
        warnings: list[str] = []
        self._dispatch_event(
            "post_assign",
            {
                "uid": uid,
                "domain_id": domain.id,
                "domain_name": domain.name,
                "assignment_id": assignment.id,
            },
            warnings,
        )
        data = dump_validated(
            AssignData,
            {"assignment": assignment.to_payload(), "domain": domain.to_payload()},
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    def _assign_once(self, uid: int, domain_id: str) -> tuple[Assignment, Domain]:
        with self._pool.transaction() as txn:
            with trace_span("evaluate"):
                # Premium can lapse between attempts, so every attempt asks again.
                has_premium = self._pool.users.has_premium(uid)
                domain = txn.catalog.get(domain_id, for_update=True)
                held = txn.ledger.for_user(uid)
                denial = evaluate_assignment(
                    domain,
                    has_premium=has_premium,
                    current_assignment_count=len(held),
                    already_assigned=any(a.domain_id == domain_id for a in held),
                    now=txn.now,
                    policy=self._quota_policy(),
                )
            if denial is not None:
                raise _Denied(denial)

            with trace_span("write"):
                if not txn.catalog.claim_slot(domain_id, txn.now):
                    raise _Denied(Denial(ErrorCode.AT_CAPACITY, MESSAGES[ErrorCode.AT_CAPACITY]))
                try:
                    assignment = txn.ledger.insert(uid, domain_id, txn.now)
                except IntegrityError as exc:
                    raise _Denied(
                        Denial(ErrorCode.ALREADY_ASSIGNED, MESSAGES[ErrorCode.ALREADY_ASSIGNED])
                    ) from exc
                updated = txn.catalog.get(domain_id)
            assert updated is not None
        return assignment, updated

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    @traced
    def remove(self, uid: int, domain_id: str) -> ServiceResult:
        """Release *uid*'s claim on *domain_id* and free its slot.

        A second call for the same pair reports NOT_FOUND.
        """
        op = "remove_domain"
        domain_id = normalize_domain_id(domain_id)
        try:
            outcome = self._retrying()(self._remove_once, uid, domain_id)
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        if isinstance(outcome, Denial):
            return ServiceResult(ok=False, op=op, error=ServiceError.from_denial(outcome))

        domain = outcome
        logger.info("removed uid=%s domain=%s", uid, domain_id)
        warnings: list[str] = []
        self._dispatch_event(
            "post_remove",
            {"uid": uid, "domain_id": domain.id, "domain_name": domain.name},
            warnings,
        )
        data = dump_validated(
            RemoveData,
            {"uid": uid, "domain_id": domain.id, "domain": domain.to_payload()},
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    def _remove_once(self, uid: int, domain_id: str) -> Domain | Denial:
        with self._pool.transaction() as txn:
            if txn.catalog.get(domain_id, for_update=True) is None:
                return Denial(ErrorCode.NOT_FOUND, MESSAGES[ErrorCode.NOT_FOUND])
            assignment = txn.ledger.get(uid, domain_id)
            if assignment is None:
                return Denial(
                    ErrorCode.NOT_FOUND,
                    ASSIGNMENT_NOT_FOUND,
                    {"uid": uid, "domain_id": domain_id},
                )
            txn.ledger.delete(assignment.id)
            txn.catalog.release_slot(domain_id, txn.now)
            domain = txn.catalog.get(domain_id)
        assert domain is not None
        return domain

