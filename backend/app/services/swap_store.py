"""Swap request lifecycle: pending, then approved or rejected, never changed afterwards."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session, joinedload

from app.core.errors import Forbidden, InvalidArgument, InvalidState, NotEligible, NotFound
from app.core.permissions import Identity, can_delete_swap, can_review_swap
from app.database.transaction import store_guard, transaction
from app.models.swap import (
    SWAP_APPROVED,
    SWAP_DECISIONS,
    SWAP_PENDING,
    SWAP_REJECTED,
    SwapRequest,
)
from app.models.user import User
from app.services.assignments import KIND_EXAM, KIND_TASK, AssignmentRepository, validate_kind
from app.services.audit import (
    ACTION_APPROVED,
    ACTION_DELETED,
    ACTION_REJECTED,
    ACTION_REQUESTED,
    AuditEvent,
    AuditSink,
    LoggingAuditSink,
    emit,
)
from app.services.exchange import ExchangeOutcome, ExchangeTransactionManager

logger = logging.getLogger(__name__)

NOT_HELD_MESSAGES = {
    KIND_TASK: (
        "Requester is not assigned to the original task",
        "Target is not assigned to the proposed task",
    ),
    KIND_EXAM: (
        "Requester is not assigned to proctor this exam",
        "Target is not assigned to proctor the proposed exam",
    ),
}


@dataclass(frozen=True)
class SwapReview:
    swap: SwapRequest
    outcome: Optional[ExchangeOutcome] = None


def _require_id(value: object, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgument(f"{field_name} must be a positive integer")
    return value


class SwapRequestStore:
    def __init__(
        self,
        db: Session,
        audit_sink: Optional[AuditSink] = None,
        repository: Optional[AssignmentRepository] = None,
        exchange: Optional[ExchangeTransactionManager] = None,
    ):
        self.db = db
        self.audit_sink = audit_sink or LoggingAuditSink()
        self.repository = repository or AssignmentRepository(db)
        self.exchange = exchange or ExchangeTransactionManager(db, self.repository)

    def create(
        self,
        requester_id: int,
        target_id: int,
        kind: str,
        original_assignment_id: int,
        proposed_assignment_id: Optional[int] = None,
        reason: str = "",
    ) -> SwapRequest:
        requester_id = _require_id(requester_id, "requester_id")
        target_id = _require_id(target_id, "target_id")
        original_assignment_id = _require_id(original_assignment_id, "original_assignment_id")
        if proposed_assignment_id is not None:
            proposed_assignment_id = _require_id(proposed_assignment_id, "proposed_assignment_id")
            if proposed_assignment_id == original_assignment_id:
                raise InvalidArgument("Proposed assignment must differ from the original assignment")
        kind = validate_kind(kind)
        reason = str(reason or "").strip()
        if not reason:
            raise InvalidArgument("A reason is required for a swap request")
        if requester_id == target_id:
            raise InvalidArgument("Cannot create a swap request with yourself")

        requester_message, target_message = NOT_HELD_MESSAGES[kind]
        with transaction(self.db, "swap creation"):
            if not self.db.get(User, target_id):
                raise NotFound(f"Target user {target_id} not found")
            requester_record = self.repository.held_by(kind, original_assignment_id, requester_id)
            if requester_record is None:
                raise NotEligible(requester_message)
            expected = {requester_record.id: requester_id}
            target_record = None
            if proposed_assignment_id is not None:
                target_record = self.repository.held_by(kind, proposed_assignment_id, target_id)
                if target_record is None:
                    raise NotEligible(target_message)
                expected[target_record.id] = target_id

            locked = {record.id: record.user_id for record in self.repository.lock_records(expected)}
            if locked.get(requester_record.id) != requester_id:
                raise NotEligible(requester_message)
            if target_record is not None and locked.get(target_record.id) != target_id:
                raise NotEligible(target_message)

            swap = SwapRequest(
                requester_id=requester_id,
                target_id=target_id,
                assignment_type=kind,
                original_assignment_id=original_assignment_id,
                proposed_assignment_id=proposed_assignment_id,
                reason=reason,
                status=SWAP_PENDING,
            )
            self.db.add(swap)
            self.db.flush()
            swap_id = swap.id

        logger.info("Swap %s requested by user %s for %s %s", swap_id, requester_id, kind, original_assignment_id)
        emit(
            self.audit_sink,
            AuditEvent(
                swap_id=swap_id,
                actor_id=requester_id,
                action=ACTION_REQUESTED,
                previous_state=None,
                new_state=SWAP_PENDING,
                details={
                    "target_id": target_id,
                    "assignment_type": kind,
                    "original_assignment_id": original_assignment_id,
                },
            ),
        )
        return swap

    def update_status(
        self,
        swap_id: int,
        new_status: str,
        reviewer: Identity,
        notes: Optional[str] = None,
    ) -> SwapReview:
        """Approve or reject a pending swap.

        Approval runs the ownership exchange in the same transaction as the
        status change: if the exchange fails the swap stays ``pending`` and no
        assignment row is touched. Nothing is retried here; the caller decides
        whether to submit a fresh approval.
        """
        new_status = str(new_status or "").strip().lower()
        if new_status not in SWAP_DECISIONS:
            raise InvalidArgument('Invalid status. Must be "approved" or "rejected"')

        outcome = None
        with transaction(self.db, "swap review"):
            swap = (
                self.db.query(SwapRequest)
                .filter(SwapRequest.id == swap_id)
                .with_for_update()
                .first()
            )
            if not swap:
                raise NotFound(f"Swap request {swap_id} not found")
            if swap.status != SWAP_PENDING:
                raise InvalidState(f"Swap request {swap_id} has already been {swap.status}")
            if not can_review_swap(reviewer, swap):
                raise Forbidden("You do not have permission to review this swap request")

            claimed = (
                self.db.query(SwapRequest)
                .filter(SwapRequest.id == swap_id, SwapRequest.status == SWAP_PENDING)
                .update(
                    {
                        SwapRequest.status: new_status,
                        SwapRequest.reviewer_id: reviewer.user_id,
                        SwapRequest.reviewer_notes: notes,
                        SwapRequest.reviewed_at: datetime.now(timezone.utc),
                    },
                    synchronize_session=False,
                )
            )
            if claimed != 1:
                raise InvalidState(f"Swap request {swap_id} has already been reviewed")

            if new_status == SWAP_APPROVED:
                outcome = self.exchange.execute(swap)
            requester_id = swap.requester_id
            target_id = swap.target_id
            self.db.expire(swap)

        logger.info("Swap %s %s by user %s", swap_id, new_status, reviewer.user_id)
        details = {"requester_id": requester_id, "target_id": target_id}
        if new_status == SWAP_REJECTED and notes:
            details["reason"] = notes
        emit(
            self.audit_sink,
            AuditEvent(
                swap_id=swap_id,
                actor_id=reviewer.user_id,
                action=ACTION_APPROVED if new_status == SWAP_APPROVED else ACTION_REJECTED,
                previous_state=SWAP_PENDING,
                new_state=new_status,
                details=details,
            ),
        )
        return SwapReview(swap=swap, outcome=outcome)

    def delete(self, swap_id: int, caller: Identity) -> None:
        with transaction(self.db, "swap deletion"):
            swap = (
                self.db.query(SwapRequest)
                .filter(SwapRequest.id == swap_id)
                .with_for_update()
                .first()
            )
            if not swap:
                raise NotFound(f"Swap request {swap_id} not found")
            if not can_delete_swap(caller, swap):
                raise Forbidden("Only the requester may delete a pending swap request")
            previous_state = swap.status
            self.db.delete(swap)

        logger.info("Swap %s deleted by user %s (was %s)", swap_id, caller.user_id, previous_state)
        emit(
            self.audit_sink,
            AuditEvent(
                swap_id=swap_id,
                actor_id=caller.user_id,
                action=ACTION_DELETED,
                previous_state=previous_state,
                new_state=None,
            ),
        )

    def get(self, swap_id: int) -> SwapRequest:
        with store_guard("swap lookup"):
            swap = (
                self.db.query(SwapRequest)
                .options(
                    joinedload(SwapRequest.requester),
                    joinedload(SwapRequest.target),
                    joinedload(SwapRequest.reviewer),
                )
                .filter(SwapRequest.id == swap_id)
                .first()
            )
        if not swap:
            raise NotFound(f"Swap request {swap_id} not found")
        return swap

    def _listing(self):
        return (
            self.db.query(SwapRequest)
            .options(
                joinedload(SwapRequest.requester),
                joinedload(SwapRequest.target),
                joinedload(SwapRequest.reviewer),
            )
            .order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())
        )

    def list_for_user(self, user_id: int) -> list[SwapRequest]:
        with store_guard("swap listing"):
            return (
                self._listing()
                .filter(or_(SwapRequest.requester_id == user_id, SwapRequest.target_id == user_id))
                .all()
            )

    def list_visible(self, identity: Identity) -> list[SwapRequest]:
        if not identity.can_override_swaps:
            return self.list_for_user(identity.user_id)
        with store_guard("swap listing"):
            return self._listing().all()

    def statistics(self, user_id: Optional[int] = None) -> dict[str, int]:
        query = self.db.query(
            func.count(SwapRequest.id),
            func.sum(case((SwapRequest.status == SWAP_APPROVED, 1), else_=0)),
            func.sum(case((SwapRequest.status == SWAP_REJECTED, 1), else_=0)),
            func.sum(case((SwapRequest.status == SWAP_PENDING, 1), else_=0)),
            func.sum(case((SwapRequest.assignment_type == KIND_TASK, 1), else_=0)),
            func.sum(case((SwapRequest.assignment_type == KIND_EXAM, 1), else_=0)),
        )
        if user_id is not None:
            query = query.filter(or_(SwapRequest.requester_id == user_id, SwapRequest.target_id == user_id))
        with store_guard("swap statistics"):
            row = query.one()
        keys = ("total_swaps", "approved", "rejected", "pending", "task_swaps", "exam_swaps")
        return {key: int(value or 0) for key, value in zip(keys, row)}
