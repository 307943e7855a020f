"""Atomic ownership exchange run inside the transaction that approves a swap."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFound, PreconditionFailed
from app.models.assignment import Assignment
from app.models.swap import SwapRequest
from app.services.assignments import AssignmentRepository, OwnershipChange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeOutcome:
    swap_id: int
    changes: tuple[OwnershipChange, ...]

    @property
    def two_way(self) -> bool:
        return len(self.changes) == 2

    def new_owner_of(self, task_id: int) -> Optional[int]:
        for change in self.changes:
            if change.task_id == task_id:
                return change.new_owner_id
        return None


class ExchangeTransactionManager:
    def __init__(self, db: Session, repository: AssignmentRepository | None = None):
        self.db = db
        self.repository = repository or AssignmentRepository(db)

    def _current_record(self, kind: str, assignment_id: int, user_id: int, missing_message: str) -> Assignment:
        try:
            record = self.repository.held_by(kind, assignment_id, user_id)
        except NotFound as exc:
            raise PreconditionFailed(f"{missing_message}: {exc.message}") from exc
        if record is None:
            logger.warning("%s (kind=%s, assignment=%s, user=%s)", missing_message, kind, assignment_id, user_id)
            raise PreconditionFailed(missing_message)
        return record

    def execute(self, swap: SwapRequest) -> ExchangeOutcome:
        kind = swap.assignment_type
        requester_record = self._current_record(
            kind,
            swap.original_assignment_id,
            swap.requester_id,
            "Requester assignment not found",
        )
        target_record = None
        if swap.is_two_way:
            target_record = self._current_record(
                kind,
                swap.proposed_assignment_id,
                swap.target_id,
                "Target assignment not found",
            )
            if target_record.id == requester_record.id:
                raise PreconditionFailed("Both sides of the swap resolve to the same assignment")

        record_ids = [requester_record.id]
        if target_record is not None:
            record_ids.append(target_record.id)
        self.repository.lock_records(record_ids)

        changes = [
            self.repository.set_owner(kind, requester_record, swap.requester_id, swap.target_id),
        ]
        if target_record is not None:
            changes.append(
                self.repository.set_owner(kind, target_record, swap.target_id, swap.requester_id)
            )

        outcome = ExchangeOutcome(swap_id=swap.id, changes=tuple(changes))
        logger.info(
            "Exchanged %s swap %s: %s",
            "two-way" if outcome.two_way else "one-way",
            swap.id,
            ", ".join(
                f"task {change.task_id} {change.previous_owner_id}->{change.new_owner_id}"
                for change in outcome.changes
            ),
        )
        return outcome
