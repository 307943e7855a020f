from sqlalchemy.orm import Session

from app.core.permissions import ROLE_TA
from app.database.transaction import store_guard
from app.models.user import User
from app.services.assignments import AssignmentRepository, validate_kind
from app.services.leave_ledger import approved_leave_clause

USER_STATUS_ACTIVE = "active"


class EligibilityResolver:
    """Computes which TAs may be offered an assignment. Read-only."""

    def __init__(self, db: Session, repository: AssignmentRepository | None = None):
        self.db = db
        self.repository = repository or AssignmentRepository(db)

    def eligible_targets(self, requester_id: int, assignment_id: int, kind: str) -> list[User]:
        """Active TAs other than the requester without approved leave on the assignment's date.

        Ordered by display name, then id, so repeated calls return the same list.
        Raises ``NotFound`` when the task or exam does not exist.
        """
        kind = validate_kind(kind)
        with store_guard("eligibility lookup"):
            day = self.repository.occurrence_date(kind, assignment_id)
            return (
                self.db.query(User)
                .filter(
                    User.role == ROLE_TA,
                    User.status == USER_STATUS_ACTIVE,
                    User.id != requester_id,
                    ~approved_leave_clause(User.id, day),
                )
                .order_by(User.full_name.asc(), User.id.asc())
                .all()
            )
