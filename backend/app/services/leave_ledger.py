from datetime import date
from typing import Optional

from sqlalchemy import and_, exists
from sqlalchemy.orm import Session

from app.models.leave import LEAVE_APPROVED, LeaveRequest


def approved_leave_clause(user_id_column, day: date):
    """SQL predicate: the user has approved leave covering ``day`` (both ends inclusive)."""
    return exists().where(
        and_(
            LeaveRequest.user_id == user_id_column,
            LeaveRequest.status == LEAVE_APPROVED,
            LeaveRequest.start_date <= day,
            LeaveRequest.end_date >= day,
        )
    )


class LeaveLedger:
    """Read-only view of leave intervals owned by the leave subsystem."""

    def __init__(self, db: Session):
        self.db = db

    def approved_leave_covering(self, user_id: int, day: date) -> bool:
        query = (
            self.db.query(LeaveRequest.id)
            .filter(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status == LEAVE_APPROVED,
                LeaveRequest.start_date <= day,
                LeaveRequest.end_date >= day,
            )
        )
        return self.db.query(query.exists()).scalar()

    def intervals(self, user_id: int, status: Optional[str] = None) -> list[LeaveRequest]:
        query = self.db.query(LeaveRequest).filter(LeaveRequest.user_id == user_id)
        if status:
            query = query.filter(LeaveRequest.status == status)
        return query.order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc()).all()
