from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import get_current_identity
from app.core.permissions import Identity
from app.database.deps import get_db
from app.schemas.leave import ConflictItemOut, ConflictReportOut
from app.services.conflict_detector import ConflictDetector

router = APIRouter(prefix="/leaves", tags=["Leaves"])


@router.get("/conflicts", response_model=ConflictReportOut)
def read_leave_conflicts(
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    report = ConflictDetector(db).find_conflicts(identity.user_id, start_date, end_date)
    return ConflictReportOut(
        has_conflicts=report.has_conflicts,
        task_conflicts=[ConflictItemOut.model_validate(item) for item in report.task_conflicts],
        exam_conflicts=[ConflictItemOut.model_validate(item) for item in report.exam_conflicts],
    )
