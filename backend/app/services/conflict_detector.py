"""Advisory conflict check between a leave interval and a user's duties; never writes."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidArgument
from app.database.transaction import store_guard
from app.models.assignment import Assignment
from app.models.exam import Exam
from app.models.task import TASK_STATUS_ACTIVE, TASK_TYPE_PROCTORING, Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConflictItem:
    id: int
    title: str
    kind: str
    due_date: date
    course_id: Optional[int] = None
    task_type: Optional[str] = None


@dataclass(frozen=True)
class ConflictReport:
    task_conflicts: list[ConflictItem] = field(default_factory=list)
    exam_conflicts: list[ConflictItem] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.task_conflicts or self.exam_conflicts)


class ConflictDetector:
    def __init__(self, db: Session):
        self.db = db

    def find_conflicts(self, user_id: int, start_date: date, end_date: date) -> ConflictReport:
        if start_date is None or end_date is None:
            raise InvalidArgument("Both start_date and end_date are required")
        if end_date < start_date:
            raise InvalidArgument("end_date must not be before start_date")

        with store_guard("conflict detection"):
            task_rows = (
                self.db.query(Task)
                .join(Assignment, Assignment.task_id == Task.id)
                .filter(
                    Assignment.user_id == user_id,
                    Task.status == TASK_STATUS_ACTIVE,
                    Task.due_date >= start_date,
                    Task.due_date <= end_date,
                )
                .order_by(Task.due_date.asc(), Task.id.asc())
                .all()
            )
            exam_rows = (
                self.db.query(Exam)
                .join(
                    Task,
                    (Task.course_id == Exam.course_id)
                    & (Task.due_date == Exam.exam_date)
                    & (Task.task_type == TASK_TYPE_PROCTORING),
                )
                .join(Assignment, Assignment.task_id == Task.id)
                .filter(
                    Assignment.user_id == user_id,
                    Exam.exam_date >= start_date,
                    Exam.exam_date <= end_date,
                )
                .distinct()
                .order_by(Exam.exam_date.asc(), Exam.id.asc())
                .all()
            )

        report = ConflictReport(
            task_conflicts=[
                ConflictItem(
                    id=task.id,
                    title=task.title,
                    kind="task",
                    due_date=task.due_date,
                    course_id=task.course_id,
                    task_type=task.task_type,
                )
                for task in task_rows
            ],
            exam_conflicts=[
                ConflictItem(
                    id=exam.id,
                    title=exam.exam_name,
                    kind="exam",
                    due_date=exam.exam_date,
                    course_id=exam.course_id,
                )
                for exam in exam_rows
            ],
        )
        if report.has_conflicts:
            logger.info(
                "User %s has %d task and %d exam conflicts between %s and %s",
                user_id,
                len(report.task_conflicts),
                len(report.exam_conflicts),
                start_date,
                end_date,
            )
        return report
