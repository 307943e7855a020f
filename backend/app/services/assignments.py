"""Assignment ownership access; an exam resolves to the proctoring task of its course on the exam date."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Query, Session

from app.core.errors import InvalidArgument, NotFound, PreconditionFailed
from app.models.assignment import Assignment
from app.models.exam import Exam
from app.models.task import TASK_TYPE_PROCTORING, Task

KIND_TASK = "task"
KIND_EXAM = "exam"
ASSIGNMENT_KINDS = (KIND_TASK, KIND_EXAM)


@dataclass(frozen=True)
class AssignmentInfo:
    assignment_id: int
    kind: str
    title: str
    subtype: str
    course_id: Optional[int]
    occurs_on: date


@dataclass(frozen=True)
class OwnershipChange:
    assignment_id: int
    task_id: int
    previous_owner_id: int
    new_owner_id: int


class AssignmentResolver(ABC):
    kind: str = ""

    @abstractmethod
    def describe(self, db: Session, assignment_id: int) -> AssignmentInfo:
        """Return title, course and date of the assignment; ``NotFound`` if missing."""

    @abstractmethod
    def _ownership_query(self, db: Session, assignment_id: int) -> Query:
        """Query over the ``Assignment`` rows that carry this assignment's duty."""

    def occurrence_date(self, db: Session, assignment_id: int) -> date:
        return self.describe(db, assignment_id).occurs_on

    def resolve_owner(self, db: Session, assignment_id: int, user_id: int) -> Optional[Assignment]:
        return (
            self._ownership_query(db, assignment_id)
            .filter(Assignment.user_id == user_id)
            .order_by(Assignment.id.asc())
            .first()
        )

    def owners(self, db: Session, assignment_id: int) -> list[int]:
        rows = self._ownership_query(db, assignment_id).order_by(Assignment.id.asc()).all()
        owners: list[int] = []
        for row in rows:
            if row.user_id not in owners:
                owners.append(row.user_id)
        return owners

    def set_owner(self, db: Session, record: Assignment, from_user_id: int, to_user_id: int) -> OwnershipChange:
        record_id = record.id
        task_id = record.task_id
        changed = (
            db.query(Assignment)
            .filter(Assignment.id == record_id, Assignment.user_id == from_user_id)
            .update({Assignment.user_id: to_user_id}, synchronize_session=False)
        )
        if changed != 1:
            raise PreconditionFailed(f"Assignment {record_id} is no longer owned by user {from_user_id}")
        db.expire(record)
        return OwnershipChange(
            assignment_id=record_id,
            task_id=task_id,
            previous_owner_id=from_user_id,
            new_owner_id=to_user_id,
        )


class TaskAssignmentResolver(AssignmentResolver):
    kind = KIND_TASK

    def _task(self, db: Session, task_id: int) -> Task:
        task = db.get(Task, task_id)
        if not task:
            raise NotFound(f"Task {task_id} not found")
        return task

    def describe(self, db: Session, assignment_id: int) -> AssignmentInfo:
        task = self._task(db, assignment_id)
        return AssignmentInfo(
            assignment_id=task.id,
            kind=self.kind,
            title=task.title,
            subtype=task.task_type,
            course_id=task.course_id,
            occurs_on=task.due_date,
        )

    def _ownership_query(self, db: Session, assignment_id: int) -> Query:
        self._task(db, assignment_id)
        return db.query(Assignment).filter(Assignment.task_id == assignment_id)


class ExamProctoringResolver(AssignmentResolver):
    kind = KIND_EXAM

    def _exam(self, db: Session, exam_id: int) -> Exam:
        exam = db.get(Exam, exam_id)
        if not exam:
            raise NotFound(f"Exam {exam_id} not found")
        return exam

    def describe(self, db: Session, assignment_id: int) -> AssignmentInfo:
        exam = self._exam(db, assignment_id)
        return AssignmentInfo(
            assignment_id=exam.id,
            kind=self.kind,
            title=exam.exam_name,
            subtype=KIND_EXAM,
            course_id=exam.course_id,
            occurs_on=exam.exam_date,
        )

    def _ownership_query(self, db: Session, assignment_id: int) -> Query:
        exam = self._exam(db, assignment_id)
        return (
            db.query(Assignment)
            .join(Task, Task.id == Assignment.task_id)
            .filter(
                Task.task_type == TASK_TYPE_PROCTORING,
                Task.course_id == exam.course_id,
                Task.due_date == exam.exam_date,
            )
        )


RESOLVERS = {
    KIND_TASK: TaskAssignmentResolver(),
    KIND_EXAM: ExamProctoringResolver(),
}


def validate_kind(kind: object) -> str:
    value = str(kind or "").strip().lower()
    if value not in RESOLVERS:
        raise InvalidArgument('Invalid assignment type. Must be "task" or "exam"')
    return value


def resolver_for(kind: object) -> AssignmentResolver:
    return RESOLVERS[validate_kind(kind)]


class AssignmentRepository:
    """Kind-dispatching access to assignment ownership rows."""

    def __init__(self, db: Session):
        self.db = db

    def describe(self, kind: str, assignment_id: int) -> AssignmentInfo:
        return resolver_for(kind).describe(self.db, assignment_id)

    def occurrence_date(self, kind: str, assignment_id: int) -> date:
        return resolver_for(kind).occurrence_date(self.db, assignment_id)

    def get_owner(self, kind: str, assignment_id: int) -> Optional[int]:
        owners = resolver_for(kind).owners(self.db, assignment_id)
        return owners[0] if owners else None

    def owners(self, kind: str, assignment_id: int) -> list[int]:
        return resolver_for(kind).owners(self.db, assignment_id)

    def held_by(self, kind: str, assignment_id: int, user_id: int) -> Optional[Assignment]:
        return resolver_for(kind).resolve_owner(self.db, assignment_id, user_id)

    def lock_records(self, record_ids: Iterable[int]) -> list[Assignment]:
        # Ascending id order so concurrent two-way swaps cannot deadlock.
        ids = sorted(set(record_ids))
        if not ids:
            return []
        return (
            self.db.query(Assignment)
            .filter(Assignment.id.in_(ids))
            .order_by(Assignment.id.asc())
            .with_for_update()
            .populate_existing()
            .all()
        )

    def set_owner(self, kind: str, record: Assignment, from_user_id: int, to_user_id: int) -> OwnershipChange:
        return resolver_for(kind).set_owner(self.db, record, from_user_id, to_user_id)
