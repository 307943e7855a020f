from datetime import date
from typing import Optional
from uuid import uuid4

from app.core.permissions import Identity
from app.database.session import SessionLocal
from app.models.assignment import Assignment
from app.models.course import Course
from app.models.exam import Exam
from app.models.leave import LeaveRequest
from app.models.task import TASK_TYPE_PROCTORING, Task
from app.models.user import User

EXAM_DAY = date(2025, 4, 10)


def create_user(db, full_name: str, role: str = "ta", status: str = "active") -> User:
    suffix = uuid4().hex[:8]
    user = User(
        full_name=full_name,
        email=f"{full_name.lower().replace(' ', '.')}.{suffix}@test.local",
        university_id=suffix,
        role=role,
        status=status,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def identity_of(user: User) -> Identity:
    return Identity(user_id=user.id, role=user.role)


def create_course(db, code: str = "CS101") -> Course:
    course = Course(code=code, name=f"Course {code}")
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def create_task(
    db,
    owner: Optional[User],
    title: str = "Grade homework",
    due_date: date = EXAM_DAY,
    course: Optional[Course] = None,
    task_type: str = "grading",
    status: str = "active",
) -> Task:
    task = Task(
        title=title,
        task_type=task_type,
        course_id=course.id if course else None,
        due_date=due_date,
        status=status,
    )
    db.add(task)
    db.flush()
    if owner is not None:
        db.add(Assignment(task_id=task.id, user_id=owner.id))
    db.commit()
    db.refresh(task)
    return task


def create_exam(db, course: Course, exam_date: date = EXAM_DAY, name: str = "Midterm") -> Exam:
    exam = Exam(course_id=course.id, exam_name=name, exam_date=exam_date)
    db.add(exam)
    db.commit()
    db.refresh(exam)
    return exam


def create_proctoring(db, course: Course, owner: User, exam_date: date = EXAM_DAY) -> Task:
    return create_task(
        db,
        owner,
        title=f"Proctor {course.code}",
        due_date=exam_date,
        course=course,
        task_type=TASK_TYPE_PROCTORING,
    )


def create_leave(db, user: User, start: date, end: date, status: str = "approved") -> LeaveRequest:
    leave = LeaveRequest(user_id=user.id, start_date=start, end_date=end, status=status, reason="Conference")
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


def reassign(task_id: int, user_id: int) -> None:
    """Move a task's owner outside the exchange engine, as an admin edit would."""
    db = SessionLocal()
    try:
        db.query(Assignment).filter(Assignment.task_id == task_id).update({Assignment.user_id: user_id})
        db.commit()
    finally:
        db.close()


def owner_of(task_id: int) -> Optional[int]:
    db = SessionLocal()
    try:
        row = db.query(Assignment).filter(Assignment.task_id == task_id).first()
        return row.user_id if row else None
    finally:
        db.close()
