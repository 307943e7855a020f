from pydantic import BaseModel
from typing import Optional, List
from datetime import date


class ConflictItemOut(BaseModel):
    id: int
    title: str
    kind: str
    due_date: date
    course_id: Optional[int] = None
    task_type: Optional[str] = None

    class Config:
        from_attributes = True


class ConflictReportOut(BaseModel):
    has_conflicts: bool
    task_conflicts: List[ConflictItemOut] = []
    exam_conflicts: List[ConflictItemOut] = []
