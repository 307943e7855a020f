from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, func

from app.database.base import Base

TASK_TYPE_PROCTORING = "proctoring"
TASK_STATUS_ACTIVE = "active"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String, nullable=True)
    task_type = Column(String(40), nullable=False, default="other")
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=True, index=True)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(String(16), nullable=False, default=TASK_STATUS_ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
