from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from app.database.base import Base

class Assignment(Base):
    """Ownership row: the user currently responsible for a task.

    ``user_id`` is written only by ``ExchangeTransactionManager`` once a task
    exists; the unique task constraint keeps a single owner per task.
    """

    __tablename__ = "assignments"
    __table_args__ = (
        UniqueConstraint("task_id", name="uq_assignment_task"),
    )

    id = Column(Integer, primary_key=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
