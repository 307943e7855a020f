from sqlalchemy import Column, Date, ForeignKey, Integer, String

from app.database.base import Base


class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    exam_name = Column(String(255), nullable=False)
    exam_date = Column(Date, nullable=False, index=True)
