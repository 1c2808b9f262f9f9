# exam_service/models/exam.py
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from exam_service.db.base import Base


class ExamRecord(Base):
    __tablename__ = "exams"

    exam_id = Column(String(100), primary_key=True, index=True)

    subject = Column(String(100), nullable=True)
    grade = Column(String(50), nullable=True)
    chapter = Column(String(255), nullable=True)

    # full exam document: parts, questions, correct answers
    content = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
