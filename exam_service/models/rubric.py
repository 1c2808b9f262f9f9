# exam_service/models/rubric.py
from sqlalchemy import Column, Integer, String, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func
from exam_service.db.base import Base


class RubricRecord(Base):
    __tablename__ = "subjective_rubrics"
    __table_args__ = (
        UniqueConstraint("exam_id", "question_id", name="uq_rubric_exam_question"),
    )

    id = Column(Integer, primary_key=True, index=True)

    exam_id = Column(String(100), nullable=False, index=True)
    question_id = Column(String(100), nullable=False)

    total_marks = Column(Integer, nullable=False)
    # [{"step_number": 1, "description": "...", "marks": 2}, ...]
    steps = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
