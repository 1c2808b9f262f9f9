# exam_service/models/submission.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Float,
    DateTime,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from exam_service.db.base import Base


class McqSubmissionRecord(Base):
    __tablename__ = "mcq_submissions"
    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", name="uq_mcq_exam_student"),
    )

    id = Column(Integer, primary_key=True, index=True)

    exam_id = Column(String(100), nullable=False, index=True)
    student_id = Column(String(100), nullable=False, index=True)

    answers = Column(JSON, nullable=False)
    results = Column(JSON, nullable=False)

    score = Column(Float, nullable=False, default=0)
    total_marks = Column(Float, nullable=False, default=0)

    submitted_at = Column(DateTime(timezone=True), nullable=True)


class McqSheetEvaluationRecord(Base):
    """MCQ answers read off an uploaded answer sheet and scored."""
    __tablename__ = "mcq_sheet_evaluations"
    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", name="uq_mcq_sheet_exam_student"),
    )

    id = Column(Integer, primary_key=True, index=True)

    submission_id = Column(String(64), nullable=False, index=True)
    exam_id = Column(String(100), nullable=False, index=True)
    student_id = Column(String(100), nullable=False, index=True)

    answers = Column(JSON, nullable=False)
    total_score = Column(Float, nullable=False, default=0)
    total_marks = Column(Float, nullable=False, default=0)

    evaluated_at = Column(DateTime(timezone=True), nullable=True)


class WrittenSubmissionRecord(Base):
    __tablename__ = "written_submissions"

    submission_id = Column(String(64), primary_key=True, index=True)

    exam_id = Column(String(100), nullable=False, index=True)
    student_id = Column(String(100), nullable=False, index=True)

    file_paths = Column(JSON, nullable=False, default=list)

    # PendingEvaluation / OcrProcessing / Evaluating / Completed / Failed
    status = Column(String(32), nullable=False, default="PendingEvaluation", index=True)

    ocr_text = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)

    total_score = Column(Float, nullable=True)
    max_possible_score = Column(Float, nullable=True)
    percentage = Column(Float, nullable=True)
    grade = Column(String(4), nullable=True)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    ocr_started_at = Column(DateTime(timezone=True), nullable=True)
    evaluation_started_at = Column(DateTime(timezone=True), nullable=True)
    evaluated_at = Column(DateTime(timezone=True), nullable=True)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )


class SubjectiveEvaluationRecord(Base):
    __tablename__ = "subjective_evaluations"

    id = Column(Integer, primary_key=True, index=True)

    submission_id = Column(String(64), nullable=False, index=True)
    question_id = Column(String(100), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    earned_marks = Column(Float, nullable=False, default=0)
    max_marks = Column(Float, nullable=False, default=0)

    # full evaluation payload including step analysis
    result = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
