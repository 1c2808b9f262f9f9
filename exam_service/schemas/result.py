# exam_service/schemas/result.py
from pydantic import BaseModel, Field

from exam_service.schemas.evaluation import (
    McqAnswerEvaluation,
    SubjectiveEvaluationResult,
)
from exam_service.schemas.submission import SubmissionStatus


class ConsolidatedExamResult(BaseModel):
    """Merged MCQ + subjective view of one student's attempt. Never stored."""
    exam_id: str
    student_id: str
    subject: str = ""
    chapter: str = ""

    # "sheet", "direct" or None
    mcq_source: str | None = None
    mcq_score: float = 0
    mcq_total_marks: float = 0
    mcq_answers: list[McqAnswerEvaluation] = Field(default_factory=list)

    written_submission_id: str | None = None
    written_status: SubmissionStatus | None = None
    subjective_score: float = 0
    subjective_total_marks: float = 0
    subjective_results: list[SubjectiveEvaluationResult] = Field(default_factory=list)

    grand_score: float = 0
    grand_total_marks: float = 0
    percentage: float = 0
    grade: str = "F"
    passed: bool = False
