# exam_service/schemas/evaluation.py
from datetime import datetime

from pydantic import BaseModel, Field

from exam_service.schemas.common import InputModel


class StepAnalysis(InputModel):
    step: int = 0
    description: str = ""
    is_correct: bool = False
    marks_awarded: float = 0
    max_marks_for_step: float = 0
    feedback: str = ""


class SubjectiveEvaluationResult(InputModel):
    """Per question outcome; the LLM response is parsed straight into this."""
    question_id: str = ""
    question_number: int = 0
    question_text: str = ""
    earned_marks: float = 0
    max_marks: float = 0
    is_fully_correct: bool = False
    expected_answer: str = ""
    student_answer_echo: str = ""
    step_analysis: list[StepAnalysis] = Field(default_factory=list)
    overall_feedback: str = ""


class ExtractedMcqAnswer(BaseModel):
    question_number: int
    selected_option: str
    confidence: float = 1.0


class McqExtraction(BaseModel):
    submission_id: str
    exam_id: str
    student_id: str
    raw_ocr_text: str = ""
    extracted_answers: list[ExtractedMcqAnswer] = Field(default_factory=list)
    extracted_at: datetime | None = None


class McqAnswerEvaluation(BaseModel):
    question_number: int
    question_id: str
    question_text: str = ""
    selected_option: str | None = None
    correct_answer: str = ""
    is_correct: bool = False
    marks_awarded: float = 0
    max_marks: float = 0
    was_extracted: bool = False


class McqSheetEvaluation(BaseModel):
    submission_id: str
    exam_id: str
    student_id: str
    answers: list[McqAnswerEvaluation] = Field(default_factory=list)
    total_score: float = 0
    total_marks: float = 0
    evaluated_at: datetime | None = None


class EvaluationResultResponse(BaseModel):
    submission_id: str
    exam_id: str
    student_id: str
    status: str
    evaluations: list[SubjectiveEvaluationResult]
    total_score: float
    max_possible_score: float
    percentage: float
    grade: str | None = None


class NormalizeOcrRequest(InputModel):
    text: str = ""
    use_llm: bool = False


class MathNormalizationResult(BaseModel):
    normalized_answer: str
    original_text: str
    was_modified: bool
