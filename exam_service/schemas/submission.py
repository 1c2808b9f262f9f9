# exam_service/schemas/submission.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from exam_service.schemas.common import InputModel


class SubmissionStatus(str, Enum):
    PENDING_EVALUATION = "PendingEvaluation"
    OCR_PROCESSING = "OcrProcessing"
    EVALUATING = "Evaluating"
    COMPLETED = "Completed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SubmissionStatus.COMPLETED, SubmissionStatus.FAILED)


class McqAnswer(InputModel):
    question_id: str
    selected_option: str = ""


class McqSubmitRequest(InputModel):
    exam_id: str = ""
    student_id: str = ""
    answers: list[McqAnswer] = Field(default_factory=list)


class McqAnswerResult(BaseModel):
    question_id: str
    question_number: int = 0
    selected_option: str
    correct_answer: str
    is_correct: bool
    marks_awarded: float
    max_marks: float


class McqSubmission(BaseModel):
    exam_id: str
    student_id: str
    answers: list[McqAnswer] = Field(default_factory=list)
    results: list[McqAnswerResult] = Field(default_factory=list)
    score: float = 0
    total_marks: float = 0
    submitted_at: datetime | None = None


class McqSubmitResponse(BaseModel):
    exam_id: str
    student_id: str
    score: float
    total_marks: float
    percentage: float
    results: list[McqAnswerResult]
    message: str = "MCQ answers submitted successfully"


class WrittenSubmission(BaseModel):
    submission_id: str
    exam_id: str
    student_id: str
    file_paths: list[str] = Field(default_factory=list)
    status: SubmissionStatus = SubmissionStatus.PENDING_EVALUATION
    ocr_text: str | None = None
    error_message: str | None = None

    submitted_at: datetime | None = None
    ocr_started_at: datetime | None = None
    evaluation_started_at: datetime | None = None
    evaluated_at: datetime | None = None

    total_score: float | None = None
    max_possible_score: float | None = None
    percentage: float | None = None
    grade: str | None = None


class UploadWrittenResponse(BaseModel):
    submission_id: str
    exam_id: str
    student_id: str
    status: SubmissionStatus
    files_uploaded: int
    message: str
    mcq_result: McqSubmitResponse | None = None


class SubmissionStatusResponse(BaseModel):
    submission_id: str
    exam_id: str
    student_id: str
    status: SubmissionStatus
    status_message: str
    poll_interval_seconds: int
    is_complete: bool
    is_error: bool
    error_message: str | None = None
    submitted_at: datetime | None = None
    evaluated_at: datetime | None = None
    total_score: float | None = None
    max_possible_score: float | None = None
    percentage: float | None = None
    grade: str | None = None


class UploadedFile(BaseModel):
    filename: str
    content: bytes
