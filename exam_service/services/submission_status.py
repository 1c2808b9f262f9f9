# exam_service/services/submission_status.py
"""
Status machine for written submissions:

    PendingEvaluation -> OcrProcessing -> Evaluating -> Completed

Any non-terminal state may also move to Failed. Status never moves
backwards and the two terminal states accept nothing.
"""
from datetime import datetime, timezone

from exam_service.core.exceptions import InvalidStatusTransition
from exam_service.schemas.submission import (
    SubmissionStatus,
    SubmissionStatusResponse,
    WrittenSubmission,
)

_ALLOWED = {
    SubmissionStatus.PENDING_EVALUATION: {SubmissionStatus.OCR_PROCESSING, SubmissionStatus.FAILED},
    SubmissionStatus.OCR_PROCESSING: {SubmissionStatus.EVALUATING, SubmissionStatus.FAILED},
    SubmissionStatus.EVALUATING: {SubmissionStatus.COMPLETED, SubmissionStatus.FAILED},
    SubmissionStatus.COMPLETED: set(),
    SubmissionStatus.FAILED: set(),
}

STATUS_MESSAGES = {
    SubmissionStatus.PENDING_EVALUATION: "Your answer sheet is queued for evaluation.",
    SubmissionStatus.OCR_PROCESSING: "Reading your answer sheet...",
    SubmissionStatus.EVALUATING: "Evaluating your answers...",
    SubmissionStatus.COMPLETED: "Evaluation complete. Your results are ready.",
    SubmissionStatus.FAILED: "Evaluation failed. Please upload your answer sheet again.",
}

# seconds the client should wait before polling again
POLL_INTERVALS = {
    SubmissionStatus.PENDING_EVALUATION: 5,
    SubmissionStatus.OCR_PROCESSING: 3,
    SubmissionStatus.EVALUATING: 5,
    SubmissionStatus.COMPLETED: 0,
    SubmissionStatus.FAILED: 0,
}


def can_transition(current: SubmissionStatus, new: SubmissionStatus) -> bool:
    return new in _ALLOWED[current]


def transition(
    submission: WrittenSubmission,
    new_status: SubmissionStatus,
    *,
    error_message: str | None = None,
) -> WrittenSubmission:
    if not can_transition(submission.status, new_status):
        raise InvalidStatusTransition(
            f"Submission {submission.submission_id}: "
            f"{submission.status.value} -> {new_status.value} is not allowed"
        )

    now = datetime.now(timezone.utc)
    if new_status == SubmissionStatus.OCR_PROCESSING:
        submission.ocr_started_at = now
    elif new_status == SubmissionStatus.EVALUATING:
        submission.evaluation_started_at = now
    elif new_status == SubmissionStatus.COMPLETED:
        submission.evaluated_at = now
    elif new_status == SubmissionStatus.FAILED:
        submission.error_message = error_message or "Unknown error"

    submission.status = new_status
    return submission


def describe(submission: WrittenSubmission) -> SubmissionStatusResponse:
    status = submission.status
    return SubmissionStatusResponse(
        submission_id=submission.submission_id,
        exam_id=submission.exam_id,
        student_id=submission.student_id,
        status=status,
        status_message=STATUS_MESSAGES[status],
        poll_interval_seconds=POLL_INTERVALS[status],
        is_complete=status == SubmissionStatus.COMPLETED,
        is_error=status == SubmissionStatus.FAILED,
        error_message=submission.error_message,
        submitted_at=submission.submitted_at,
        evaluated_at=submission.evaluated_at,
        total_score=submission.total_score,
        max_possible_score=submission.max_possible_score,
        percentage=submission.percentage,
        grade=submission.grade,
    )
