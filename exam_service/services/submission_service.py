# exam_service/services/submission_service.py
import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from exam_service.core.config import settings
from exam_service.core.exceptions import (
    ConflictError,
    FileValidationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from exam_service.repositories import Repositories
from exam_service.schemas.evaluation import EvaluationResultResponse
from exam_service.schemas.submission import (
    McqAnswer,
    SubmissionStatus,
    SubmissionStatusResponse,
    UploadedFile,
    UploadWrittenResponse,
    WrittenSubmission,
)
from exam_service.services import mcq_service, submission_status
from exam_service.services.result_service import compute_percentage
from exam_service.services.storage import FileStorage, validate_extension

logger = logging.getLogger(__name__)

# schedules background evaluation of a submission id
Dispatcher = Callable[[str], Any]

_MCQ_ANSWERS = TypeAdapter(list[McqAnswer])


def _clean_identifier(value: str | None, name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{name} is required")
    if ".." in value or "/" in value or "\\" in value:
        raise ValidationError(f"{name} contains invalid characters")
    return value


def _validate_files(files: list[UploadedFile]) -> None:
    if not files:
        raise FileValidationError("At least one file is required")
    if len(files) > settings.MAX_FILES_PER_UPLOAD:
        raise FileValidationError(
            f"Too many files: {len(files)} (maximum {settings.MAX_FILES_PER_UPLOAD})"
        )
    max_bytes = settings.MAX_FILE_SIZE_MB * 1024 * 1024
    for upload in files:
        name = os.path.basename(upload.filename or "")
        if not upload.content:
            raise FileValidationError(f"File '{name}' is empty")
        if len(upload.content) > max_bytes:
            raise FileValidationError(
                f"File '{name}' exceeds the {settings.MAX_FILE_SIZE_MB}MB limit"
            )
        validate_extension(name)


def _parse_mcq_answers(raw: str | None) -> list[McqAnswer]:
    if raw is None or not raw.strip():
        return []
    try:
        return _MCQ_ANSWERS.validate_python(json.loads(raw))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise ValidationError(f"Invalid mcqAnswers: {e}") from e


def upload_written_submission(
    repos: Repositories,
    *,
    exam_id: str | None,
    student_id: str | None,
    files: list[UploadedFile],
    storage: FileStorage,
    dispatch: Dispatcher,
    mcq_answers: str | None = None,
) -> UploadWrittenResponse:
    """
    Store an uploaded answer sheet and queue it for evaluation.

    Everything is validated before the first file is written, so a rejected
    upload leaves no record and no files behind. Returns immediately; the
    evaluation itself runs in the background.
    """
    exam_id = _clean_identifier(exam_id, "examId")
    student_id = _clean_identifier(student_id, "studentId")
    _validate_files(files)
    answers = _parse_mcq_answers(mcq_answers)

    exam = repos.exams.get(exam_id)
    if exam is None:
        raise NotFoundError(f"Exam {exam_id} not found")

    for existing in repos.submissions.list_written(exam_id, student_id):
        if existing.status != SubmissionStatus.FAILED:
            raise ConflictError(
                f"A written submission already exists for this exam "
                f"(submissionId={existing.submission_id}, status={existing.status.value})"
            )

    saved_paths: list[str] = []
    try:
        for upload in files:
            saved_paths.append(
                storage.save(upload.content, os.path.basename(upload.filename), exam_id, student_id)
            )
    except Exception:
        for path in saved_paths:
            try:
                storage.delete(path)
            except StorageError as e:
                logger.warning(f"Could not clean up {path} after a failed upload: {e}")
        raise

    submission = WrittenSubmission(
        submission_id=uuid.uuid4().hex,
        exam_id=exam_id,
        student_id=student_id,
        file_paths=saved_paths,
        status=SubmissionStatus.PENDING_EVALUATION,
        submitted_at=datetime.now(timezone.utc),
    )
    repos.submissions.save_written(submission)
    logger.info(
        f"Written submission {submission.submission_id} created "
        f"(exam={exam_id}, student={student_id}, files={len(saved_paths)})"
    )

    mcq_result = None
    if answers:
        if exam.mcq_questions():
            mcq_result = mcq_service.submit_mcq(
                repos, exam_id=exam_id, student_id=student_id, answers=answers
            )
        else:
            logger.warning(f"mcqAnswers ignored: exam {exam_id} has no MCQ questions")

    try:
        dispatch(submission.submission_id)
    except Exception as e:
        submission_status.transition(
            submission, SubmissionStatus.FAILED, error_message=f"Could not queue evaluation: {e}"
        )
        repos.submissions.save_written(submission)
        raise

    return UploadWrittenResponse(
        submission_id=submission.submission_id,
        exam_id=exam_id,
        student_id=student_id,
        status=submission.status,
        files_uploaded=len(saved_paths),
        message="Answer sheet uploaded. Evaluation has started; poll the status endpoint for progress.",
        mcq_result=mcq_result,
    )


def get_written_submission(repos: Repositories, submission_id: str) -> WrittenSubmission:
    submission = repos.submissions.get_written(submission_id)
    if submission is None:
        raise NotFoundError(f"Submission {submission_id} not found")
    return submission


def get_submission_status(repos: Repositories, submission_id: str) -> SubmissionStatusResponse:
    return submission_status.describe(get_written_submission(repos, submission_id))


def get_evaluation_result(repos: Repositories, submission_id: str) -> EvaluationResultResponse:
    submission = get_written_submission(repos, submission_id)
    evaluations = repos.submissions.get_evaluations(submission_id)
    total = sum(e.earned_marks for e in evaluations)
    maximum = sum(e.max_marks for e in evaluations)
    return EvaluationResultResponse(
        submission_id=submission.submission_id,
        exam_id=submission.exam_id,
        student_id=submission.student_id,
        status=submission.status.value,
        evaluations=evaluations,
        total_score=total,
        max_possible_score=maximum,
        percentage=compute_percentage(total, maximum),
        grade=submission.grade,
    )
