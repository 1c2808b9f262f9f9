# exam_service/services/scoring_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from exam_service.core.config import settings
from exam_service.core.exceptions import ScoringError, StorageError
from exam_service.repositories import Repositories
from exam_service.schemas.evaluation import McqExtraction
from exam_service.schemas.exam import Exam
from exam_service.schemas.submission import SubmissionStatus, WrittenSubmission
from exam_service.services import mcq_service
from exam_service.services.mcq_extraction import extract_mcq_answers
from exam_service.services.ocr_service import OcrService
from exam_service.services.result_service import calculate_grade, compute_percentage
from exam_service.services.storage import FileStorage
from exam_service.services.subjective_evaluator import SubjectiveEvaluator
from exam_service.services.submission_status import transition

logger = logging.getLogger(__name__)


def _get_submission(repos: Repositories, submission_id: str) -> WrittenSubmission:
    submission = repos.submissions.get_written(submission_id)
    if submission is None:
        raise ScoringError(f"written submission {submission_id} not found")
    return submission


def fail_submission(repos: Repositories, submission_id: str, message: str) -> WrittenSubmission | None:
    """Move a non-terminal submission to Failed; terminal ones are left alone."""
    submission = repos.submissions.get_written(submission_id)
    if submission is None or submission.status.is_terminal:
        return submission
    transition(submission, SubmissionStatus.FAILED, error_message=message)
    repos.submissions.save_written(submission)
    logger.warning(f"Submission {submission_id} marked Failed: {message}")
    return submission


def _read_sheet(
    repos: Repositories,
    exam: Exam,
    submission: WrittenSubmission,
    ocr: OcrService,
) -> str | None:
    """
    OCR the sheet once and score any handwritten MCQ answers on it.

    Best-effort: on failure the sheet result is simply absent and the caller
    runs OCR again for the subjective answers.
    """
    try:
        raw_text = ocr.extract_text(submission.file_paths)
        # "Q6\nA = 6 * 4" also reads as 6 -> A; only MCQ numbers count
        mcq_numbers = {scored.number for scored in exam.mcq_questions()}
        answers = [a for a in extract_mcq_answers(raw_text) if a.question_number in mcq_numbers]
        # an empty read must not hide a direct MCQ submission
        if answers:
            extraction = McqExtraction(
                submission_id=submission.submission_id,
                exam_id=submission.exam_id,
                student_id=submission.student_id,
                raw_ocr_text=raw_text,
                extracted_answers=answers,
                extracted_at=datetime.now(timezone.utc),
            )
            repos.submissions.save_sheet_evaluation(mcq_service.evaluate_sheet(exam, extraction))
        return raw_text
    except Exception as e:
        logger.warning(
            f"MCQ sheet extraction failed for submission {submission.submission_id}: {e}",
            exc_info=True,
        )
        return None


def _delete_files(storage: FileStorage, submission: WrittenSubmission) -> None:
    for path in submission.file_paths:
        try:
            storage.delete(path)
        except (StorageError, OSError) as e:
            logger.warning(f"Could not delete {path} for submission {submission.submission_id}: {e}")
    submission.file_paths = []


def run_written_evaluation(
    repos: Repositories,
    submission_id: str,
    *,
    ocr: OcrService,
    evaluator: SubjectiveEvaluator,
    storage: FileStorage | None = None,
    delete_files: bool | None = None,
) -> WrittenSubmission:
    """
    Drive one written submission through OCR and evaluation.

    - PendingEvaluation -> OcrProcessing: sheet OCR + MCQ-from-sheet scoring
    - OcrProcessing -> Evaluating: OCR text stored
    - Evaluating -> Completed: per-question evaluations and totals stored
    - anything raised on the way -> Failed, with the message recorded

    Terminal submissions are returned untouched; a submission left in an
    intermediate phase (e.g. a worker died) resumes from that phase.
    """
    submission = _get_submission(repos, submission_id)
    if submission.status.is_terminal:
        logger.info(f"Submission {submission_id} already {submission.status.value}, skipping")
        return submission

    if delete_files is None:
        delete_files = settings.DELETE_FILES_AFTER_EVALUATION

    try:
        exam = repos.exams.get(submission.exam_id)
        if exam is None:
            raise ScoringError(f"exam {submission.exam_id} for submission {submission_id} not found")

        if submission.status == SubmissionStatus.PENDING_EVALUATION:
            transition(submission, SubmissionStatus.OCR_PROCESSING)
            repos.submissions.save_written(submission)
            logger.info(f"Submission {submission_id}: OCR started ({len(submission.file_paths)} files)")

        if submission.status == SubmissionStatus.OCR_PROCESSING:
            raw_text = _read_sheet(repos, exam, submission, ocr)
            if not raw_text:
                raw_text = ocr.extract_text(submission.file_paths)
            submission.ocr_text = raw_text or ""
            transition(submission, SubmissionStatus.EVALUATING)
            repos.submissions.save_written(submission)
            logger.info(f"Submission {submission_id}: evaluating ({len(submission.ocr_text)} chars of text)")

        evaluations = evaluator.evaluate_exam(exam, submission.ocr_text or "")
        repos.submissions.save_evaluations(submission_id, evaluations)

        submission.total_score = sum(e.earned_marks for e in evaluations)
        submission.max_possible_score = sum(e.max_marks for e in evaluations)
        submission.percentage = compute_percentage(
            submission.total_score, submission.max_possible_score
        )
        submission.grade = calculate_grade(submission.percentage)
        transition(submission, SubmissionStatus.COMPLETED)
        repos.submissions.save_written(submission)
        logger.info(
            f"Submission {submission_id}: completed "
            f"{submission.total_score}/{submission.max_possible_score} ({submission.grade})"
        )
    except Exception as e:
        logger.error(f"Evaluation pipeline failed for submission {submission_id}: {e}", exc_info=True)
        return fail_submission(repos, submission_id, str(e) or e.__class__.__name__)

    # the stored evaluations are the source of truth from here on
    if delete_files and storage is not None and submission.file_paths:
        _delete_files(storage, submission)
        repos.submissions.save_written(submission)

    return submission
