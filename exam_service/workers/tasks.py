"""
Evaluation Tasks for Worker
These tasks are executed by RQ workers (or FastAPI background tasks) to
evaluate written submissions asynchronously
"""

import logging

from exam_service.core.exceptions import ScoringError
from exam_service.db.session import SessionLocal
from exam_service.repositories import Repositories, build_repositories
from exam_service.schemas.submission import SubmissionStatus
from exam_service.services.llm_client import get_llm_client
from exam_service.services.ocr_service import VisionOcrService
from exam_service.services.scoring_service import fail_submission, run_written_evaluation
from exam_service.services.storage import get_file_storage
from exam_service.services.subjective_evaluator import SubjectiveEvaluator

logger = logging.getLogger(__name__)


def run_pipeline(repos: Repositories, submission_id: str):
    """Wire the production OCR / LLM collaborators into the scoring pipeline."""
    storage = get_file_storage()
    evaluator = SubjectiveEvaluator(get_llm_client(), repos.rubrics)
    return run_written_evaluation(
        repos,
        submission_id,
        ocr=VisionOcrService(storage),
        evaluator=evaluator,
        storage=storage,
    )


def evaluation_task(submission_id: str) -> dict:
    """
    Worker task to evaluate one written submission.

    This task:
    1. Creates a database session
    2. Runs OCR, MCQ-from-sheet scoring and subjective evaluation
    3. Returns a result summary (the submission record holds the details)

    Args:
        submission_id: ID of the written submission

    Returns:
        Dictionary with the final status

    Note:
        Enqueued by enqueue_evaluation_task() in queue.py, or scheduled as a
        FastAPI background task when TASK_BACKEND is "background".
    """
    db = SessionLocal()
    repos = None
    try:
        logger.info(f"Starting evaluation task for submission {submission_id}")
        repos = build_repositories(db)

        submission = run_pipeline(repos, submission_id)

        logger.info(
            f"Finished evaluation task for submission {submission_id}: "
            f"status={submission.status.value}, score={submission.total_score}"
        )
        return {
            "status": "success" if submission.status == SubmissionStatus.COMPLETED else "error",
            "submission_id": submission_id,
            "submission_status": submission.status.value,
            "total_score": submission.total_score,
            "max_possible_score": submission.max_possible_score,
            "grade": submission.grade,
            "error": submission.error_message,
        }

    except ScoringError as e:
        logger.error(f"Evaluation failed for submission {submission_id}: {e}")
        return {
            "status": "error",
            "submission_id": submission_id,
            "error": str(e),
            "message": f"Evaluation failed for submission {submission_id}",
        }

    except Exception as e:
        # collaborators could not be built (no LLM key, no storage bucket, ...)
        logger.error(
            f"Unexpected error during evaluation task for submission {submission_id}: {e}",
            exc_info=True,
        )
        if repos is not None:
            fail_submission(repos, submission_id, str(e))
        return {
            "status": "error",
            "submission_id": submission_id,
            "error": str(e),
            "message": "Unexpected error during evaluation",
        }

    finally:
        db.close()
