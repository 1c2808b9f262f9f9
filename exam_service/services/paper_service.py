# exam_service/services/paper_service.py
import logging
from datetime import datetime, timezone

from exam_service.core.exceptions import NotFoundError, ValidationError
from exam_service.repositories import Repositories
from exam_service.schemas.exam import Exam, ExamSummary
from exam_service.services import rubric_service

logger = logging.getLogger(__name__)


def store_exam(repos: Repositories, exam: Exam) -> int:
    """
    Store (or replace) an exam and give every subjective question that has no
    rubric yet a default one. Returns how many rubrics were generated.
    """
    if not exam.exam_id or not exam.exam_id.strip():
        raise ValidationError("examId is required")
    if exam.created_at is None:
        exam.created_at = datetime.now(timezone.utc)

    repos.exams.store(exam)

    generated = []
    for scored in exam.subjective_questions():
        question_id = scored.question.question_id
        if scored.marks <= 0 or repos.rubrics.get(exam.exam_id, question_id) is not None:
            continue
        generated.append(
            rubric_service.build_default_rubric(exam.exam_id, question_id, scored.marks)
        )
    if generated:
        repos.rubrics.save_many(generated)

    logger.info(
        f"Stored exam {exam.exam_id}: {len(exam.mcq_questions())} MCQ, "
        f"{len(exam.subjective_questions())} subjective, {len(generated)} default rubrics"
    )
    return len(generated)


def get_exam(repos: Repositories, exam_id: str) -> Exam:
    exam = repos.exams.get(exam_id)
    if exam is None:
        raise NotFoundError(f"Exam {exam_id} not found")
    return exam


def list_exams(repos: Repositories) -> list[ExamSummary]:
    return [
        ExamSummary(
            exam_id=exam.exam_id,
            subject=exam.subject,
            grade=exam.grade,
            chapter=exam.chapter,
            total_marks=exam.total_marks,
            created_at=exam.created_at,
        )
        for exam in repos.exams.list_all()
    ]
