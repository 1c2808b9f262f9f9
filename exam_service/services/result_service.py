# exam_service/services/result_service.py
import logging

from exam_service.core.exceptions import NotFoundError
from exam_service.repositories import Repositories
from exam_service.schemas.evaluation import McqAnswerEvaluation
from exam_service.schemas.result import ConsolidatedExamResult
from exam_service.schemas.submission import SubmissionStatus, WrittenSubmission

logger = logging.getLogger(__name__)

PASS_PERCENTAGE = 35.0

# fixed, not configurable
GRADE_TABLE = [
    (90.0, "A+"),
    (80.0, "A"),
    (70.0, "B+"),
    (60.0, "B"),
    (50.0, "C"),
    (35.0, "D"),
]


def compute_percentage(score: float, total: float) -> float:
    if not total:
        return 0.0
    return round(score / total * 100, 2)


def calculate_grade(percentage: float) -> str:
    for lower_bound, grade in GRADE_TABLE:
        if percentage >= lower_bound:
            return grade
    return "F"


def is_passing(percentage: float) -> bool:
    return percentage >= PASS_PERCENTAGE


def _latest_written(repos: Repositories, exam_id: str, student_id: str) -> WrittenSubmission | None:
    """Prefer the newest completed submission, else the newest of any status."""
    submissions = repos.submissions.list_written(exam_id, student_id)
    for submission in submissions:
        if submission.status == SubmissionStatus.COMPLETED:
            return submission
    return submissions[0] if submissions else None


def build_consolidated_result(
    repos: Repositories, exam_id: str, student_id: str
) -> ConsolidatedExamResult:
    """
    Merge every available score source for one student's attempt.

    MCQ answers read from an uploaded sheet take precedence over a direct MCQ
    submission. Raises NotFoundError when the exam is unknown or when there is
    nothing at all to report.
    """
    exam = repos.exams.get(exam_id)
    if exam is None:
        raise NotFoundError(f"Exam {exam_id} not found")

    mcq_submission = repos.submissions.get_mcq_submission(exam_id, student_id)
    sheet_evaluation = repos.submissions.get_sheet_evaluation(exam_id, student_id)
    written = _latest_written(repos, exam_id, student_id)
    evaluations = repos.submissions.get_evaluations(written.submission_id) if written else []

    if mcq_submission is None and sheet_evaluation is None and not evaluations:
        raise NotFoundError(
            f"No results found for student {student_id} in exam {exam_id}"
        )

    result = ConsolidatedExamResult(
        exam_id=exam.exam_id,
        student_id=student_id,
        subject=exam.subject,
        chapter=exam.chapter,
    )

    if sheet_evaluation is not None:
        result.mcq_source = "sheet"
        result.mcq_score = sheet_evaluation.total_score
        result.mcq_total_marks = sheet_evaluation.total_marks
        result.mcq_answers = sheet_evaluation.answers
    elif mcq_submission is not None:
        result.mcq_source = "direct"
        result.mcq_score = mcq_submission.score
        result.mcq_total_marks = mcq_submission.total_marks
        result.mcq_answers = [
            McqAnswerEvaluation(
                question_number=r.question_number,
                question_id=r.question_id,
                selected_option=r.selected_option,
                correct_answer=r.correct_answer,
                is_correct=r.is_correct,
                marks_awarded=r.marks_awarded,
                max_marks=r.max_marks,
                was_extracted=False,
            )
            for r in mcq_submission.results
        ]

    if written is not None:
        result.written_submission_id = written.submission_id
        result.written_status = written.status
    result.subjective_results = evaluations
    result.subjective_score = sum(e.earned_marks for e in evaluations)
    result.subjective_total_marks = sum(e.max_marks for e in evaluations)

    result.grand_score = result.mcq_score + result.subjective_score
    result.grand_total_marks = result.mcq_total_marks + result.subjective_total_marks
    result.percentage = compute_percentage(result.grand_score, result.grand_total_marks)
    result.grade = calculate_grade(result.percentage)
    result.passed = is_passing(result.percentage)

    logger.info(
        f"Consolidated result exam={exam_id} student={student_id}: "
        f"{result.grand_score}/{result.grand_total_marks} ({result.percentage}%, {result.grade})"
    )
    return result
