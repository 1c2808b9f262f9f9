# exam_service/services/mcq_service.py
import logging
import re
from datetime import datetime, timezone

from exam_service.core.exceptions import NotFoundError, ValidationError
from exam_service.repositories import Repositories
from exam_service.schemas.evaluation import (
    McqAnswerEvaluation,
    McqExtraction,
    McqSheetEvaluation,
)
from exam_service.schemas.exam import Exam
from exam_service.schemas.submission import (
    McqAnswer,
    McqAnswerResult,
    McqSubmission,
    McqSubmitResponse,
)
from exam_service.services.result_service import compute_percentage

logger = logging.getLogger(__name__)

_OPTION_PREFIX = re.compile(r"^\s*[A-Da-d]\s*[).:-]\s*")


def answers_match(selected: str | None, correct: str | None) -> bool:
    return (selected or "").strip().casefold() == (correct or "").strip().casefold()


def submit_mcq(
    repos: Repositories,
    *,
    exam_id: str,
    student_id: str,
    answers: list[McqAnswer],
) -> McqSubmitResponse:
    """
    Score a direct MCQ submission and store it, replacing any earlier one for
    the same (exam_id, student_id).

    Answers whose question id is not an MCQ of the exam are skipped. Total marks
    only count matched answers.
    """
    exam_id = (exam_id or "").strip()
    student_id = (student_id or "").strip()
    if not exam_id or not student_id:
        raise ValidationError("examId and studentId are required")

    exam = repos.exams.get(exam_id)
    if exam is None:
        raise NotFoundError(f"Exam {exam_id} not found")

    mcq_by_id = {q.question.question_id: q for q in exam.mcq_questions()}
    if not mcq_by_id:
        raise ValidationError("No MCQ questions found in this exam")

    results = []
    for answer in answers:
        scored = mcq_by_id.get(answer.question_id)
        if scored is None:
            logger.warning(
                f"MCQ answer for unknown question {answer.question_id} "
                f"(exam={exam_id}, student={student_id}) skipped"
            )
            continue
        is_correct = answers_match(answer.selected_option, scored.question.correct_answer)
        results.append(
            McqAnswerResult(
                question_id=answer.question_id,
                question_number=scored.number,
                selected_option=answer.selected_option,
                correct_answer=scored.question.correct_answer,
                is_correct=is_correct,
                marks_awarded=scored.marks if is_correct else 0,
                max_marks=scored.marks,
            )
        )

    score = sum(r.marks_awarded for r in results)
    total_marks = sum(r.max_marks for r in results)

    repos.submissions.save_mcq_submission(
        McqSubmission(
            exam_id=exam_id,
            student_id=student_id,
            answers=answers,
            results=results,
            score=score,
            total_marks=total_marks,
            submitted_at=datetime.now(timezone.utc),
        )
    )
    logger.info(f"MCQ submission exam={exam_id} student={student_id}: {score}/{total_marks}")

    return McqSubmitResponse(
        exam_id=exam_id,
        student_id=student_id,
        score=score,
        total_marks=total_marks,
        percentage=compute_percentage(score, total_marks),
        results=results,
    )


def _sheet_answer_is_correct(letter: str, correct: str, options: list[str]) -> bool:
    if answers_match(letter, correct):
        return True
    # correct answer stored as option text: resolve the letter to its option
    index = ord(letter.upper()) - ord("A")
    if 0 <= index < len(options):
        option = options[index]
        return answers_match(option, correct) or answers_match(
            _OPTION_PREFIX.sub("", option), correct
        )
    return False


def evaluate_sheet(exam: Exam, extraction: McqExtraction) -> McqSheetEvaluation:
    """Score answers read off an answer sheet against every MCQ in the exam."""
    by_number = {a.question_number: a for a in extraction.extracted_answers}

    answers = []
    for scored in exam.mcq_questions():
        question = scored.question
        extracted = by_number.get(scored.number)
        is_correct = extracted is not None and _sheet_answer_is_correct(
            extracted.selected_option, question.correct_answer, question.options
        )
        answers.append(
            McqAnswerEvaluation(
                question_number=scored.number,
                question_id=question.question_id,
                question_text=question.question_text,
                selected_option=extracted.selected_option if extracted else None,
                correct_answer=question.correct_answer,
                is_correct=is_correct,
                marks_awarded=scored.marks if is_correct else 0,
                max_marks=scored.marks,
                was_extracted=extracted is not None,
            )
        )

    evaluation = McqSheetEvaluation(
        submission_id=extraction.submission_id,
        exam_id=extraction.exam_id,
        student_id=extraction.student_id,
        answers=answers,
        total_score=sum(a.marks_awarded for a in answers),
        total_marks=sum(a.max_marks for a in answers),
        evaluated_at=datetime.now(timezone.utc),
    )
    logger.info(
        f"MCQ sheet evaluation submission={extraction.submission_id}: "
        f"{evaluation.total_score}/{evaluation.total_marks} "
        f"({sum(a.was_extracted for a in answers)}/{len(answers)} answers read)"
    )
    return evaluation
