# exam_service/services/rubric_service.py
import logging
from datetime import datetime, timezone

from exam_service.core.exceptions import NotFoundError, RubricValidationError, ValidationError
from exam_service.repositories.base import RubricStore
from exam_service.schemas.rubric import Rubric, RubricItem, RubricStep

logger = logging.getLogger(__name__)

# (upper bound on total marks, step weights in percent); the last step absorbs rounding
_WEIGHT_TABLE = [
    (2, (50, 50)),
    (5, (30, 40, 30)),
    (None, (15, 35, 30, 20)),
]

_STEP_DESCRIPTIONS = {
    1: ["Correct answer with proper format"],
    2: ["Correct method/formula identification", "Correct final answer"],
    3: [
        "Identify correct formula/theorem",
        "Apply method correctly",
        "Correct final answer",
    ],
    4: [
        "Identify concept/formula",
        "Initial setup with correct values",
        "Complete calculation",
        "Final answer with proper notation",
    ],
}


def _weights_for(total_marks: int) -> tuple[int, ...]:
    for upper, weights in _WEIGHT_TABLE:
        if upper is None or total_marks <= upper:
            return weights
    return _WEIGHT_TABLE[-1][1]


def generate_default_rubric(total_marks: int) -> list[RubricStep]:
    """
    Split a question's marks into 2-4 generic steps.

    Every step but the last gets max(1, floor(total * weight%)); the last one gets
    whatever is left so the steps always add up to total_marks. Questions worth
    fewer marks than the table has steps get fewer steps.
    """
    if total_marks <= 0:
        raise ValidationError("Total marks must be greater than 0")

    weights = _weights_for(total_marks)
    step_count = min(len(weights), total_marks)
    descriptions = _STEP_DESCRIPTIONS[step_count]

    marks = []
    for weight in weights[: step_count - 1]:
        marks.append(max(1, total_marks * weight // 100))
    marks.append(total_marks - sum(marks))

    return [
        RubricStep(step_number=i + 1, description=descriptions[i], marks=m)
        for i, m in enumerate(marks)
    ]


def validate_rubric(rubric: Rubric) -> None:
    if not rubric.exam_id or not rubric.question_id:
        raise RubricValidationError("examId and questionId are required")
    if rubric.total_marks <= 0:
        raise RubricValidationError(
            f"Rubric for question {rubric.question_id}: total marks must be greater than 0"
        )
    if not rubric.steps:
        raise RubricValidationError(
            f"Rubric for question {rubric.question_id} must have at least one step"
        )
    if rubric.step_total != rubric.total_marks:
        raise RubricValidationError(
            f"Rubric for question {rubric.question_id}: step marks add up to "
            f"{rubric.step_total} but total marks is {rubric.total_marks}"
        )


def save_rubric(rubrics: RubricStore, rubric: Rubric) -> Rubric:
    validate_rubric(rubric)
    if rubric.created_at is None:
        rubric.created_at = datetime.now(timezone.utc)
    rubrics.save(rubric)
    logger.info(
        f"Saved rubric exam={rubric.exam_id} question={rubric.question_id} "
        f"steps={len(rubric.steps)} total={rubric.total_marks}"
    )
    return rubric


def save_rubrics_batch(
    rubrics: RubricStore,
    *,
    exam_id: str,
    items: list[RubricItem],
) -> list[Rubric]:
    """All-or-nothing: nothing is stored unless every rubric is valid."""
    if not items:
        raise RubricValidationError("At least one rubric is required")

    now = datetime.now(timezone.utc)
    batch = [
        Rubric(
            exam_id=exam_id,
            question_id=item.question_id,
            total_marks=item.total_marks,
            steps=item.steps,
            created_at=now,
        )
        for item in items
    ]
    for rubric in batch:
        validate_rubric(rubric)

    rubrics.save_many(batch)
    logger.info(f"Saved {len(batch)} rubrics for exam {exam_id}")
    return batch


def build_default_rubric(exam_id: str, question_id: str, total_marks: int) -> Rubric:
    return Rubric(
        exam_id=exam_id,
        question_id=question_id,
        total_marks=total_marks,
        steps=generate_default_rubric(total_marks),
        created_at=datetime.now(timezone.utc),
    )


def get_rubric(rubrics: RubricStore, exam_id: str, question_id: str) -> Rubric:
    rubric = rubrics.get(exam_id, question_id)
    if rubric is None:
        raise NotFoundError(f"Rubric not found for exam {exam_id}, question {question_id}")
    return rubric


def list_rubrics(rubrics: RubricStore, exam_id: str) -> list[Rubric]:
    return rubrics.list_for_exam(exam_id)


def delete_rubric(rubrics: RubricStore, exam_id: str, question_id: str) -> None:
    if not rubrics.delete(exam_id, question_id):
        raise NotFoundError(f"Rubric not found for exam {exam_id}, question {question_id}")
    logger.info(f"Deleted rubric exam={exam_id} question={question_id}")
