# exam_service/repositories/sql.py
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from exam_service.models.exam import ExamRecord
from exam_service.models.rubric import RubricRecord
from exam_service.models.submission import (
    McqSubmissionRecord,
    McqSheetEvaluationRecord,
    WrittenSubmissionRecord,
    SubjectiveEvaluationRecord,
)
from exam_service.repositories.base import ExamStore, RubricStore, SubmissionStore
from exam_service.schemas.evaluation import (
    McqAnswerEvaluation,
    McqSheetEvaluation,
    SubjectiveEvaluationResult,
)
from exam_service.schemas.exam import Exam
from exam_service.schemas.rubric import Rubric, RubricStep
from exam_service.schemas.submission import (
    McqAnswer,
    McqAnswerResult,
    McqSubmission,
    SubmissionStatus,
    WrittenSubmission,
)

# Each call commits on its own; concurrent writers to the same key: last writer wins.


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


class SqlExamStore(ExamStore):
    def __init__(self, db: Session):
        self.db = db

    def store(self, exam: Exam) -> None:
        record = self.db.get(ExamRecord, exam.exam_id)
        if record is None:
            record = ExamRecord(exam_id=exam.exam_id)
        record.subject = exam.subject
        record.grade = exam.grade
        record.chapter = exam.chapter
        record.content = exam.model_dump(mode="json")
        self.db.add(record)
        _commit(self.db)

    def get(self, exam_id: str) -> Exam | None:
        record = self.db.get(ExamRecord, exam_id)
        if record is None:
            return None
        return Exam.model_validate(record.content)

    def exists(self, exam_id: str) -> bool:
        return (
            self.db.query(ExamRecord.exam_id)
            .filter(ExamRecord.exam_id == exam_id)
            .first()
            is not None
        )

    def list_all(self) -> list[Exam]:
        records = self.db.query(ExamRecord).order_by(ExamRecord.created_at.desc()).all()
        return [Exam.model_validate(record.content) for record in records]


class SqlRubricStore(RubricStore):
    def __init__(self, db: Session):
        self.db = db

    def _find(self, exam_id: str, question_id: str) -> RubricRecord | None:
        return (
            self.db.query(RubricRecord)
            .filter(
                RubricRecord.exam_id == exam_id,
                RubricRecord.question_id == question_id,
            )
            .first()
        )

    def _apply(self, rubric: Rubric) -> None:
        record = self._find(rubric.exam_id, rubric.question_id)
        if record is None:
            record = RubricRecord(exam_id=rubric.exam_id, question_id=rubric.question_id)
        record.total_marks = rubric.total_marks
        record.steps = [step.model_dump() for step in rubric.steps]
        self.db.add(record)

    @staticmethod
    def _to_schema(record: RubricRecord) -> Rubric:
        return Rubric(
            exam_id=record.exam_id,
            question_id=record.question_id,
            total_marks=record.total_marks,
            steps=[RubricStep.model_validate(step) for step in record.steps],
            created_at=record.created_at,
        )

    def save(self, rubric: Rubric) -> None:
        self._apply(rubric)
        _commit(self.db)

    def save_many(self, rubrics: list[Rubric]) -> None:
        for rubric in rubrics:
            self._apply(rubric)
            # flush so a repeated question id in the same batch updates the pending row
            self.db.flush()
        _commit(self.db)

    def get(self, exam_id: str, question_id: str) -> Rubric | None:
        record = self._find(exam_id, question_id)
        return self._to_schema(record) if record else None

    def list_for_exam(self, exam_id: str) -> list[Rubric]:
        records = (
            self.db.query(RubricRecord)
            .filter(RubricRecord.exam_id == exam_id)
            .order_by(RubricRecord.id.asc())
            .all()
        )
        return [self._to_schema(record) for record in records]

    def delete(self, exam_id: str, question_id: str) -> bool:
        record = self._find(exam_id, question_id)
        if record is None:
            return False
        self.db.delete(record)
        _commit(self.db)
        return True


class SqlSubmissionStore(SubmissionStore):
    def __init__(self, db: Session):
        self.db = db

    # --- MCQ -------------------------------------------------------------

    def save_mcq_submission(self, submission: McqSubmission) -> None:
        record = (
            self.db.query(McqSubmissionRecord)
            .filter(
                McqSubmissionRecord.exam_id == submission.exam_id,
                McqSubmissionRecord.student_id == submission.student_id,
            )
            .first()
        )
        if record is None:
            record = McqSubmissionRecord(
                exam_id=submission.exam_id, student_id=submission.student_id
            )
        record.answers = [answer.model_dump() for answer in submission.answers]
        record.results = [result.model_dump() for result in submission.results]
        record.score = submission.score
        record.total_marks = submission.total_marks
        record.submitted_at = submission.submitted_at
        self.db.add(record)
        _commit(self.db)

    def get_mcq_submission(self, exam_id: str, student_id: str) -> McqSubmission | None:
        record = (
            self.db.query(McqSubmissionRecord)
            .filter(
                McqSubmissionRecord.exam_id == exam_id,
                McqSubmissionRecord.student_id == student_id,
            )
            .first()
        )
        if record is None:
            return None
        return McqSubmission(
            exam_id=record.exam_id,
            student_id=record.student_id,
            answers=[McqAnswer.model_validate(a) for a in record.answers],
            results=[McqAnswerResult.model_validate(r) for r in record.results],
            score=record.score,
            total_marks=record.total_marks,
            submitted_at=record.submitted_at,
        )

    def save_sheet_evaluation(self, evaluation: McqSheetEvaluation) -> None:
        record = (
            self.db.query(McqSheetEvaluationRecord)
            .filter(
                McqSheetEvaluationRecord.exam_id == evaluation.exam_id,
                McqSheetEvaluationRecord.student_id == evaluation.student_id,
            )
            .first()
        )
        if record is None:
            record = McqSheetEvaluationRecord(
                exam_id=evaluation.exam_id, student_id=evaluation.student_id
            )
        record.submission_id = evaluation.submission_id
        record.answers = [answer.model_dump() for answer in evaluation.answers]
        record.total_score = evaluation.total_score
        record.total_marks = evaluation.total_marks
        record.evaluated_at = evaluation.evaluated_at
        self.db.add(record)
        _commit(self.db)

    def get_sheet_evaluation(self, exam_id: str, student_id: str) -> McqSheetEvaluation | None:
        record = (
            self.db.query(McqSheetEvaluationRecord)
            .filter(
                McqSheetEvaluationRecord.exam_id == exam_id,
                McqSheetEvaluationRecord.student_id == student_id,
            )
            .first()
        )
        if record is None:
            return None
        return McqSheetEvaluation(
            submission_id=record.submission_id,
            exam_id=record.exam_id,
            student_id=record.student_id,
            answers=[McqAnswerEvaluation.model_validate(a) for a in record.answers],
            total_score=record.total_score,
            total_marks=record.total_marks,
            evaluated_at=record.evaluated_at,
        )

    # --- written ---------------------------------------------------------

    def save_written(self, submission: WrittenSubmission) -> None:
        record = self.db.get(WrittenSubmissionRecord, submission.submission_id)
        if record is None:
            record = WrittenSubmissionRecord(submission_id=submission.submission_id)
        record.exam_id = submission.exam_id
        record.student_id = submission.student_id
        record.file_paths = list(submission.file_paths)
        record.status = submission.status.value
        record.ocr_text = submission.ocr_text
        record.error_message = submission.error_message
        record.submitted_at = submission.submitted_at
        record.ocr_started_at = submission.ocr_started_at
        record.evaluation_started_at = submission.evaluation_started_at
        record.evaluated_at = submission.evaluated_at
        record.total_score = submission.total_score
        record.max_possible_score = submission.max_possible_score
        record.percentage = submission.percentage
        record.grade = submission.grade
        self.db.add(record)
        _commit(self.db)

    @staticmethod
    def _written_to_schema(record: WrittenSubmissionRecord) -> WrittenSubmission:
        return WrittenSubmission(
            submission_id=record.submission_id,
            exam_id=record.exam_id,
            student_id=record.student_id,
            file_paths=list(record.file_paths or []),
            status=SubmissionStatus(record.status),
            ocr_text=record.ocr_text,
            error_message=record.error_message,
            submitted_at=record.submitted_at,
            ocr_started_at=record.ocr_started_at,
            evaluation_started_at=record.evaluation_started_at,
            evaluated_at=record.evaluated_at,
            total_score=record.total_score,
            max_possible_score=record.max_possible_score,
            percentage=record.percentage,
            grade=record.grade,
        )

    def get_written(self, submission_id: str) -> WrittenSubmission | None:
        record = self.db.get(WrittenSubmissionRecord, submission_id)
        return self._written_to_schema(record) if record else None

    def list_written(self, exam_id: str, student_id: str) -> list[WrittenSubmission]:
        records = (
            self.db.query(WrittenSubmissionRecord)
            .filter(
                WrittenSubmissionRecord.exam_id == exam_id,
                WrittenSubmissionRecord.student_id == student_id,
            )
            .order_by(WrittenSubmissionRecord.submitted_at.desc())
            .all()
        )
        return [self._written_to_schema(record) for record in records]

    def save_evaluations(
        self, submission_id: str, evaluations: list[SubjectiveEvaluationResult]
    ) -> None:
        (
            self.db.query(SubjectiveEvaluationRecord)
            .filter(SubjectiveEvaluationRecord.submission_id == submission_id)
            .delete(synchronize_session=False)
        )
        for position, evaluation in enumerate(evaluations):
            self.db.add(
                SubjectiveEvaluationRecord(
                    submission_id=submission_id,
                    question_id=evaluation.question_id,
                    position=position,
                    earned_marks=evaluation.earned_marks,
                    max_marks=evaluation.max_marks,
                    result=evaluation.model_dump(mode="json"),
                )
            )
        _commit(self.db)

    def get_evaluations(self, submission_id: str) -> list[SubjectiveEvaluationResult]:
        records = (
            self.db.query(SubjectiveEvaluationRecord)
            .filter(SubjectiveEvaluationRecord.submission_id == submission_id)
            .order_by(SubjectiveEvaluationRecord.position.asc())
            .all()
        )
        return [SubjectiveEvaluationResult.model_validate(r.result) for r in records]
