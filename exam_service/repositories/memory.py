# exam_service/repositories/memory.py
import threading

from exam_service.repositories.base import ExamStore, RubricStore, SubmissionStore
from exam_service.schemas.evaluation import McqSheetEvaluation, SubjectiveEvaluationResult
from exam_service.schemas.exam import Exam
from exam_service.schemas.rubric import Rubric
from exam_service.schemas.submission import McqSubmission, WrittenSubmission


def _copy(model):
    return model.model_copy(deep=True) if model is not None else None


class InMemoryExamStore(ExamStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._exams: dict[str, Exam] = {}

    def store(self, exam: Exam) -> None:
        with self._lock:
            self._exams[exam.exam_id] = _copy(exam)

    def get(self, exam_id: str) -> Exam | None:
        with self._lock:
            return _copy(self._exams.get(exam_id))

    def exists(self, exam_id: str) -> bool:
        with self._lock:
            return exam_id in self._exams

    def list_all(self) -> list[Exam]:
        with self._lock:
            return [_copy(exam) for exam in self._exams.values()]


class InMemoryRubricStore(RubricStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._rubrics: dict[tuple[str, str], Rubric] = {}

    def save(self, rubric: Rubric) -> None:
        with self._lock:
            self._rubrics[(rubric.exam_id, rubric.question_id)] = _copy(rubric)

    def save_many(self, rubrics: list[Rubric]) -> None:
        with self._lock:
            for rubric in rubrics:
                self._rubrics[(rubric.exam_id, rubric.question_id)] = _copy(rubric)

    def get(self, exam_id: str, question_id: str) -> Rubric | None:
        with self._lock:
            return _copy(self._rubrics.get((exam_id, question_id)))

    def list_for_exam(self, exam_id: str) -> list[Rubric]:
        with self._lock:
            return [
                _copy(rubric)
                for (rubric_exam_id, _), rubric in self._rubrics.items()
                if rubric_exam_id == exam_id
            ]

    def delete(self, exam_id: str, question_id: str) -> bool:
        with self._lock:
            return self._rubrics.pop((exam_id, question_id), None) is not None


class InMemorySubmissionStore(SubmissionStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._mcq: dict[tuple[str, str], McqSubmission] = {}
        self._sheet: dict[tuple[str, str], McqSheetEvaluation] = {}
        self._written: dict[str, WrittenSubmission] = {}
        self._evaluations: dict[str, list[SubjectiveEvaluationResult]] = {}

    def save_mcq_submission(self, submission: McqSubmission) -> None:
        with self._lock:
            self._mcq[(submission.exam_id, submission.student_id)] = _copy(submission)

    def get_mcq_submission(self, exam_id: str, student_id: str) -> McqSubmission | None:
        with self._lock:
            return _copy(self._mcq.get((exam_id, student_id)))

    def save_sheet_evaluation(self, evaluation: McqSheetEvaluation) -> None:
        with self._lock:
            self._sheet[(evaluation.exam_id, evaluation.student_id)] = _copy(evaluation)

    def get_sheet_evaluation(self, exam_id: str, student_id: str) -> McqSheetEvaluation | None:
        with self._lock:
            return _copy(self._sheet.get((exam_id, student_id)))

    def save_written(self, submission: WrittenSubmission) -> None:
        with self._lock:
            self._written[submission.submission_id] = _copy(submission)

    def get_written(self, submission_id: str) -> WrittenSubmission | None:
        with self._lock:
            return _copy(self._written.get(submission_id))

    def list_written(self, exam_id: str, student_id: str) -> list[WrittenSubmission]:
        with self._lock:
            matches = [
                _copy(sub)
                for sub in self._written.values()
                if sub.exam_id == exam_id and sub.student_id == student_id
            ]
        return sorted(
            matches,
            key=lambda sub: sub.submitted_at.timestamp() if sub.submitted_at else 0,
            reverse=True,
        )

    def save_evaluations(
        self, submission_id: str, evaluations: list[SubjectiveEvaluationResult]
    ) -> None:
        with self._lock:
            self._evaluations[submission_id] = [_copy(ev) for ev in evaluations]

    def get_evaluations(self, submission_id: str) -> list[SubjectiveEvaluationResult]:
        with self._lock:
            return [_copy(ev) for ev in self._evaluations.get(submission_id, [])]
