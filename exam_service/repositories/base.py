# exam_service/repositories/base.py
from abc import ABC, abstractmethod

from exam_service.schemas.evaluation import McqSheetEvaluation, SubjectiveEvaluationResult
from exam_service.schemas.exam import Exam
from exam_service.schemas.rubric import Rubric
from exam_service.schemas.submission import McqSubmission, WrittenSubmission


class ExamStore(ABC):
    @abstractmethod
    def store(self, exam: Exam) -> None:
        """Insert or replace the exam with the same exam_id."""

    @abstractmethod
    def get(self, exam_id: str) -> Exam | None: ...

    @abstractmethod
    def exists(self, exam_id: str) -> bool: ...

    @abstractmethod
    def list_all(self) -> list[Exam]: ...


class RubricStore(ABC):
    @abstractmethod
    def save(self, rubric: Rubric) -> None: ...

    @abstractmethod
    def save_many(self, rubrics: list[Rubric]) -> None: ...

    @abstractmethod
    def get(self, exam_id: str, question_id: str) -> Rubric | None: ...

    @abstractmethod
    def list_for_exam(self, exam_id: str) -> list[Rubric]: ...

    @abstractmethod
    def delete(self, exam_id: str, question_id: str) -> bool: ...


class SubmissionStore(ABC):
    # MCQ submissions are keyed by (exam_id, student_id) and overwritten on resubmit
    @abstractmethod
    def save_mcq_submission(self, submission: McqSubmission) -> None: ...

    @abstractmethod
    def get_mcq_submission(self, exam_id: str, student_id: str) -> McqSubmission | None: ...

    @abstractmethod
    def save_sheet_evaluation(self, evaluation: McqSheetEvaluation) -> None: ...

    @abstractmethod
    def get_sheet_evaluation(self, exam_id: str, student_id: str) -> McqSheetEvaluation | None: ...

    @abstractmethod
    def save_written(self, submission: WrittenSubmission) -> None:
        """Insert or update a written submission by submission_id."""

    @abstractmethod
    def get_written(self, submission_id: str) -> WrittenSubmission | None: ...

    @abstractmethod
    def list_written(self, exam_id: str, student_id: str) -> list[WrittenSubmission]:
        """Newest first."""

    @abstractmethod
    def save_evaluations(
        self, submission_id: str, evaluations: list[SubjectiveEvaluationResult]
    ) -> None: ...

    @abstractmethod
    def get_evaluations(self, submission_id: str) -> list[SubjectiveEvaluationResult]: ...
