from exam_service.models.exam import ExamRecord  # noqa
from exam_service.models.rubric import RubricRecord  # noqa
from exam_service.models.submission import (  # noqa
    McqSubmissionRecord,
    McqSheetEvaluationRecord,
    WrittenSubmissionRecord,
    SubjectiveEvaluationRecord,
)
