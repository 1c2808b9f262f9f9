# exam_service/schemas/exam.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from exam_service.schemas.common import InputModel


class QuestionKind(str, Enum):
    MCQ = "MCQ"
    SUBJECTIVE = "Subjective"


class ExamQuestion(InputModel):
    question_id: str
    question_number: int = 0
    question_text: str = ""
    options: list[str] = Field(default_factory=list)
    # MCQ: exact option text (or letter). Subjective: worked model answer.
    correct_answer: str = ""
    topic: str | None = None


class ExamPart(InputModel):
    part_name: str = ""
    part_description: str | None = None
    question_type: str = ""
    kind: QuestionKind | None = None
    marks_per_question: int = 0
    total_questions: int = 0
    questions_to_answer: int = 0
    questions: list[ExamQuestion] = Field(default_factory=list)

    @model_validator(mode="after")
    def resolve_kind(self):
        # type labels look like "MCQ", "Multiple Choice (MCQ)", "Short Answer"
        if self.kind is None:
            if "mcq" in self.question_type.lower():
                self.kind = QuestionKind.MCQ
            else:
                self.kind = QuestionKind.SUBJECTIVE
        return self


class ScoredQuestion(BaseModel):
    """A question together with its position and mark value inside an exam."""
    question: ExamQuestion
    number: int
    marks: int
    kind: QuestionKind
    part_name: str = ""


class Exam(InputModel):
    exam_id: str
    subject: str = ""
    grade: str = ""
    chapter: str = ""
    difficulty: str = ""
    exam_type: str = ""
    total_marks: int = 0
    duration: int = 0
    instructions: list[str] = Field(default_factory=list)
    parts: list[ExamPart] = Field(default_factory=list)
    created_at: datetime | None = None

    def scored_questions(self) -> list[ScoredQuestion]:
        # numbering runs across all parts, subjective parts included
        scored = []
        counter = 0
        for part in self.parts:
            for question in part.questions:
                counter += 1
                scored.append(
                    ScoredQuestion(
                        question=question,
                        number=question.question_number or counter,
                        marks=part.marks_per_question,
                        kind=part.kind,
                        part_name=part.part_name,
                    )
                )
        return scored

    def mcq_questions(self) -> list[ScoredQuestion]:
        return [q for q in self.scored_questions() if q.kind == QuestionKind.MCQ]

    def subjective_questions(self) -> list[ScoredQuestion]:
        return [q for q in self.scored_questions() if q.kind == QuestionKind.SUBJECTIVE]


class ExamSummary(BaseModel):
    exam_id: str
    subject: str
    grade: str
    chapter: str
    total_marks: int
    created_at: datetime | None = None


class StoreExamResponse(BaseModel):
    exam_id: str
    message: str
    rubrics_generated: int = 0
