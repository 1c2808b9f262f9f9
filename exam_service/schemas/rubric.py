# exam_service/schemas/rubric.py
from datetime import datetime

from pydantic import BaseModel, Field

from exam_service.schemas.common import InputModel


class RubricStep(InputModel):
    step_number: int
    description: str
    marks: int = Field(ge=0)


class Rubric(InputModel):
    exam_id: str
    question_id: str
    total_marks: int
    steps: list[RubricStep] = Field(default_factory=list)
    created_at: datetime | None = None

    @property
    def step_total(self) -> int:
        return sum(step.marks for step in self.steps)


class RubricItem(InputModel):
    question_id: str
    total_marks: int
    steps: list[RubricStep] = Field(default_factory=list)


class RubricBatchRequest(InputModel):
    exam_id: str
    rubrics: list[RubricItem] = Field(default_factory=list)


class RubricBatchResponse(BaseModel):
    exam_id: str
    saved: int
    message: str


class RubricPreview(BaseModel):
    total_marks: int
    steps: list[RubricStep]
