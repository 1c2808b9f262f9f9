# exam_service/api/v1/endpoints/exams.py
from typing import Callable, List

from fastapi import APIRouter, Depends

from exam_service.api.deps import get_repositories
from exam_service.core.exceptions import ValidationError
from exam_service.repositories import Repositories
from exam_service.schemas.evaluation import MathNormalizationResult, NormalizeOcrRequest
from exam_service.schemas.exam import Exam, ExamSummary, StoreExamResponse
from exam_service.services import math_normalizer, paper_service
from exam_service.services.llm_client import LLMClient, get_llm_client

router = APIRouter(tags=["exams"])


def get_llm_provider() -> Callable[[], LLMClient]:
    return get_llm_client


@router.post("/store-exam", response_model=StoreExamResponse)
def store_exam(
    exam: Exam,
    repos: Repositories = Depends(get_repositories),
):
    """
    Store or replace a generated exam; subjective questions without a rubric
    get a default one.
    """
    generated = paper_service.store_exam(repos, exam)
    return StoreExamResponse(
        exam_id=exam.exam_id,
        message=f"Exam {exam.exam_id} stored successfully",
        rubrics_generated=generated,
    )


@router.get("/get/{exam_id}", response_model=Exam)
def get_exam(
    exam_id: str,
    repos: Repositories = Depends(get_repositories),
):
    return paper_service.get_exam(repos, exam_id)


@router.get("/list", response_model=List[ExamSummary])
def list_exams(repos: Repositories = Depends(get_repositories)):
    return paper_service.list_exams(repos)


@router.post("/normalize-ocr", response_model=MathNormalizationResult)
def normalize_ocr(
    request: NormalizeOcrRequest,
    llm_provider: Callable[[], LLMClient] = Depends(get_llm_provider),
):
    if not request.text.strip():
        raise ValidationError("Text is required")
    llm = llm_provider() if request.use_llm else None
    return math_normalizer.normalize(request.text, llm)
