# exam_service/api/v1/endpoints/rubrics.py
from typing import List

from fastapi import APIRouter, Depends, Query

from exam_service.api.deps import get_repositories
from exam_service.repositories import Repositories
from exam_service.schemas.rubric import (
    Rubric,
    RubricBatchRequest,
    RubricBatchResponse,
    RubricPreview,
)
from exam_service.services import rubric_service

router = APIRouter(tags=["rubrics"])


@router.get("/rubric/generate-preview", response_model=RubricPreview)
def generate_rubric_preview(total_marks: int = Query(0, alias="totalMarks")):
    """Default rubric for a question worth totalMarks. Nothing is saved."""
    return RubricPreview(
        total_marks=total_marks,
        steps=rubric_service.generate_default_rubric(total_marks),
    )


@router.get("/rubric/{exam_id}/{question_id}", response_model=Rubric)
def get_rubric(
    exam_id: str,
    question_id: str,
    repos: Repositories = Depends(get_repositories),
):
    return rubric_service.get_rubric(repos.rubrics, exam_id, question_id)


@router.get("/rubrics/{exam_id}", response_model=List[Rubric])
def list_rubrics(
    exam_id: str,
    repos: Repositories = Depends(get_repositories),
):
    return rubric_service.list_rubrics(repos.rubrics, exam_id)


@router.post("/rubric", response_model=Rubric)
def save_rubric(
    rubric: Rubric,
    repos: Repositories = Depends(get_repositories),
):
    """Rejects rubrics whose step marks do not add up to totalMarks."""
    return rubric_service.save_rubric(repos.rubrics, rubric)


@router.post("/rubrics/batch", response_model=RubricBatchResponse)
def save_rubrics_batch(
    request: RubricBatchRequest,
    repos: Repositories = Depends(get_repositories),
):
    saved = rubric_service.save_rubrics_batch(
        repos.rubrics, exam_id=request.exam_id, items=request.rubrics
    )
    return RubricBatchResponse(
        exam_id=request.exam_id,
        saved=len(saved),
        message=f"Saved {len(saved)} rubrics",
    )


@router.delete("/rubric/{exam_id}/{question_id}")
def delete_rubric(
    exam_id: str,
    question_id: str,
    repos: Repositories = Depends(get_repositories),
):
    rubric_service.delete_rubric(repos.rubrics, exam_id, question_id)
    return {"message": f"Rubric for question {question_id} deleted"}
