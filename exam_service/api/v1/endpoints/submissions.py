# exam_service/api/v1/endpoints/submissions.py
from fastapi import APIRouter, Depends, File, Form, UploadFile

from exam_service.api.deps import get_repositories, get_storage, get_task_dispatcher
from exam_service.repositories import Repositories
from exam_service.schemas.evaluation import EvaluationResultResponse
from exam_service.schemas.result import ConsolidatedExamResult
from exam_service.schemas.submission import (
    McqSubmitRequest,
    McqSubmitResponse,
    SubmissionStatusResponse,
    UploadedFile,
    UploadWrittenResponse,
)
from exam_service.services import mcq_service, result_service, submission_service
from exam_service.services.storage import FileStorage
from exam_service.services.submission_service import Dispatcher

router = APIRouter(tags=["submissions"])


@router.post("/submit-mcq", response_model=McqSubmitResponse)
def submit_mcq(
    request: McqSubmitRequest,
    repos: Repositories = Depends(get_repositories),
):
    """
    Score MCQ answers immediately. Resubmitting replaces the earlier answers.
    """
    return mcq_service.submit_mcq(
        repos,
        exam_id=request.exam_id,
        student_id=request.student_id,
        answers=request.answers,
    )


@router.post("/upload-written", response_model=UploadWrittenResponse)
def upload_written(
    exam_id: str | None = Form(None, alias="examId"),
    student_id: str | None = Form(None, alias="studentId"),
    mcq_answers: str | None = Form(None, alias="mcqAnswers"),
    files: list[UploadFile] | None = File(None),
    repos: Repositories = Depends(get_repositories),
    storage: FileStorage = Depends(get_storage),
    dispatch: Dispatcher = Depends(get_task_dispatcher),
):
    """
    Upload answer-sheet images/PDFs. Evaluation runs in the background; poll
    /submission-status/{submissionId} for progress.
    """
    uploads = [
        UploadedFile(filename=upload.filename or "", content=upload.file.read())
        for upload in files or []
    ]
    return submission_service.upload_written_submission(
        repos,
        exam_id=exam_id,
        student_id=student_id,
        files=uploads,
        storage=storage,
        dispatch=dispatch,
        mcq_answers=mcq_answers,
    )


@router.get("/submission-status/{submission_id}", response_model=SubmissionStatusResponse)
def get_submission_status(
    submission_id: str,
    repos: Repositories = Depends(get_repositories),
):
    return submission_service.get_submission_status(repos, submission_id)


@router.get("/evaluation-result/{submission_id}", response_model=EvaluationResultResponse)
def get_evaluation_result(
    submission_id: str,
    repos: Repositories = Depends(get_repositories),
):
    return submission_service.get_evaluation_result(repos, submission_id)


@router.get("/result/{exam_id}/{student_id}", response_model=ConsolidatedExamResult)
def get_consolidated_result(
    exam_id: str,
    student_id: str,
    repos: Repositories = Depends(get_repositories),
):
    """
    MCQ (sheet or direct) + subjective scores merged into one grade.
    """
    return result_service.build_consolidated_result(repos, exam_id, student_id)
