# exam_service/api/deps.py
from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from exam_service.core.config import settings
from exam_service.db.session import get_db
from exam_service.repositories import Repositories, build_repositories
from exam_service.services.storage import FileStorage, get_file_storage
from exam_service.services.submission_service import Dispatcher
from exam_service.workers.queue import enqueue_evaluation_task
from exam_service.workers.tasks import evaluation_task


def get_repositories(db: Session = Depends(get_db)) -> Repositories:
    return build_repositories(db)


def get_storage() -> FileStorage:
    return get_file_storage()


def get_task_dispatcher(background_tasks: BackgroundTasks) -> Dispatcher:
    if settings.TASK_BACKEND == "rq":
        return enqueue_evaluation_task

    def dispatch(submission_id: str) -> None:
        background_tasks.add_task(evaluation_task, submission_id)

    return dispatch
