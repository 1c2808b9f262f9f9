# exam_service/workers/queue.py

from typing import Any, Callable

from redis import Redis
from rq import Queue

from exam_service.core.config import settings

_DEFAULT_QUEUE_NAME = "default"

_redis_conn: Redis | None = None


def get_redis_connection() -> Redis:
    global _redis_conn
    if _redis_conn is None:
        redis_url = settings.REDIS_URL
        _redis_conn = Redis.from_url(redis_url)
    return _redis_conn


def get_queue(name: str = _DEFAULT_QUEUE_NAME) -> Queue:
    return Queue(name, connection=get_redis_connection())


def enqueue_job(
    func: Callable[..., Any],
    *args: Any,
    queue_name: str = _DEFAULT_QUEUE_NAME,
    **kwargs: Any,
) -> str:

    q = get_queue(queue_name)
    job = q.enqueue(func, *args, **kwargs)
    return job.id


def enqueue_evaluation_task(submission_id: str) -> str:
    from exam_service.workers.tasks import evaluation_task

    return enqueue_job(
        evaluation_task,
        submission_id,
        queue_name=settings.EVALUATION_QUEUE_NAME,
        job_timeout=settings.EVALUATION_JOB_TIMEOUT,
    )
