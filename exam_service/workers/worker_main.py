# exam_service/workers/worker_main.py

from rq import Queue, SimpleWorker

from exam_service.core.config import settings
from exam_service.core.logging_config import setup_logging
from exam_service.workers.queue import get_redis_connection


QUEUE_NAMES = [settings.EVALUATION_QUEUE_NAME]


def main():
    setup_logging(settings.LOG_LEVEL)
    redis_conn = get_redis_connection()

    queues = [Queue(name, connection=redis_conn) for name in QUEUE_NAMES]

    # run several of these processes for more throughput; each handles one job at a time
    worker = SimpleWorker(queues, connection=redis_conn)

    worker.work()


if __name__ == "__main__":
    main()
