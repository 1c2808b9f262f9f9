# exam_service/repositories/__init__.py
from dataclasses import dataclass

from sqlalchemy.orm import Session

from exam_service.core.config import settings
from exam_service.repositories.base import ExamStore, RubricStore, SubmissionStore
from exam_service.repositories.memory import (
    InMemoryExamStore,
    InMemoryRubricStore,
    InMemorySubmissionStore,
)
from exam_service.repositories.sql import SqlExamStore, SqlRubricStore, SqlSubmissionStore


@dataclass
class Repositories:
    exams: ExamStore
    rubrics: RubricStore
    submissions: SubmissionStore


_memory_repositories: Repositories | None = None


def get_memory_repositories() -> Repositories:
    global _memory_repositories
    if _memory_repositories is None:
        _memory_repositories = Repositories(
            exams=InMemoryExamStore(),
            rubrics=InMemoryRubricStore(),
            submissions=InMemorySubmissionStore(),
        )
    return _memory_repositories


def reset_memory_repositories() -> None:
    global _memory_repositories
    _memory_repositories = None


def build_repositories(db: Session | None = None) -> Repositories:
    if settings.REPOSITORY_BACKEND == "memory":
        return get_memory_repositories()
    if db is None:
        raise ValueError("SQL repositories need a database session")
    return Repositories(
        exams=SqlExamStore(db),
        rubrics=SqlRubricStore(db),
        submissions=SqlSubmissionStore(db),
    )
