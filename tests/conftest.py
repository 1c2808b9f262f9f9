"""
Shared fixtures: in-memory repositories, a throwaway SQLite session, fake
OCR / LLM / storage collaborators and the scenario exam used across tests.
"""

import json
import os
import tempfile

# Settings are read at import time, so configure the environment first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["REPOSITORY_BACKEND"] = "memory"
os.environ["TASK_BACKEND"] = "background"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["OCR_NORMALIZATION"] = "off"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="exam-uploads-")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from exam_service import models  # noqa
from exam_service.core.exceptions import LLMServiceError, StorageError
from exam_service.db.base import Base
from exam_service.repositories import (
    Repositories,
    get_memory_repositories,
    reset_memory_repositories,
)
from exam_service.repositories.sql import SqlExamStore, SqlRubricStore, SqlSubmissionStore
from exam_service.schemas.exam import Exam
from exam_service.schemas.rubric import Rubric, RubricStep
from exam_service.services.llm_client import LLMClient
from exam_service.services.ocr_service import OcrService
from exam_service.services.storage import FileStorage, build_unique_name, validate_extension

TEST_DATABASE_URL = "sqlite:///:memory:"

EXAM_ID = "exam-math-10"
STUDENT_ID = "student-42"

Q6_TEXT = "Differentiate f(x) = x^2 + 3x."
Q7_TEXT = "A rectangle is 6 cm by 4 cm. Find its area."

# Q1 fully right, Q2 misses the final step. Contains nothing that reads as an MCQ answer.
SCENARIO_SHEET_TEXT = (
    "Q1\n"
    "The derivative of x^2 + 3x is 2x + 3 using the power rule\n"
    "Q2\n"
    "Area = length times width = 6 * 4 but I forgot the units"
)


# ---------------------------------------------------------------------------
# fakes
# ---------------------------------------------------------------------------


def rubric_reply(awards, step_marks=(1, 2, 2), **overrides) -> str:
    steps = [
        {
            "step": i + 1,
            "description": f"Step {i + 1}",
            "isCorrect": awarded == maximum,
            "marksAwarded": awarded,
            "maxMarksForStep": maximum,
            "feedback": "Your answer is correct!" if awarded == maximum else "Improvement needed",
        }
        for i, (awarded, maximum) in enumerate(zip(awards, step_marks))
    ]
    payload = {
        "earnedMarks": sum(awards),
        "maxMarks": sum(step_marks),
        "isFullyCorrect": list(awards) == list(step_marks),
        "expectedAnswer": "worked solution",
        "studentAnswerEcho": "student answer",
        "stepAnalysis": steps,
        "overallFeedback": "Your Approach: ...",
    }
    payload.update(overrides)
    return json.dumps(payload)


class FakeLLM(LLMClient):
    """Replies via a callable(system_prompt, user_prompt) and records every call."""

    def __init__(self, responder=None):
        self.responder = responder or (lambda system, user: rubric_reply([1, 2, 2]))
        self.calls = []

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        reply = self.responder(system_prompt, user_prompt)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def embedding(self, text: str) -> list[float]:
        return [float(len(text))]


def scenario_responder(system_prompt: str, user_prompt: str) -> str:
    if Q6_TEXT in user_prompt:
        return rubric_reply([1, 2, 2])
    if Q7_TEXT in user_prompt:
        return rubric_reply([1, 2, 0])
    return LLMServiceError("unexpected prompt")


class FakeOcr(OcrService):
    def __init__(self, text: str = "", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls = []

    def extract_text(self, file_paths: list[str]) -> str:
        self.calls.append(list(file_paths))
        if self.error is not None:
            raise self.error
        return self.text


class FakeStorage(FileStorage):
    def __init__(self, fail_delete: bool = False):
        self.files: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_delete = fail_delete

    def save(self, content: bytes, filename: str, exam_id: str, student_id: str) -> str:
        ext = validate_extension(filename)
        path = f"mem://{build_unique_name(exam_id, student_id, ext)}"
        self.files[path] = content
        return path

    def download(self, path: str) -> bytes:
        return self.files[path]

    def delete(self, path: str) -> bool:
        if self.fail_delete:
            raise StorageError(f"cannot delete {path}")
        self.deleted.append(path)
        return self.files.pop(path, None) is not None


# ---------------------------------------------------------------------------
# fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def repos() -> Repositories:
    reset_memory_repositories()
    yield get_memory_repositories()
    reset_memory_repositories()


@pytest.fixture(scope="function")
def db_session():
    """Create a test database session."""
    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sql_repos(db_session) -> Repositories:
    return Repositories(
        exams=SqlExamStore(db_session),
        rubrics=SqlRubricStore(db_session),
        submissions=SqlSubmissionStore(db_session),
    )


def build_scenario_exam(exam_id: str = EXAM_ID) -> Exam:
    """5 MCQs worth 1 mark each, then 2 subjective questions worth 5 marks each."""
    return Exam.model_validate(
        {
            "examId": exam_id,
            "subject": "Mathematics",
            "grade": 10,
            "chapter": "Calculus basics",
            "totalMarks": 15,
            "parts": [
                {
                    "partName": "Part A",
                    "questionType": "MCQ (1 mark each)",
                    "marksPerQuestion": 1,
                    "questions": [
                        {
                            "questionId": f"mcq-{n}",
                            "questionText": f"MCQ question {n}",
                            "options": ["A) 1", "B) 2", "C) 3", "D) 4"],
                            "correctAnswer": answer,
                        }
                        for n, answer in zip(range(1, 6), ["A", "B", "C", "D", "A"])
                    ],
                },
                {
                    "partName": "Part B",
                    "questionType": "Short Answer",
                    "marksPerQuestion": 5,
                    "questions": [
                        {
                            "questionId": "sub-1",
                            "questionText": Q6_TEXT,
                            "correctAnswer": "f'(x) = 2x + 3",
                        },
                        {
                            "questionId": "sub-2",
                            "questionText": Q7_TEXT,
                            "correctAnswer": "Area = 6 * 4 = 24 cm^2",
                        },
                    ],
                },
            ],
        }
    )


def scenario_rubric(question_id: str, exam_id: str = EXAM_ID) -> Rubric:
    return Rubric(
        exam_id=exam_id,
        question_id=question_id,
        total_marks=5,
        steps=[
            RubricStep(step_number=1, description="Identify the method", marks=1),
            RubricStep(step_number=2, description="Working", marks=2),
            RubricStep(step_number=3, description="Final answer with units", marks=2),
        ],
    )


@pytest.fixture
def scenario_exam() -> Exam:
    return build_scenario_exam()


@pytest.fixture
def stored_exam(repos, scenario_exam) -> Exam:
    repos.exams.store(scenario_exam)
    repos.rubrics.save(scenario_rubric("sub-1"))
    repos.rubrics.save(scenario_rubric("sub-2"))
    return scenario_exam
