# exam_service/core/exceptions.py


class ExamServiceError(Exception):
    """Base class for errors raised by the exam service."""


class ValidationError(ExamServiceError):
    """Client supplied data that cannot be processed (HTTP 400)."""


class RubricValidationError(ValidationError):
    pass


class FileValidationError(ValidationError):
    pass


class NotFoundError(ExamServiceError):
    """Requested exam, rubric or submission does not exist (HTTP 404)."""


class ConflictError(ExamServiceError):
    """The request collides with an existing active record (HTTP 409)."""


class InvalidStatusTransition(ExamServiceError):
    pass


class ScoringError(ExamServiceError):
    pass


class LLMServiceError(ExamServiceError):
    pass


class EvaluationParseError(ExamServiceError):
    """The model response could not be read as the expected JSON schema."""


class StorageError(ExamServiceError):
    pass
