# app/services/errors.py


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""


class NotFoundError(ServiceError):
    """A referenced test, question, candidate, assignment or response does not exist."""


class ConflictError(ServiceError):
    """The requested record already exists, e.g. a second assignment for the same candidate and test."""


class InvalidTransitionError(ServiceError):
    """The assignment status machine does not allow the requested move."""


class SnapshotDecodeError(ServiceError):
    """A stored snapshot payload is present but cannot be parsed."""


class GradingError(ServiceError):
    """The AI grader could not produce a usable grade."""


class GradingNotConfiguredError(ServiceError):
    """No API key or model is available for the AI grader."""


class NotGradableError(ServiceError):
    """The response is not a free-text or timed answer with content."""


class GenerationError(ServiceError):
    """The AI model did not return a usable test."""


class QuestionsInUseError(ServiceError):
    """Some questions already have recorded answers and cannot be deleted."""

    def __init__(self, message: str, questions_in_use: list):
        super().__init__(message)
        self.questions_in_use = questions_in_use
