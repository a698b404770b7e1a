from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Who is responsible for a failure."""

    USER = "user_error"
    APPLICATION = "application_error"


class PipelineError(Exception):
    """
    Failure raised anywhere in the question-answering pipeline.

    The ``kind`` tag decides how the failure is reported: user errors are
    returned to the caller with their message and data, application errors
    are logged in full and reported generically.
    """

    def __init__(self, kind: ErrorKind, message: str, data: dict[str, Any] | None = None):
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.data = data

    @classmethod
    def user(cls, message: str, data: dict[str, Any] | None = None) -> "PipelineError":
        return cls(ErrorKind.USER, message, data)

    @classmethod
    def application(cls, message: str, data: dict[str, Any] | None = None) -> "PipelineError":
        return cls(ErrorKind.APPLICATION, message, data)

    @property
    def is_user_error(self) -> bool:
        return self.kind is ErrorKind.USER

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload

    def __repr__(self) -> str:
        return f"PipelineError(kind={self.kind.value!r}, message={self.message!r}, data={self.data!r})"
