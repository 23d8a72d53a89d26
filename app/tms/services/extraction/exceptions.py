"""
Shared exceptions for the extraction pipeline.

Every failure carries a stable ``kind`` tag that is reported to callers.
"""

from typing import Any


class ExtractionError(Exception):
    """Base class for pipeline failures."""

    kind = "ExtractionError"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": str(self), "raw_output": None, "load": None}


class InvalidInput(ExtractionError):
    """Raised when no usable document payload was supplied."""

    kind = "InvalidInput"


class ExtractionUnavailable(ExtractionError):
    """Raised when the model call fails or exceeds its time budget."""

    kind = "ExtractionUnavailable"


class MalformedExtraction(ExtractionError):
    """Raised when the model output does not match the extraction contract."""

    kind = "MalformedExtraction"

    def __init__(self, message: str, raw_output: str):
        super().__init__(message)
        self.raw_output = raw_output

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["raw_output"] = self.raw_output
        return data


class PersistenceFailure(ExtractionError):
    """
    Raised when the storage collaborator rejects a parsed load.

    The parsed outcome travels with the error so it is never silently lost.
    """

    kind = "PersistenceFailure"

    def __init__(self, message: str, outcome: Any = None):
        super().__init__(message)
        self.outcome = outcome

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.outcome is not None:
            data["load"] = self.outcome.load.model_dump(mode="json")
        return data
