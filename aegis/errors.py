"""
Error taxonomy for generation calls.

Every failure a caller can see is a GenerationError with a stable `kind`
string, so the HTTP layer (and any other front end) can render one terminal
failure state per operation without inspecting exception types.
"""

from typing import Optional


class GenerationError(Exception):
    kind = "generation_failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ConfigurationError(GenerationError):
    """No usable credentials. Fatal, never retried."""
    kind = "configuration"


class QuotaExceededError(GenerationError):
    """The current credential hit its rate or usage limit. Retriable."""
    kind = "quota_exceeded"

    def __init__(self, message: str, status: Optional[int] = None,
                 credential_index: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.credential_index = credential_index


class RequestError(GenerationError):
    """Any non-quota remote failure: bad input, auth, network. Fatal."""
    kind = "request_failed"

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ValidationError(GenerationError):
    """Model output does not satisfy the output contract. Fatal."""
    kind = "validation_failed"

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field
        data["reason"] = self.reason
        return data


class EmptyResponseError(GenerationError):
    """The remote call returned no payload at all."""
    kind = "empty_response"


class DeadlineExceededError(GenerationError):
    """The caller's deadline passed before the retry loop finished."""
    kind = "deadline_exceeded"
