"""
Error taxonomy for Idea Generator.

Every failure the pipeline knows how to name derives from IdeaGenError so the
workflow can record it in the run summary instead of crashing the process.
"""

from typing import List, Optional


class IdeaGenError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(IdeaGenError):
    """The environment is missing or has invalid settings."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid configuration: " + "; ".join(self.errors))


class SourceUnavailable(IdeaGenError):
    """No fresh cache, no live upstream success and no stale data to fall back on."""


class MalformedUpstreamResponse(IdeaGenError):
    """An upstream listing failed structural validation."""

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Malformed response from {endpoint}: {reason}")


class LLMServiceError(IdeaGenError):
    """The LLM endpoint could not be reached or returned a non-200 status."""


class SchemaError(IdeaGenError):
    """LLM output did not match the expected JSON schema."""

    def __init__(self, reason: str, raw: Optional[str] = None):
        self.reason = reason
        self.raw = raw
        super().__init__(reason)


class AnalysisSchemaError(SchemaError):
    """Pain point analysis returned structurally invalid output."""


class GenerationSchemaError(SchemaError):
    """Concept generation returned structurally invalid output."""


class PersistenceFailure(IdeaGenError):
    """The row store rejected a read, insert or upsert."""


class NotificationDispatchFailure(IdeaGenError):
    """A single email dispatch failed. Recorded per subscriber, never fatal."""

    def __init__(self, recipient: str, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Failed to send to {recipient}: {reason}")


class StepFailed(IdeaGenError):
    """A workflow step exhausted its attempts."""

    def __init__(self, step: str, attempts: int, cause: BaseException):
        self.step = step
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Step '{step}' failed after {attempts} attempt(s): "
            f"{type(cause).__name__}: {cause}"
        )
