"""Custom exceptions for the retools change engine."""

from pathlib import Path


class RetoolsError(Exception):
    """Base exception for all retools errors."""

    pass


class ConfigError(RetoolsError):
    """Raised when configuration or a required secret is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_path: Path | None = None,
        field: str = "",
    ) -> None:
        super().__init__(message)
        self.config_path = config_path
        self.field = field


class GenerationError(RetoolsError):
    """Raised when the code-generation call fails."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ResponseParseError(GenerationError):
    """Raised when no change set can be recovered from a generation response."""

    def __init__(
        self,
        message: str,
        *,
        response_excerpt: str = "",
    ) -> None:
        super().__init__(message)
        self.response_excerpt = response_excerpt


class ApplyError(RetoolsError):
    """Raised when a file operation cannot be applied."""

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        action: str = "",
        applied: int = 0,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.action = action
        self.applied = applied


class PathEscapeError(ApplyError):
    """Raised when an operation path resolves outside the working root."""

    pass


class GuardrailError(RetoolsError):
    """Raised when a guardrail violation is detected."""

    def __init__(
        self,
        message: str,
        *,
        violated_files: list[str] | None = None,
        rule: str = "",
    ) -> None:
        super().__init__(message)
        self.violated_files = violated_files or []
        self.rule = rule
