"""Error definitions for slimvm.

Every error carries a stable ``code`` string for programmatic handling.
Configuration errors are raised before any side effect; tool errors carry
the tool's own diagnostic output verbatim.
"""

from __future__ import annotations

# Error code constants
CONFIG_ERROR = "config_error"
RECIPE_NOT_FOUND = "recipe_not_found"
UNSUPPORTED_FORMAT = "unsupported_format"
UNSUPPORTED_PROVIDER = "unsupported_provider"
UNKNOWN_STEP = "unknown_step"
TOOL_ERROR = "tool_error"
TOOL_TIMEOUT = "tool_timeout"
ENGINE_ERROR = "engine_error"
EXTRACTION_ERROR = "extraction_error"


class SlimError(Exception):
    """Base error for slimvm operations."""

    def __init__(self, message: str, code: str = "slim_error") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(SlimError):
    """Raised for invalid build inputs, before any side effect occurs."""

    def __init__(self, message: str, code: str = CONFIG_ERROR) -> None:
        super().__init__(message, code=code)


class BuildRecipeNotFoundError(ConfigurationError):
    """Raised when the build context has no Dockerfile."""

    def __init__(self, build_path: object) -> None:
        super().__init__(f"Expected Dockerfile in {build_path}", code=RECIPE_NOT_FOUND)
        self.build_path = build_path


class UnsupportedFormatError(ConfigurationError):
    """Raised when an output format has no step chain."""

    def __init__(self, fmt: object) -> None:
        super().__init__(f"Unsupported output format: {fmt}", code=UNSUPPORTED_FORMAT)
        self.format = fmt


class UnsupportedProviderError(ConfigurationError):
    """Raised when a provider has no base format."""

    def __init__(self, provider: object) -> None:
        super().__init__(f"Unsupported provider: {provider}", code=UNSUPPORTED_PROVIDER)
        self.provider = provider


class ToolExecutionError(SlimError):
    """Raised when an external tool exits non-zero or cannot be started."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        output: str = "",
        code: str = TOOL_ERROR,
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code
        self.output = output


class ContainerEngineError(SlimError):
    """Raised when the container engine reports a failure."""

    def __init__(self, message: str, code: str = ENGINE_ERROR) -> None:
        super().__init__(message, code=code)


class ExtractionError(SlimError):
    """Raised when a filesystem archive cannot be extracted."""

    def __init__(self, message: str, code: str = EXTRACTION_ERROR) -> None:
        super().__init__(message, code=code)


__all__ = [
    "BuildRecipeNotFoundError",
    "ConfigurationError",
    "ContainerEngineError",
    "ExtractionError",
    "SlimError",
    "ToolExecutionError",
    "UnsupportedFormatError",
    "UnsupportedProviderError",
]
