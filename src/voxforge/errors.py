"""Voxforge exception hierarchy.

All voxforge-specific exceptions inherit from VoxforgeError,
enabling structured error handling and cleaner catch clauses.
"""


class VoxforgeError(Exception):
    """Base exception for all voxforge errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ProviderError(VoxforgeError):
    """Error communicating with the reasoning service."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class ExternalServiceError(VoxforgeError):
    """Non-success response or transport failure from an external HTTP service."""

    def __init__(
        self,
        message: str = "",
        *,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, retryable=retryable)
        self.status_code = status_code


class PipelineAbort(VoxforgeError):
    """A fatal pipeline step failed; the run is aborted and nothing is persisted."""


class OutcomeFetchError(PipelineAbort):
    """The interaction outcome could not be fetched."""


class ProfileFetchError(PipelineAbort):
    """The live agent profile could not be read."""


class SynthesisError(VoxforgeError):
    """A capability program failed validation."""


class CapabilityError(VoxforgeError):
    """Error raised while running a capability handler."""


class AutomationError(VoxforgeError):
    """Error building or deploying an automation."""


class AutomationNotConfiguredError(AutomationError):
    """The automation platform credentials are absent."""


class ConfigError(VoxforgeError):
    """Invalid or missing configuration."""
