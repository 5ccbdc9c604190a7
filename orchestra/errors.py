"""Exception hierarchy for the orchestration engine."""


class OrchestraError(Exception):
    """Base class for all orchestration errors."""


class ValidationError(OrchestraError):
    """Raised when a request is malformed. Never retried."""


class NoValidProvidersError(ValidationError):
    """Raised when none of the requested provider ids is registered."""

    def __init__(self, requested: list[str], available: list[str]) -> None:
        self.requested = list(requested)
        self.available = list(available)
        super().__init__(
            f"No valid providers in {self.requested}. Available: {', '.join(self.available) or 'none'}"
        )


class ProviderError(OrchestraError):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class ProviderAPIError(ProviderError):
    """The provider answered with an error or an unusable payload."""


class ProviderTimeoutError(ProviderError):
    """The provider did not answer within its time budget."""

    def __init__(self, provider_name: str, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(provider_name, f"timeout after {timeout_ms}ms")


class ConsensusBuildError(OrchestraError):
    """Raised when the consensus path cannot produce a decision."""


class OrchestrationFailedError(OrchestraError):
    """Every attempted provider returned an error."""

    def __init__(self, last_error: str, attempted: list[str]) -> None:
        self.last_error = last_error
        self.attempted = list(attempted)
        super().__init__(
            f"All {len(self.attempted)} provider(s) failed. Last error: {last_error}"
        )
