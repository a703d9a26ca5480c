"""Custom exceptions for Aurum."""


class AurumError(Exception):
    """Base exception for all Aurum errors."""

    def __init__(self, message: str, *args: object) -> None:
        self.message = message
        super().__init__(message, *args)


# Consensus errors
class ConsensusError(AurumError):
    """Base error for the AI consensus layer."""


class UnknownProviderError(ConsensusError):
    """A requested prediction provider is not registered."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(
            f"Unknown prediction provider '{name}' (available: {', '.join(available) or 'none'})"
        )


class InsufficientProvidersError(ConsensusError):
    """Fewer providers succeeded than the consensus requires."""

    def __init__(self, required: int, succeeded: int, errors: dict[str, str] | None = None) -> None:
        self.required = required
        self.succeeded = succeeded
        self.errors = errors or {}
        super().__init__(
            f"Insufficient providers: {succeeded} succeeded, {required} required"
        )


# Storage errors
class StorageError(AurumError):
    """Base error for storage layer."""


class PredictionNotFoundError(StorageError):
    """No prediction stored under the requested id."""


class DatabaseConnectionError(StorageError):
    """Failed to connect to database."""
