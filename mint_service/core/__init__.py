"""Error taxonomy and structured logging helpers."""

from mint_service.core.errors import (
    ConfirmationError,
    DiagnosticQueryError,
    MintServiceError,
    PreconditionQueryError,
    RemoteQueryError,
    StartupConfigurationError,
    StatusQueryError,
    SubmissionError,
    UnhandledBackgroundError,
)

__all__ = [
    "MintServiceError",
    "RemoteQueryError",
    "PreconditionQueryError",
    "DiagnosticQueryError",
    "StatusQueryError",
    "SubmissionError",
    "ConfirmationError",
    "StartupConfigurationError",
    "UnhandledBackgroundError",
]
