"""Exception hierarchy for the minting service.

Read-only query failures derive from RemoteQueryError; the step that raised
decides how it is surfaced (attempt outcome, HTTP 500, log line).
"""

from typing import Optional


class MintServiceError(Exception):
    """Base exception for all mint service errors."""


class RemoteQueryError(MintServiceError):
    """A read-only contract call failed (transport error, revert, bad response)."""

    def __init__(self, message: str, *, function: str = ""):
        self.function = function
        super().__init__(message)


class PreconditionQueryError(RemoteQueryError):
    """canMint() could not be evaluated; the attempt aborts."""


class DiagnosticQueryError(RemoteQueryError):
    """A diagnostic read failed. Logged only, never aborts an attempt."""


class StatusQueryError(RemoteQueryError):
    """A live query needed by the status endpoint failed (HTTP 500)."""


class SubmissionError(MintServiceError):
    """mintAndDistribute() transaction could not be built, signed or sent."""


class ConfirmationError(MintServiceError):
    """Submitted transaction was not confirmed (timeout, revert, receipt error)."""

    def __init__(self, message: str, *, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class StartupConfigurationError(MintServiceError):
    """Missing or invalid configuration, or no connectivity at startup. Fatal."""


class UnhandledBackgroundError(MintServiceError):
    """Wraps a failure reported by the event loop exception handler."""
