"""Exception hierarchy for copyguard.

Every failure at this layer is local and recoverable. Callers decide
whether to fall back (scorer, threshold read), log and continue (audit
write), or surface a retry (clipboard write).
"""

from __future__ import annotations

from typing import Optional


class CopyGuardError(Exception):
    """Base exception for copyguard errors."""
    pass


class InvalidThresholdError(CopyGuardError, ValueError):
    """Raised when a threshold is outside [140, 220] or not a multiple of 10."""

    def __init__(self, value: object, message: Optional[str] = None):
        self.value = value
        super().__init__(message or f"Invalid safety threshold: {value!r}")


class ScorerUnavailableError(CopyGuardError):
    """Raised when the perplexity scorer cannot be reached or times out."""
    pass


class ThresholdReadError(CopyGuardError):
    """Raised when the stored threshold cannot be read."""
    pass


class AuditWriteError(CopyGuardError):
    """Raised when an override record cannot be persisted."""
    pass


class ClipboardWriteError(CopyGuardError):
    """Raised when writing to the clipboard fails."""
    pass


class InvalidTransitionError(CopyGuardError):
    """Raised when a workflow action is not allowed in the current state."""

    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while in state {state}")


class RegenerationExhaustedError(CopyGuardError):
    """Raised when regeneration is requested but the ladder is disabled."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class BackendError(CopyGuardError):
    """Raised when a backend command fails at the transport level."""
    pass


class StaleSuggestionError(CopyGuardError):
    """Raised when a suggestion no longer matches the live threshold."""

    def __init__(self, expected: int, current: int):
        self.expected = expected
        self.current = current
        super().__init__(
            f"Suggestion was computed for threshold {expected}, but the threshold is now {current}"
        )
