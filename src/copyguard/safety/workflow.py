# copyguard Override Workflow
"""
Safe-copy workflow: gate evaluation, risk warning, and override confirmation.

States form one tagged union, so illegal combinations such as the warning
and the confirmation surface both showing cannot be represented:

    Idle -> Evaluating -> PassCopied
                       -> CopyFailed -> (retry) PassCopied
                       -> WarningShown -> Edited
                                       -> Dismissed
                                       -> Evaluating (regenerate)
                                       -> ConfirmingOverride -> WarningShown (cancel)
                                                             -> CopyingOverride -> OverrideCopied
                                                                                -> OverrideCopyFailed

Key properties:
- The clipboard is written on a warning only through ``confirm_override``
- Confirmation needs the one-time token issued with ``ConfirmingOverride``;
  no key press ever confirms
- A failed override write is retried without asking for confirmation again
- Cancelling while a write or evaluation is in flight discards its result
- The audit record is best-effort and written only after a successful copy
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, ClassVar, Optional, Protocol, Tuple, Union

from ..core.exceptions import InvalidTransitionError, RegenerationExhaustedError
from .gate import Gate, Warn
from .ladder import RegenerationAttempt, RegenerationAvailability, RegenerationLadder
from .types import HumanizationIntensity, OverrideRecord, ScoreResult

logger = logging.getLogger(__name__)


# =============================================================================
# COLLABORATORS
# =============================================================================


class ClipboardProtocol(Protocol):
    """Protocol for the clipboard-write primitive."""

    async def write_text(self, text: str) -> None:
        """Write text to the clipboard. Raises (typically ClipboardWriteError) on failure."""
        ...


class AuditRecorderProtocol(Protocol):
    """Protocol for the override audit sink."""

    async def record(self, record: OverrideRecord) -> int:
        """Persist an override. Returns the new override id."""
        ...


class RegeneratorProtocol(Protocol):
    """Protocol for the proposal regeneration pipeline."""

    async def regenerate(
        self,
        content: str,
        intensity: HumanizationIntensity,
        attempt_number: int,
    ) -> str:
        """Regenerate content at the given intensity. Returns the new text."""
        ...


# =============================================================================
# STATES
# =============================================================================


@dataclass(frozen=True)
class Idle:
    """Nothing in progress."""


@dataclass(frozen=True)
class Evaluating:
    """Gate evaluation (and, for regeneration, the rewrite) in flight."""

    content: str
    attempt_number: int = 0


@dataclass(frozen=True)
class PassCopied:
    """Content passed the gate and is on the clipboard."""

    content: str
    result: Optional[ScoreResult] = None  # None when the scorer was unavailable


@dataclass(frozen=True)
class CopyFailed:
    """Content passed the gate but the clipboard write failed."""

    content: str
    error: str
    result: Optional[ScoreResult] = None


@dataclass(frozen=True)
class WarningShown:
    """Risk warning with Edit / Regenerate / Override actions."""

    content: str
    result: ScoreResult
    regeneration: RegenerationAvailability
    previous_score: Optional[float] = None
    error: Optional[str] = None

    default_action: ClassVar[str] = "edit"

    @property
    def actions(self) -> Tuple[str, ...]:
        if self.regeneration.enabled:
            return ("edit", "regenerate", "override")
        return ("edit", "override")


@dataclass(frozen=True)
class Edited:
    """User chose to edit; nothing was copied."""

    content: str
    result: ScoreResult


@dataclass(frozen=True)
class Dismissed:
    """User dismissed the warning; nothing was copied."""

    content: str
    result: ScoreResult


@dataclass(frozen=True)
class ConfirmingOverride:
    """Second, separate surface asking the user to confirm the override."""

    warning: WarningShown
    token: str = field(default_factory=lambda: uuid.uuid4().hex)

    default_action: ClassVar[str] = "cancel"


@dataclass(frozen=True)
class CopyingOverride:
    """Override confirmed; clipboard write in flight."""

    warning: WarningShown
    proposal_id: Optional[int] = None


@dataclass(frozen=True)
class OverrideCopyFailed:
    """Override confirmed but the clipboard write failed. Retry skips confirmation."""

    warning: WarningShown
    error: str
    proposal_id: Optional[int] = None


@dataclass(frozen=True)
class OverrideCopied:
    """Content copied despite the warning."""

    content: str
    result: ScoreResult
    override_id: Optional[int] = None
    audit_error: Optional[str] = None
    pending_audit: bool = False  # Waiting for a proposal id


WorkflowState = Union[
    Idle,
    Evaluating,
    PassCopied,
    CopyFailed,
    WarningShown,
    Edited,
    Dismissed,
    ConfirmingOverride,
    CopyingOverride,
    OverrideCopyFailed,
    OverrideCopied,
]

# States from which a fresh copy may start
RESTARTABLE_STATES = (Idle, PassCopied, CopyFailed, Edited, Dismissed, OverrideCopied)


@dataclass(frozen=True)
class PendingOverride:
    """Override copied before its proposal had an id."""

    ai_score: float
    threshold: int
    timestamp: float = field(default_factory=time.time)


# =============================================================================
# WORKFLOW
# =============================================================================


class OverrideWorkflow:
    """Drives one piece of content through the safe-copy flow.

    One evaluation runs at a time per workflow. Separate workflows share
    nothing but the collaborators passed in.
    """

    def __init__(
        self,
        gate: Gate,
        clipboard: ClipboardProtocol,
        recorder: AuditRecorderProtocol,
        regenerator: Optional[RegeneratorProtocol] = None,
        ladder: Optional[RegenerationLadder] = None,
        on_transition: Optional[Callable[[WorkflowState, WorkflowState], None]] = None,
    ):
        self.gate = gate
        self.clipboard = clipboard
        self.recorder = recorder
        self.regenerator = regenerator
        self.ladder = ladder or RegenerationLadder()
        self._on_transition = on_transition
        self._state: WorkflowState = Idle()
        self._version = 0
        self._pending_override: Optional[PendingOverride] = None

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def pending_override(self) -> Optional[PendingOverride]:
        return self._pending_override

    def _set_state(self, new_state: WorkflowState) -> int:
        old_state = self._state
        self._state = new_state
        self._version += 1
        logger.debug(f"Workflow {type(old_state).__name__} -> {type(new_state).__name__}")
        if self._on_transition:
            self._on_transition(old_state, new_state)
        return self._version

    def _is_current(self, version: int) -> bool:
        return self._version == version

    def _require(self, action: str, *allowed: type) -> None:
        if not isinstance(self._state, allowed):
            raise InvalidTransitionError(action, type(self._state).__name__)

    # -------------------------------------------------------------------------
    # COPY / EVALUATION
    # -------------------------------------------------------------------------

    async def copy(
        self,
        content: str,
        humanization_intensity: Optional[HumanizationIntensity] = None,
    ) -> WorkflowState:
        """Start a copy: evaluate, then copy on Pass or warn.

        Starts a new generation session, resetting the regeneration ladder.

        Raises:
            InvalidTransitionError: If a copy, warning or override is in progress
        """
        self._require("copy", *RESTARTABLE_STATES)
        self.ladder.reset(humanization_intensity)

        version = self._set_state(Evaluating(content=content))
        return await self._run_evaluation(content, version)

    async def _run_evaluation(
        self,
        content: str,
        version: int,
        attempt: Optional[RegenerationAttempt] = None,
    ) -> WorkflowState:
        decision = await self.gate.evaluate(content, self.ladder.current_intensity)

        if not self._is_current(version):
            logger.debug("Evaluation result discarded after cancellation")
            return self._state

        if attempt is not None:
            self.ladder.complete_attempt(
                attempt, decision.result.score if decision.result else None
            )

        if isinstance(decision, Warn):
            self._set_state(
                WarningShown(
                    content=content,
                    result=decision.result,
                    regeneration=self.ladder.availability(),
                    previous_score=attempt.previous_score if attempt else None,
                )
            )
            return self._state

        return await self._write_pass(content, decision.result)

    async def _write_pass(self, content: str, result: Optional[ScoreResult]) -> WorkflowState:
        try:
            await self.clipboard.write_text(content)
        except Exception as e:
            logger.warning(f"Clipboard write failed: {e}")
            self._set_state(CopyFailed(content=content, error=str(e) or type(e).__name__, result=result))
            return self._state

        self._set_state(PassCopied(content=content, result=result))
        return self._state

    # -------------------------------------------------------------------------
    # WARNING ACTIONS
    # -------------------------------------------------------------------------

    def edit(self) -> WorkflowState:
        """Leave the warning to edit the content. Nothing is copied."""
        self._require("edit", WarningShown)
        warning = self._state
        self._set_state(Edited(content=warning.content, result=warning.result))
        return self._state

    def request_override(self) -> ConfirmingOverride:
        """Open the override confirmation surface."""
        self._require("request override", WarningShown)
        confirming = ConfirmingOverride(warning=self._state)
        self._set_state(confirming)
        return confirming

    async def regenerate(self) -> WorkflowState:
        """Regenerate at the next humanization rung and re-evaluate.

        Raises:
            InvalidTransitionError: If no warning is showing or no regenerator
                is configured
            RegenerationExhaustedError: If the ladder is disabled
        """
        self._require("regenerate", WarningShown)
        if self.regenerator is None:
            raise InvalidTransitionError("regenerate without a regenerator", "WarningShown")

        warning: WarningShown = self._state
        if not warning.regeneration.enabled:
            raise RegenerationExhaustedError(warning.regeneration.reason or "Regeneration unavailable")

        attempt = self.ladder.begin_attempt(previous_score=warning.result.score)
        version = self._set_state(
            Evaluating(content=warning.content, attempt_number=attempt.attempt_number)
        )

        try:
            new_content = await self.regenerator.regenerate(
                warning.content,
                attempt.humanization_intensity_used,
                attempt.attempt_number,
            )
        except Exception as e:
            logger.warning(f"Regeneration attempt {attempt.attempt_number} failed: {e}")
            if self._is_current(version):
                self._set_state(
                    replace(
                        warning,
                        regeneration=self.ladder.availability(),
                        error=f"Regeneration failed: {e}",
                    )
                )
            return self._state

        if not self._is_current(version):
            return self._state
        return await self._run_evaluation(new_content, version, attempt)

    # -------------------------------------------------------------------------
    # OVERRIDE
    # -------------------------------------------------------------------------

    async def confirm_override(
        self,
        token: str,
        proposal_id: Optional[int] = None,
    ) -> WorkflowState:
        """Explicitly accept the override and copy the content.

        Args:
            token: Token of the ConfirmingOverride surface being accepted
            proposal_id: Proposal the content belongs to; when None the
                audit record is queued until ``flush_pending_override``

        Raises:
            InvalidTransitionError: If not confirming, or the token is stale
        """
        self._require("confirm override", ConfirmingOverride)
        confirming: ConfirmingOverride = self._state
        if token != confirming.token:
            raise InvalidTransitionError("confirm override with a stale token", "ConfirmingOverride")

        return await self._commit_override(confirming.warning, proposal_id)

    async def _commit_override(
        self,
        warning: WarningShown,
        proposal_id: Optional[int],
    ) -> WorkflowState:
        version = self._set_state(CopyingOverride(warning=warning, proposal_id=proposal_id))

        try:
            await self.clipboard.write_text(warning.content)
        except Exception as e:
            logger.warning(f"Clipboard write failed after override confirmation: {e}")
            if self._is_current(version):
                self._set_state(
                    OverrideCopyFailed(
                        warning=warning,
                        error=str(e) or type(e).__name__,
                        proposal_id=proposal_id,
                    )
                )
            return self._state

        if not self._is_current(version):
            logger.info("Override cancelled while copying; not recording")
            return self._state

        result = warning.result
        if proposal_id is None:
            if self._pending_override is not None:
                logger.warning(
                    "Replacing unflushed pending override "
                    f"(score={self._pending_override.ai_score}, threshold={self._pending_override.threshold})"
                )
            self._pending_override = PendingOverride(ai_score=result.score, threshold=result.threshold)
            self._set_state(
                OverrideCopied(content=warning.content, result=result, pending_audit=True)
            )
            return self._state

        version = self._set_state(OverrideCopied(content=warning.content, result=result))
        override_id, audit_error = await self._record(
            OverrideRecord(proposal_id=proposal_id, ai_score=result.score, threshold=result.threshold)
        )
        if self._is_current(version):
            self._set_state(replace(self._state, override_id=override_id, audit_error=audit_error))
        return self._state

    async def _record(self, record: OverrideRecord) -> Tuple[Optional[int], Optional[str]]:
        try:
            override_id = await self.recorder.record(record)
        except Exception as e:
            logger.warning(f"Override recording failed for proposal {record.proposal_id}: {e}")
            return None, str(e) or type(e).__name__

        logger.info(
            f"Safety override recorded: proposal={record.proposal_id} "
            f"score={record.ai_score} threshold={record.threshold}"
        )
        return override_id, None

    async def flush_pending_override(self, proposal_id: int) -> Optional[int]:
        """Record a queued override once its proposal has an id.

        A failed write keeps the override queued.

        Returns:
            The override id, or None if nothing was queued or recording failed
        """
        pending = self._pending_override
        if pending is None:
            return None

        override_id, audit_error = await self._record(
            OverrideRecord(
                proposal_id=proposal_id,
                ai_score=pending.ai_score,
                threshold=pending.threshold,
                timestamp=pending.timestamp,
            )
        )
        if audit_error is not None:
            return None

        self._pending_override = None
        if isinstance(self._state, OverrideCopied) and self._state.pending_audit:
            self._set_state(replace(self._state, override_id=override_id, pending_audit=False))
        return override_id

    async def retry_copy(self) -> WorkflowState:
        """Retry a failed clipboard write without re-evaluating or re-confirming."""
        self._require("retry copy", CopyFailed, OverrideCopyFailed)
        state = self._state

        if isinstance(state, OverrideCopyFailed):
            return await self._commit_override(state.warning, state.proposal_id)

        return await self._write_pass(state.content, state.result)

    # -------------------------------------------------------------------------
    # CANCEL / KEYS
    # -------------------------------------------------------------------------

    def cancel(self) -> WorkflowState:
        """Take the safe/back transition for the current state.

        WarningShown -> Dismissed; ConfirmingOverride, CopyingOverride and
        OverrideCopyFailed -> WarningShown; Evaluating -> Idle. Terminal
        states are left unchanged.
        """
        state = self._state
        if isinstance(state, WarningShown):
            self._set_state(Dismissed(content=state.content, result=state.result))
        elif isinstance(state, (ConfirmingOverride, CopyingOverride, OverrideCopyFailed)):
            self._set_state(state.warning)
        elif isinstance(state, Evaluating):
            self._set_state(Idle())
        return self._state

    def handle_key(self, key: str) -> WorkflowState:
        """Map a key press onto the current surface.

        Escape always cancels. Enter activates the default action, which is
        Edit on the warning and Back on the confirmation. No key confirms.
        """
        normalized = key.strip().lower()
        if normalized in ("escape", "esc"):
            return self.cancel()
        if normalized in ("enter", "return"):
            if isinstance(self._state, WarningShown):
                return self.edit()
            if isinstance(self._state, ConfirmingOverride):
                return self.cancel()
        return self._state

    def reset(self) -> WorkflowState:
        """Return to Idle and start a new session. Queued overrides are kept."""
        self.ladder.reset()
        self._set_state(Idle())
        return self._state
