"""
copyguard Safety - gate, override workflow, regeneration and threshold learning.
"""

from copyguard.safety.types import (
    FlaggedSentence,
    HumanizationIntensity,
    OverrideRecord,
    OverrideStatus,
    ScoreResult,
    SuggestionDirection,
    ThresholdSuggestion,
)
from copyguard.safety.threshold import (
    SettingsStoreProtocol,
    ThresholdService,
    is_valid_threshold,
    sanitize_stored_threshold,
    validate_threshold,
)
from copyguard.safety.gate import Gate, GateDecision, Pass, Warn, should_warn
from copyguard.safety.ladder import (
    RegenerationAttempt,
    RegenerationAvailability,
    RegenerationLadder,
    next_intensity,
)
from copyguard.safety.overrides import OverrideLedger, OverrideStoreProtocol
from copyguard.safety.learner import ThresholdLearner
from copyguard.safety.notifications import SuggestionDismissal, ThresholdNotificationService
from copyguard.safety.workflow import (
    ConfirmingOverride,
    CopyFailed,
    CopyingOverride,
    Dismissed,
    Edited,
    Evaluating,
    Idle,
    OverrideCopied,
    OverrideCopyFailed,
    OverrideWorkflow,
    PassCopied,
    PendingOverride,
    WarningShown,
    WorkflowState,
)

__all__ = [
    # Types
    "FlaggedSentence",
    "HumanizationIntensity",
    "OverrideRecord",
    "OverrideStatus",
    "ScoreResult",
    "SuggestionDirection",
    "ThresholdSuggestion",
    # Threshold
    "SettingsStoreProtocol",
    "ThresholdService",
    "is_valid_threshold",
    "sanitize_stored_threshold",
    "validate_threshold",
    # Gate
    "Gate",
    "GateDecision",
    "Pass",
    "Warn",
    "should_warn",
    # Ladder
    "RegenerationAttempt",
    "RegenerationAvailability",
    "RegenerationLadder",
    "next_intensity",
    # Overrides and learning
    "OverrideLedger",
    "OverrideStoreProtocol",
    "ThresholdLearner",
    "SuggestionDismissal",
    "ThresholdNotificationService",
    # Workflow
    "ConfirmingOverride",
    "CopyFailed",
    "CopyingOverride",
    "Dismissed",
    "Edited",
    "Evaluating",
    "Idle",
    "OverrideCopied",
    "OverrideCopyFailed",
    "OverrideWorkflow",
    "PassCopied",
    "PendingOverride",
    "WarningShown",
    "WorkflowState",
]
