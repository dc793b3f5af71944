# copyguard Safety Types
"""
Common types used across the safety module.

Wire names (``to_dict`` / ``from_dict``) follow the backend's camelCase
command payloads.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..core.exceptions import RegenerationExhaustedError


class HumanizationIntensity(Enum):
    """
    Stylistic variation injected into generated text.

    Ordered from least to most humanization.
    """

    OFF = "off"
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"

    @classmethod
    def parse(cls, value: str) -> "HumanizationIntensity":
        """Parse an intensity name, ignoring case and surrounding whitespace."""
        normalized = value.strip().lower()
        for intensity in cls:
            if intensity.value == normalized:
                return intensity
        raise ValueError(
            f"Invalid humanization intensity: {value!r}. "
            f"Expected one of: {', '.join(i.value for i in cls)}"
        )

    @property
    def rank(self) -> int:
        """Position on the ladder (0 = off, 3 = heavy)."""
        return INTENSITY_ORDER.index(self)

    @property
    def is_maximum(self) -> bool:
        return self is HumanizationIntensity.HEAVY

    @property
    def rate_description(self) -> str:
        return _RATE_DESCRIPTIONS[self]

    def escalate(self) -> "HumanizationIntensity":
        """Return the next rung: off -> light -> medium -> heavy.

        Raises:
            RegenerationExhaustedError: If already at heavy
        """
        if self.is_maximum:
            raise RegenerationExhaustedError(
                "Already at maximum intensity (heavy). Consider manual editing."
            )
        return INTENSITY_ORDER[self.rank + 1]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HumanizationIntensity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, HumanizationIntensity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, HumanizationIntensity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, HumanizationIntensity):
            return NotImplemented
        return self.rank >= other.rank


# Ordered list for escalation
INTENSITY_ORDER = [
    HumanizationIntensity.OFF,
    HumanizationIntensity.LIGHT,
    HumanizationIntensity.MEDIUM,
    HumanizationIntensity.HEAVY,
]

_RATE_DESCRIPTIONS = {
    HumanizationIntensity.OFF: "No humanization",
    HumanizationIntensity.LIGHT: "0.5-1 touches per 100 words",
    HumanizationIntensity.MEDIUM: "1-2 touches per 100 words",
    HumanizationIntensity.HEAVY: "2-3 touches per 100 words",
}


@dataclass(frozen=True)
class FlaggedSentence:
    """A sentence the scorer considers likely to read as AI-generated."""

    text: str
    suggestion: str
    index: int

    def to_dict(self) -> dict:
        return {"text": self.text, "suggestion": self.suggestion, "index": self.index}

    @classmethod
    def from_dict(cls, data: dict) -> "FlaggedSentence":
        return cls(
            text=data.get("text", ""),
            suggestion=data.get("suggestion", ""),
            index=int(data.get("index", 0)),
        )


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of one perplexity analysis."""

    score: float
    threshold: int
    flagged_sentences: List[FlaggedSentence] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "threshold": self.threshold,
            "flaggedSentences": [s.to_dict() for s in self.flagged_sentences],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoreResult":
        return cls(
            score=float(data["score"]),
            threshold=int(data["threshold"]),
            flagged_sentences=[
                FlaggedSentence.from_dict(s) for s in data.get("flaggedSentences", [])
            ],
        )


class OverrideStatus(Enum):
    """Lifecycle of a recorded override."""

    PENDING = "pending"            # Awaiting confirmation
    SUCCESSFUL = "successful"      # Proposal kept (auto-confirmed or user feedback)
    UNSUCCESSFUL = "unsuccessful"  # Proposal deleted


@dataclass
class OverrideRecord:
    """An override of a safety warning that reached a successful copy."""

    proposal_id: int
    ai_score: float
    threshold: int
    timestamp: float = field(default_factory=time.time)
    id: Optional[int] = None
    status: OverrideStatus = OverrideStatus.PENDING
    user_feedback: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "proposalId": self.proposal_id,
            "aiScore": self.ai_score,
            "threshold": self.threshold,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "userFeedback": self.user_feedback,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OverrideRecord":
        return cls(
            proposal_id=int(data["proposalId"]),
            ai_score=float(data["aiScore"]),
            threshold=int(data["threshold"]),
            timestamp=float(data.get("timestamp", time.time())),
            id=data.get("id"),
            status=OverrideStatus(data.get("status", "pending")),
            user_feedback=data.get("userFeedback"),
        )


class SuggestionDirection(Enum):
    """Which way the learner proposes moving the threshold."""

    INCREASE = "increase"
    DECREASE = "decrease"
    AT_MAXIMUM = "at_maximum"  # Increase warranted but already at 220


@dataclass(frozen=True)
class ThresholdSuggestion:
    """A proposed threshold change derived from override history."""

    current_threshold: int
    suggested_threshold: int
    successful_override_count: int
    average_override_score: float
    direction: SuggestionDirection

    @property
    def fingerprint(self) -> str:
        """Identifies the underlying condition; changes when its inputs change."""
        return (
            f"{self.direction.value}:{self.current_threshold}:"
            f"{self.suggested_threshold}:{self.successful_override_count}"
        )

    def to_dict(self) -> dict:
        return {
            "currentThreshold": self.current_threshold,
            "suggestedThreshold": self.suggested_threshold,
            "successfulOverrideCount": self.successful_override_count,
            "averageOverrideScore": self.average_override_score,
            "direction": self.direction.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ThresholdSuggestion":
        return cls(
            current_threshold=int(data["currentThreshold"]),
            suggested_threshold=int(data["suggestedThreshold"]),
            successful_override_count=int(data.get("successfulOverrideCount", 0)),
            average_override_score=float(data.get("averageOverrideScore", 0.0)),
            direction=SuggestionDirection(data["direction"]),
        )
