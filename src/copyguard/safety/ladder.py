"""Regeneration ladder for content that fails the safety gate.

Each regeneration escalates humanization intensity one rung
(off -> light -> medium -> heavy) and counts as one attempt. The ladder
disables itself after three attempts or once heavy has been used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..core.defaults import MAX_REGENERATION_ATTEMPTS
from ..core.exceptions import RegenerationExhaustedError
from .types import HumanizationIntensity

logger = logging.getLogger(__name__)

REASON_MAX_INTENSITY = "Already at maximum humanization intensity (heavy). Consider editing manually."
REASON_MAX_ATTEMPTS = "Maximum regeneration attempts reached. Consider editing manually."


def next_intensity(current: HumanizationIntensity) -> Optional[HumanizationIntensity]:
    """Next rung up from ``current``, or None at heavy."""
    if current.is_maximum:
        return None
    return current.escalate()


@dataclass
class RegenerationAttempt:
    """One regeneration within a generation session."""

    attempt_number: int
    humanization_intensity_used: HumanizationIntensity
    previous_score: Optional[float]
    new_score: Optional[float] = None

    @property
    def score_delta(self) -> Optional[float]:
        """Change in score (negative is an improvement). Informational only."""
        if self.previous_score is None or self.new_score is None:
            return None
        return self.new_score - self.previous_score


@dataclass(frozen=True)
class RegenerationAvailability:
    """Whether the Regenerate action is offered, and why not if it isn't."""

    enabled: bool
    next_intensity: Optional[HumanizationIntensity] = None
    reason: Optional[str] = None
    attempts_used: int = 0
    max_attempts: int = MAX_REGENERATION_ATTEMPTS


@dataclass
class RegenerationLadder:
    """Bounded, monotonic humanization escalation for one generation session."""

    starting_intensity: HumanizationIntensity = HumanizationIntensity.MEDIUM
    max_attempts: int = MAX_REGENERATION_ATTEMPTS
    attempts: List[RegenerationAttempt] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._current = self.starting_intensity

    @property
    def current_intensity(self) -> HumanizationIntensity:
        return self._current

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    def availability(self) -> RegenerationAvailability:
        """Describe whether another regeneration is allowed."""
        if self._current.is_maximum:
            return RegenerationAvailability(
                enabled=False,
                reason=REASON_MAX_INTENSITY,
                attempts_used=self.attempt_count,
                max_attempts=self.max_attempts,
            )
        if self.attempt_count >= self.max_attempts:
            return RegenerationAvailability(
                enabled=False,
                reason=REASON_MAX_ATTEMPTS,
                attempts_used=self.attempt_count,
                max_attempts=self.max_attempts,
            )
        return RegenerationAvailability(
            enabled=True,
            next_intensity=next_intensity(self._current),
            attempts_used=self.attempt_count,
            max_attempts=self.max_attempts,
        )

    @property
    def can_regenerate(self) -> bool:
        return self.availability().enabled

    def begin_attempt(self, previous_score: Optional[float]) -> RegenerationAttempt:
        """Escalate one rung and open a new attempt.

        Raises:
            RegenerationExhaustedError: If the ladder is disabled
        """
        availability = self.availability()
        if not availability.enabled:
            raise RegenerationExhaustedError(availability.reason or REASON_MAX_ATTEMPTS)

        self._current = self._current.escalate()
        attempt = RegenerationAttempt(
            attempt_number=self.attempt_count + 1,
            humanization_intensity_used=self._current,
            previous_score=previous_score,
        )
        self.attempts.append(attempt)
        logger.debug(
            f"Regeneration attempt {attempt.attempt_number}/{self.max_attempts} "
            f"at intensity {self._current.value}"
        )
        return attempt

    def complete_attempt(self, attempt: RegenerationAttempt, new_score: Optional[float]) -> None:
        """Record the score the regenerated content received."""
        attempt.new_score = new_score

    @property
    def last_attempt(self) -> Optional[RegenerationAttempt]:
        return self.attempts[-1] if self.attempts else None

    def reset(self, starting_intensity: Optional[HumanizationIntensity] = None) -> None:
        """Start a new generation session."""
        if starting_intensity is not None:
            self.starting_intensity = starting_intensity
        self._current = self.starting_intensity
        self.attempts.clear()
