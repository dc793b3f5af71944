# copyguard Safety Gate
"""
Pre-copy AI-detectability check.

The gate reads the live threshold, asks the scorer for a perplexity score
and decides Pass or Warn:

- Warn iff ``score >= threshold`` (a score equal to the threshold warns)
- Threshold read failure: evaluate against the default (180)
- Scorer failure or timeout: Pass, so copying stays available when the
  scorer is unreachable

The gate has no other side effects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Protocol, Union

from ..core.defaults import THRESHOLD_DEFAULT
from .threshold import is_valid_threshold
from .types import HumanizationIntensity, ScoreResult

logger = logging.getLogger(__name__)


class ScoreProviderProtocol(Protocol):
    """Protocol for the perplexity scorer."""

    async def analyze_perplexity(self, text: str, threshold: int) -> ScoreResult:
        """Score text against a threshold.

        Implementations raise on network failure or timeout.
        """
        ...


class ThresholdReaderProtocol(Protocol):
    """Protocol for reading the active safety threshold."""

    async def get_safety_threshold(self) -> int:
        """Get the current threshold."""
        ...


@dataclass(frozen=True)
class Pass:
    """Content may be copied without a warning."""

    threshold: int
    humanization_intensity: HumanizationIntensity
    result: Optional[ScoreResult] = None  # None when the scorer was unavailable

    @property
    def scorer_available(self) -> bool:
        return self.result is not None


@dataclass(frozen=True)
class Warn:
    """Content scored at or above the threshold."""

    result: ScoreResult
    humanization_intensity: HumanizationIntensity

    @property
    def score(self) -> float:
        return self.result.score

    @property
    def threshold(self) -> int:
        return self.result.threshold


GateDecision = Union[Pass, Warn]


def should_warn(score: float, threshold: int) -> bool:
    """Decision rule: warn when the score reaches the threshold."""
    return score >= threshold


class Gate:
    """Decides whether content can be copied without a risk warning."""

    def __init__(
        self,
        scorer: ScoreProviderProtocol,
        thresholds: ThresholdReaderProtocol,
    ):
        self.scorer = scorer
        self.thresholds = thresholds

    async def read_threshold(self) -> int:
        """Read the active threshold, falling back to the default on failure."""
        try:
            threshold = await self.thresholds.get_safety_threshold()
        except Exception as e:
            logger.debug(f"Threshold read failed ({type(e).__name__}), using {THRESHOLD_DEFAULT}")
            return THRESHOLD_DEFAULT

        if not is_valid_threshold(threshold):
            logger.debug(f"Ignoring out-of-domain threshold {threshold!r}, using {THRESHOLD_DEFAULT}")
            return THRESHOLD_DEFAULT
        return threshold

    async def evaluate(
        self,
        content: str,
        humanization_intensity: HumanizationIntensity = HumanizationIntensity.MEDIUM,
    ) -> GateDecision:
        """Evaluate content against the current threshold.

        Args:
            content: Text the user wants to copy
            humanization_intensity: Intensity the content was generated with

        Returns:
            Pass or Warn
        """
        threshold = await self.read_threshold()

        try:
            result = await self.scorer.analyze_perplexity(content, threshold)
        except Exception:
            return Pass(threshold=threshold, humanization_intensity=humanization_intensity)

        # The result always reports the threshold this evaluation used
        if result.threshold != threshold:
            result = replace(result, threshold=threshold)

        if should_warn(result.score, threshold):
            return Warn(result=result, humanization_intensity=humanization_intensity)
        return Pass(
            threshold=threshold,
            humanization_intensity=humanization_intensity,
            result=result,
        )
