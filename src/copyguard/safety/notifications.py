"""Threshold adjustment notifications.

Surfaces at most one learner suggestion and records the user's answer:

- accept: persist the suggested threshold through ThresholdService
- reject: reset the override counter (only later overrides count); a
  rejected decrease is also suppressed for the cooldown
- remind later: suppress the same condition for the cooldown

A suppressed suggestion re-fires as soon as its underlying condition
changes (different direction, thresholds or override count).
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Optional

from ..core.defaults import (
    INACTIVITY_WINDOW_DAYS,
    LEARNING_WINDOW_DAYS,
    SECONDS_PER_DAY,
    SUGGESTION_COOLDOWN_SECONDS,
    SUGGESTION_DISMISSED_AT_KEY,
    SUGGESTION_LAST_DISMISSAL_KEY,
)
from ..core.exceptions import InvalidTransitionError, StaleSuggestionError
from .learner import ThresholdLearner
from .overrides import OverrideStoreProtocol
from .threshold import SettingsStoreProtocol, ThresholdService
from .types import SuggestionDirection, ThresholdSuggestion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SuggestionDismissal:
    """The user's last non-accepting answer to a suggestion."""

    fingerprint: str
    dismissed_at: float
    kind: str  # "rejected" | "deferred"

    def to_dict(self) -> dict:
        return {
            "fingerprint": self.fingerprint,
            "dismissed_at": self.dismissed_at,
            "kind": self.kind,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SuggestionDismissal":
        return cls(
            fingerprint=data["fingerprint"],
            dismissed_at=float(data["dismissed_at"]),
            kind=data.get("kind", "rejected"),
        )


class ThresholdNotificationService:
    """Decides which suggestion (if any) to show and applies the answer."""

    def __init__(
        self,
        thresholds: ThresholdService,
        settings: SettingsStoreProtocol,
        overrides: OverrideStoreProtocol,
        learner: Optional[ThresholdLearner] = None,
        cooldown_seconds: float = SUGGESTION_COOLDOWN_SECONDS,
    ):
        self.thresholds = thresholds
        self.settings = settings
        self.overrides = overrides
        self.learner = learner or ThresholdLearner()
        self.cooldown_seconds = cooldown_seconds

    async def _counted_since(self) -> Optional[float]:
        raw = await self.settings.get_setting(SUGGESTION_DISMISSED_AT_KEY)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed dismissal timestamp {raw!r}")
            return None

    async def get_last_dismissal(self) -> Optional[SuggestionDismissal]:
        raw = await self.settings.get_setting(SUGGESTION_LAST_DISMISSAL_KEY)
        if raw is None:
            return None
        try:
            return SuggestionDismissal.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring malformed suggestion dismissal record")
            return None

    def is_suppressed(
        self,
        suggestion: ThresholdSuggestion,
        dismissal: Optional[SuggestionDismissal],
        now: float,
    ) -> bool:
        """Check whether a dismissal still covers this suggestion."""
        if dismissal is None:
            return False
        if dismissal.fingerprint != suggestion.fingerprint:
            return False
        # After a rejection only newer overrides count, so a re-fired increase has new inputs
        if dismissal.kind == "rejected" and suggestion.direction != SuggestionDirection.DECREASE:
            return False
        return now - dismissal.dismissed_at < self.cooldown_seconds

    async def check(self, now: Optional[float] = None) -> Optional[ThresholdSuggestion]:
        """Get the suggestion to surface, or None."""
        now = time.time() if now is None else now
        current = await self.thresholds.read_threshold_or_default()

        lookback_days = max(LEARNING_WINDOW_DAYS, INACTIVITY_WINDOW_DAYS)
        history = await self.overrides.list_overrides(since=now - lookback_days * SECONDS_PER_DAY)
        counted_since = await self._counted_since()

        suggestion = self.learner.suggest(history, current, now=now, counted_since=counted_since)
        if suggestion is None:
            return None

        if self.is_suppressed(suggestion, await self.get_last_dismissal(), now):
            logger.debug(f"Suggestion {suggestion.fingerprint} suppressed by dismissal")
            return None
        return suggestion

    async def accept(self, suggestion: ThresholdSuggestion) -> int:
        """Apply the suggested threshold via the regular settings path.

        Raises:
            InvalidTransitionError: For an at-maximum notice
            StaleSuggestionError: If the threshold changed since the suggestion
                was computed
            InvalidThresholdError: If the suggested value is outside the domain
        """
        if suggestion.direction == SuggestionDirection.AT_MAXIMUM:
            raise InvalidTransitionError("accept an at-maximum notice", "AtMaximum")

        current = await self.thresholds.read_threshold_or_default()
        if current != suggestion.current_threshold:
            raise StaleSuggestionError(suggestion.current_threshold, current)

        new_threshold = await self.thresholds.set_threshold(suggestion.suggested_threshold)
        logger.info(f"Threshold suggestion accepted: {suggestion.current_threshold} -> {new_threshold}")
        return new_threshold

    async def _remember(self, suggestion: ThresholdSuggestion, kind: str, now: float) -> None:
        dismissal = SuggestionDismissal(
            fingerprint=suggestion.fingerprint, dismissed_at=now, kind=kind
        )
        await self.settings.set_setting(SUGGESTION_LAST_DISMISSAL_KEY, json.dumps(dismissal.to_dict()))

    async def reject(self, suggestion: ThresholdSuggestion, now: Optional[float] = None) -> None:
        """Keep the current threshold and restart override counting."""
        now = time.time() if now is None else now
        await self.settings.set_setting(SUGGESTION_DISMISSED_AT_KEY, str(now))
        await self._remember(suggestion, "rejected", now)
        logger.info(f"Threshold suggestion rejected at {suggestion.current_threshold}")

    async def remind_later(self, suggestion: ThresholdSuggestion, now: Optional[float] = None) -> None:
        """Defer the suggestion for the cooldown period."""
        now = time.time() if now is None else now
        await self._remember(suggestion, "deferred", now)
        logger.debug(f"Threshold suggestion {suggestion.fingerprint} deferred")

    async def dismiss_threshold_suggestion(self, suggestion: ThresholdSuggestion) -> None:
        """Backend-command name for ``reject``."""
        await self.reject(suggestion)
