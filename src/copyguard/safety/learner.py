"""Rule-based threshold learning from override history.

Increase: at least 3 overrides in the last 30 days scored in
[threshold, threshold + 10). The user keeps overriding warnings that only
just tripped, so suggest one step up (capped at 220; at 220 report
AtMaximum instead).

Decrease: no overrides at all in the last 60 days while the threshold is
above the default. Suggest resetting straight to 180.

Increase takes precedence; at most one suggestion is returned.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..core.defaults import (
    INACTIVITY_WINDOW_DAYS,
    LEARNING_WINDOW_DAYS,
    MIN_QUALIFYING_OVERRIDES,
    SECONDS_PER_DAY,
    THRESHOLD_DEFAULT,
    THRESHOLD_MAX,
    THRESHOLD_PROXIMITY,
    THRESHOLD_STEP,
)
from .types import OverrideRecord, OverrideStatus, SuggestionDirection, ThresholdSuggestion

logger = logging.getLogger(__name__)


@dataclass
class ThresholdLearner:
    """Evaluates override history against fixed heuristics."""

    learning_window_days: int = LEARNING_WINDOW_DAYS
    inactivity_window_days: int = INACTIVITY_WINDOW_DAYS
    proximity: int = THRESHOLD_PROXIMITY
    min_qualifying_overrides: int = MIN_QUALIFYING_OVERRIDES

    def qualifying_overrides(
        self,
        override_history: Iterable[OverrideRecord],
        current_threshold: int,
        now: float,
        counted_since: Optional[float] = None,
    ) -> List[OverrideRecord]:
        """Overrides that count toward an increase.

        Args:
            override_history: Overrides in any order
            current_threshold: Active threshold
            now: Reference time (epoch seconds)
            counted_since: Only count overrides strictly after this time
                (set when the user rejected the previous suggestion)
        """
        window_start = now - self.learning_window_days * SECONDS_PER_DAY
        upper = current_threshold + self.proximity

        return [
            o for o in override_history
            if o.status != OverrideStatus.UNSUCCESSFUL
            and window_start <= o.timestamp <= now
            and current_threshold <= o.ai_score < upper
            and (counted_since is None or o.timestamp > counted_since)
        ]

    def suggest(
        self,
        override_history: Iterable[OverrideRecord],
        current_threshold: int,
        now: Optional[float] = None,
        counted_since: Optional[float] = None,
    ) -> Optional[ThresholdSuggestion]:
        """Propose a threshold change, or None when no rule applies."""
        now = time.time() if now is None else now
        history = list(override_history)

        qualifying = self.qualifying_overrides(history, current_threshold, now, counted_since)
        if len(qualifying) >= self.min_qualifying_overrides:
            average = sum(o.ai_score for o in qualifying) / len(qualifying)

            if current_threshold >= THRESHOLD_MAX:
                logger.debug(f"Threshold at maximum ({THRESHOLD_MAX}), reporting at_maximum")
                return ThresholdSuggestion(
                    current_threshold=current_threshold,
                    suggested_threshold=current_threshold,
                    successful_override_count=len(qualifying),
                    average_override_score=average,
                    direction=SuggestionDirection.AT_MAXIMUM,
                )

            suggested = min(current_threshold + THRESHOLD_STEP, THRESHOLD_MAX)
            logger.info(
                f"Learning opportunity: {len(qualifying)} overrides near {current_threshold}, "
                f"suggesting {suggested}"
            )
            return ThresholdSuggestion(
                current_threshold=current_threshold,
                suggested_threshold=suggested,
                successful_override_count=len(qualifying),
                average_override_score=average,
                direction=SuggestionDirection.INCREASE,
            )

        if current_threshold > THRESHOLD_DEFAULT:
            inactivity_start = now - self.inactivity_window_days * SECONDS_PER_DAY
            recent = [o for o in history if inactivity_start <= o.timestamp <= now]
            if not recent:
                logger.info(
                    f"No overrides in {self.inactivity_window_days} days, "
                    f"suggesting reset to {THRESHOLD_DEFAULT}"
                )
                return ThresholdSuggestion(
                    current_threshold=current_threshold,
                    suggested_threshold=THRESHOLD_DEFAULT,
                    successful_override_count=0,
                    average_override_score=0.0,
                    direction=SuggestionDirection.DECREASE,
                )

        logger.debug(
            f"No learning opportunity: {len(qualifying)} overrides "
            f"(need {self.min_qualifying_overrides})"
        )
        return None
