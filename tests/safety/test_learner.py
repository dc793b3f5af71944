"""Tests for threshold learning heuristics."""

from __future__ import annotations

import pytest

from copyguard.safety.learner import ThresholdLearner
from copyguard.safety.types import OverrideRecord, OverrideStatus, SuggestionDirection

NOW = 1_700_000_000.0
DAY = 86400.0


def _override(score: float, days_ago: float = 1, status=OverrideStatus.SUCCESSFUL, threshold=180):
    return OverrideRecord(
        proposal_id=1,
        ai_score=score,
        threshold=threshold,
        timestamp=NOW - days_ago * DAY,
        status=status,
    )


@pytest.fixture
def learner():
    return ThresholdLearner()


class TestIncrease:
    """Tests for the increase rule."""

    def test_three_near_threshold_suggests_increase(self, learner):
        history = [_override(185), _override(188, days_ago=5), _override(181, days_ago=20)]

        suggestion = learner.suggest(history, 180, now=NOW)

        assert suggestion.direction == SuggestionDirection.INCREASE
        assert suggestion.current_threshold == 180
        assert suggestion.suggested_threshold == 190
        assert suggestion.successful_override_count == 3
        assert suggestion.average_override_score == pytest.approx((185 + 188 + 181) / 3)

    def test_two_is_not_enough(self, learner):
        assert learner.suggest([_override(185), _override(186)], 180, now=NOW) is None

    def test_proximity_band_is_half_open(self, learner):
        """Scores at threshold count; scores at threshold + 10 do not."""
        history = [_override(180), _override(189.9), _override(190), _override(179.9)]

        assert len(learner.qualifying_overrides(history, 180, NOW)) == 2
        assert learner.suggest(history, 180, now=NOW) is None

    def test_outside_window_ignored(self, learner):
        history = [_override(185), _override(185), _override(185, days_ago=31)]
        assert learner.suggest(history, 180, now=NOW) is None

    def test_unsuccessful_ignored(self, learner):
        """Overrides whose proposal was deleted do not count."""
        history = [
            _override(185),
            _override(185, status=OverrideStatus.PENDING),
            _override(185, status=OverrideStatus.UNSUCCESSFUL),
        ]
        assert learner.suggest(history, 180, now=NOW) is None

        history.append(_override(186, status=OverrideStatus.PENDING))
        assert learner.suggest(history, 180, now=NOW).successful_override_count == 3

    def test_counted_since(self, learner):
        """Only overrides after a rejection count."""
        history = [_override(185, days_ago=d) for d in (1, 2, 10)]

        assert learner.suggest(history, 180, now=NOW, counted_since=NOW - 5 * DAY) is None
        assert learner.suggest(history, 180, now=NOW, counted_since=NOW - 11 * DAY) is not None

    def test_capped_at_maximum(self, learner):
        history = [_override(215, threshold=210)] * 3
        suggestion = learner.suggest(history, 210, now=NOW)
        assert suggestion.suggested_threshold == 220

    def test_at_maximum(self, learner):
        """At 220 the increase condition reports at_maximum."""
        history = [_override(222, threshold=220), _override(225, threshold=220), _override(229, threshold=220)]

        suggestion = learner.suggest(history, 220, now=NOW)

        assert suggestion.direction == SuggestionDirection.AT_MAXIMUM
        assert suggestion.current_threshold == 220
        assert suggestion.suggested_threshold == 220
        assert suggestion.successful_override_count == 3


class TestDecrease:
    """Tests for the decrease rule."""

    def test_inactivity_suggests_default(self, learner):
        suggestion = learner.suggest([], 200, now=NOW)

        assert suggestion.direction == SuggestionDirection.DECREASE
        assert suggestion.current_threshold == 200
        assert suggestion.suggested_threshold == 180
        assert suggestion.successful_override_count == 0
        assert suggestion.average_override_score == 0.0

    def test_not_at_default(self, learner):
        assert learner.suggest([], 180, now=NOW) is None

    def test_recent_override_blocks(self, learner):
        """Any override in the last 60 days blocks a decrease."""
        assert learner.suggest([_override(150, days_ago=45)], 200, now=NOW) is None

    def test_old_overrides_ignored(self, learner):
        suggestion = learner.suggest([_override(205, days_ago=61)], 200, now=NOW)
        assert suggestion.direction == SuggestionDirection.DECREASE

    def test_increase_takes_precedence(self, learner):
        history = [_override(205, threshold=200)] * 3
        suggestion = learner.suggest(history, 200, now=NOW)
        assert suggestion.direction == SuggestionDirection.INCREASE
