"""Tests for threshold adjustment notifications."""

from __future__ import annotations

import pytest

from copyguard.core.defaults import (
    SAFETY_THRESHOLD_KEY,
    SUGGESTION_DISMISSED_AT_KEY,
    SUGGESTION_LAST_DISMISSAL_KEY,
)
from copyguard.core.exceptions import InvalidTransitionError, StaleSuggestionError
from copyguard.safety.gate import Gate, Pass
from copyguard.safety.notifications import ThresholdNotificationService
from copyguard.safety.threshold import ThresholdService
from copyguard.safety.types import (
    OverrideRecord,
    SuggestionDirection,
    ThresholdSuggestion,
)

NOW = 1_700_000_000.0
DAY = 86400.0


def _add(store, score: float, timestamp: float) -> None:
    store.add(OverrideRecord(proposal_id=1, ai_score=score, threshold=180, timestamp=timestamp))


@pytest.fixture
def thresholds(settings_store):
    return ThresholdService(settings_store)


@pytest.fixture
def service(thresholds, settings_store, override_store):
    return ThresholdNotificationService(
        thresholds, settings_store, override_store, cooldown_seconds=7 * DAY
    )


@pytest.fixture
def near_misses(override_store):
    """Three overrides just above the default threshold."""
    for i, score in enumerate((185.0, 188.0, 181.0)):
        _add(override_store, score, NOW - (i + 1) * DAY)
    return override_store


class TestCheck:
    """Tests for choosing the suggestion to show."""

    @pytest.mark.asyncio
    async def test_nothing_to_suggest(self, service):
        assert await service.check(now=NOW) is None

    @pytest.mark.asyncio
    async def test_increase(self, service, near_misses):
        suggestion = await service.check(now=NOW)

        assert suggestion.direction == SuggestionDirection.INCREASE
        assert suggestion.suggested_threshold == 190

    @pytest.mark.asyncio
    async def test_decrease_after_inactivity(self, service, settings_store):
        settings_store.values[SAFETY_THRESHOLD_KEY] = "200"

        suggestion = await service.check(now=NOW)

        assert suggestion.direction == SuggestionDirection.DECREASE
        assert suggestion.suggested_threshold == 180

    @pytest.mark.asyncio
    async def test_malformed_dismissal_ignored(self, service, settings_store, near_misses):
        settings_store.values[SUGGESTION_LAST_DISMISSAL_KEY] = "not json"
        settings_store.values[SUGGESTION_DISMISSED_AT_KEY] = "yesterday"

        assert await service.check(now=NOW) is not None

    @pytest.mark.asyncio
    async def test_off_step_setting_matches_gate(
        self, service, thresholds, settings_store, near_misses, scorer
    ):
        """The gate and the learner read the same threshold for an off-step row."""
        settings_store.values[SAFETY_THRESHOLD_KEY] = "155"
        scorer.scores = [160.0]

        decision = await Gate(scorer=scorer, thresholds=thresholds).evaluate("text")
        suggestion = await service.check(now=NOW)

        assert decision.threshold == 180
        assert suggestion.current_threshold == 180
        assert suggestion.suggested_threshold == 190
        assert await service.accept(suggestion) == 190


class TestAccept:
    """Tests for accepting a suggestion."""

    @pytest.mark.asyncio
    async def test_accept_applies_threshold(self, service, thresholds, near_misses, scorer):
        """Accepting 190 makes the gate evaluate against 190."""
        suggestion = await service.check(now=NOW)

        assert await service.accept(suggestion) == 190

        scorer.scores = [185.0]
        gate = Gate(scorer=scorer, thresholds=thresholds)
        decision = await gate.evaluate("text")
        assert isinstance(decision, Pass)
        assert decision.threshold == 190
        assert await service.check(now=NOW) is None

    @pytest.mark.asyncio
    async def test_accept_clears_dismissal(self, service, settings_store, near_misses):
        suggestion = await service.check(now=NOW)
        await service.remind_later(suggestion, now=NOW)

        await service.accept(suggestion)

        assert SUGGESTION_LAST_DISMISSAL_KEY not in settings_store.values

    @pytest.mark.asyncio
    async def test_at_maximum_cannot_be_accepted(self, service, settings_store):
        suggestion = ThresholdSuggestion(220, 220, 3, 225.0, SuggestionDirection.AT_MAXIMUM)

        with pytest.raises(InvalidTransitionError):
            await service.accept(suggestion)
        assert SAFETY_THRESHOLD_KEY not in settings_store.values

    @pytest.mark.asyncio
    async def test_stale_suggestion_rejected(self, service, thresholds, settings_store, near_misses):
        """A suggestion computed at 180 cannot undo a later manual change to 200."""
        suggestion = await service.check(now=NOW)
        await thresholds.set_threshold(200)

        with pytest.raises(StaleSuggestionError) as exc_info:
            await service.accept(suggestion)

        assert (exc_info.value.expected, exc_info.value.current) == (180, 200)
        assert settings_store.values[SAFETY_THRESHOLD_KEY] == "200"


class TestDismissal:
    """Tests for reject and remind-later."""

    @pytest.mark.asyncio
    async def test_reject_resets_counter(self, service, settings_store, override_store, near_misses):
        """After rejecting, only newer overrides count."""
        suggestion = await service.check(now=NOW)

        await service.reject(suggestion, now=NOW)

        assert float(settings_store.values[SUGGESTION_DISMISSED_AT_KEY]) == NOW
        assert settings_store.values.get(SAFETY_THRESHOLD_KEY) is None
        assert await service.check(now=NOW + 60) is None

        for offset in (10, 20, 30):
            _add(override_store, 186.0, NOW + offset)

        refired = await service.check(now=NOW + 100)
        assert refired.direction == SuggestionDirection.INCREASE
        assert refired.successful_override_count == 3

    @pytest.mark.asyncio
    async def test_rejected_decrease_waits_for_cooldown(self, service, settings_store):
        settings_store.values[SAFETY_THRESHOLD_KEY] = "200"
        suggestion = await service.check(now=NOW)

        await service.reject(suggestion, now=NOW)

        assert await service.check(now=NOW + DAY) is None
        assert await service.check(now=NOW + 8 * DAY) is not None

    @pytest.mark.asyncio
    async def test_remind_later_suppresses_until_cooldown(self, service, near_misses):
        suggestion = await service.check(now=NOW)

        await service.remind_later(suggestion, now=NOW)

        assert await service.check(now=NOW + DAY) is None
        assert await service.check(now=NOW + 8 * DAY) == suggestion

    @pytest.mark.asyncio
    async def test_remind_later_refires_on_change(self, service, near_misses):
        """A new qualifying override changes the condition."""
        suggestion = await service.check(now=NOW)
        await service.remind_later(suggestion, now=NOW)

        _add(near_misses, 183.0, NOW + 60)
        refired = await service.check(now=NOW + 120)

        assert refired is not None
        assert refired.successful_override_count == 4

    @pytest.mark.asyncio
    async def test_dismissal_recorded(self, service, near_misses):
        suggestion = await service.check(now=NOW)
        await service.remind_later(suggestion, now=NOW)

        dismissal = await service.get_last_dismissal()

        assert dismissal.fingerprint == suggestion.fingerprint
        assert dismissal.kind == "deferred"
        assert dismissal.dismissed_at == NOW
