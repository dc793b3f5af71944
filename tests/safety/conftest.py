"""Shared fixtures for safety tests.

In-memory stand-ins for the settings store, override store, scorer,
clipboard and regenerator.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional

import pytest

from copyguard.core.exceptions import ClipboardWriteError
from copyguard.safety.types import OverrideRecord, OverrideStatus, ScoreResult


class MockSettingsStore:
    """Mock key/value settings store."""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.fail_reads = False

    async def get_setting(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise RuntimeError("settings unavailable")
        return self.values.get(key)

    async def set_setting(self, key: str, value: str) -> None:
        self.values[key] = value

    async def delete_setting(self, key: str) -> None:
        self.values.pop(key, None)


class MockOverrideStore:
    """Mock override and proposal store."""

    def __init__(self):
        self.overrides: Dict[int, OverrideRecord] = {}
        self.proposals: set = set()
        self.fail_inserts = False
        self._next_id = 1

    def add(self, record: OverrideRecord) -> int:
        override_id = self._next_id
        self._next_id += 1
        self.overrides[override_id] = replace(record, id=override_id)
        return override_id

    async def insert_override(self, record: OverrideRecord) -> int:
        if self.fail_inserts:
            raise RuntimeError("disk full")
        return self.add(record)

    async def get_override(self, override_id: int) -> Optional[OverrideRecord]:
        return self.overrides.get(override_id)

    async def update_override_status(
        self,
        override_id: int,
        status: OverrideStatus,
        user_feedback: Optional[str] = None,
    ) -> None:
        record = self.overrides[override_id]
        record.status = status
        if user_feedback is not None:
            record.user_feedback = user_feedback

    async def list_overrides(
        self,
        since: Optional[float] = None,
        status: Optional[OverrideStatus] = None,
    ) -> List[OverrideRecord]:
        results = []
        for record in self.overrides.values():
            if since is not None and record.timestamp < since:
                continue
            if status is not None and record.status != status:
                continue
            results.append(record)
        return sorted(results, key=lambda r: r.timestamp, reverse=True)

    async def proposal_exists(self, proposal_id: int) -> bool:
        return proposal_id in self.proposals


class MockScorer:
    """Mock perplexity scorer.

    Scores are consumed in order; the last one repeats.
    """

    def __init__(self, *scores: float):
        self.scores = list(scores)
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None

    async def analyze_perplexity(self, text: str, threshold: int) -> ScoreResult:
        self.calls.append((text, threshold))
        if self.error is not None:
            raise self.error
        score = self.scores.pop(0) if len(self.scores) > 1 else self.scores[0]
        return ScoreResult(score=score, threshold=threshold)


class MockThresholdReader:
    """Mock threshold source."""

    def __init__(self, threshold: int = 180):
        self.threshold = threshold
        self.error: Optional[Exception] = None

    async def get_safety_threshold(self) -> int:
        if self.error is not None:
            raise self.error
        return self.threshold


class MockClipboard:
    """Mock clipboard that can fail a number of writes."""

    def __init__(self):
        self.writes: List[str] = []
        self.failures_remaining = 0

    async def write_text(self, text: str) -> None:
        if self.failures_remaining > 0:
            self.failures_remaining -= 1
            raise ClipboardWriteError("clipboard busy")
        self.writes.append(text)


class MockRecorder:
    """Mock audit recorder."""

    def __init__(self):
        self.records: List[OverrideRecord] = []
        self.error: Optional[Exception] = None

    async def record(self, record: OverrideRecord) -> int:
        if self.error is not None:
            raise self.error
        self.records.append(record)
        return len(self.records)


class MockRegenerator:
    """Mock regenerator that tags content with the intensity used."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None

    async def regenerate(self, content, intensity, attempt_number) -> str:
        self.calls.append((content, intensity, attempt_number))
        if self.error is not None:
            raise self.error
        return f"{content} [{intensity.value}]"


@pytest.fixture
def settings_store():
    """Create an empty settings store."""
    return MockSettingsStore()


@pytest.fixture
def override_store():
    """Create an empty override store."""
    return MockOverrideStore()


@pytest.fixture
def threshold_reader():
    """Create a threshold reader at the default threshold."""
    return MockThresholdReader()


@pytest.fixture
def clipboard():
    """Create a working clipboard."""
    return MockClipboard()


@pytest.fixture
def recorder():
    """Create a working audit recorder."""
    return MockRecorder()


@pytest.fixture
def regenerator():
    """Create a working regenerator."""
    return MockRegenerator()


@pytest.fixture
def scorer():
    """Create a scorer returning a below-default score."""
    return MockScorer(150.0)
