"""
copyguard Backend Client - safety commands over HTTP.

Each command is a JSON POST to ``{base_url}/{command}``; the response
body is the JSON-encoded return value (empty for commands returning
nothing).

The client doubles as the gate's scorer and threshold reader and as the
workflow's audit recorder, mapping transport failures onto the error each
caller expects:

- analyze_perplexity -> ScorerUnavailableError (gate passes)
- get_safety_threshold -> ThresholdReadError (gate uses 180)
- record_safety_override -> AuditWriteError (copy is kept)
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from ..core.defaults import BACKEND_URL, REQUEST_TIMEOUT_SECONDS
from ..core.exceptions import (
    AuditWriteError,
    BackendError,
    ScorerUnavailableError,
    ThresholdReadError,
)
from ..safety.threshold import validate_threshold
from ..safety.types import OverrideRecord, ScoreResult, ThresholdSuggestion

logger = logging.getLogger(__name__)


@dataclass
class BackendClient:
    """
    Async client for the safety backend commands.

    Example:
        client = BackendClient("http://127.0.0.1:8470")
        gate = Gate(scorer=client, thresholds=client)
    """

    base_url: str = BACKEND_URL
    request_timeout: float = REQUEST_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")

    async def _invoke(self, command: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """POST a command and decode its JSON result.

        Raises:
            BackendError: On connection failure, timeout, non-200 status or
                an undecodable body
        """
        url = f"{self.base_url}/{command}"
        try:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    url,
                    json=payload or {},
                    headers={"Content-Type": "application/json"},
                ) as resp:
                    body = await resp.text()
                    if resp.status != 200:
                        raise BackendError(f"{command} returned HTTP {resp.status}: {body}")
        except aiohttp.ClientError as e:
            raise BackendError(f"{command} connection error: {e}") from e
        except asyncio.TimeoutError as e:
            raise BackendError(f"{command} timed out after {self.request_timeout}s") from e

        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise BackendError(f"{command} returned invalid JSON") from e

    # -------------------------------------------------------------------------
    # THRESHOLD
    # -------------------------------------------------------------------------

    async def get_safety_threshold(self) -> int:
        """Raises ThresholdReadError when the backend cannot be read."""
        try:
            value = await self._invoke("get_safety_threshold")
            return int(value)
        except (BackendError, TypeError, ValueError) as e:
            raise ThresholdReadError(f"get_safety_threshold failed: {e}") from e

    async def apply_threshold_adjustment(self, new_threshold: int) -> None:
        """Validate locally, then persist a new threshold."""
        validate_threshold(new_threshold)
        await self._invoke("apply_threshold_adjustment", {"newThreshold": new_threshold})
        logger.info(f"Threshold adjustment applied: {new_threshold}")

    async def dismiss_threshold_suggestion(self) -> None:
        await self._invoke("dismiss_threshold_suggestion")

    async def check_threshold_learning(self) -> Optional[ThresholdSuggestion]:
        data = await self._invoke("check_threshold_learning")
        return ThresholdSuggestion.from_dict(data) if data else None

    async def check_threshold_decrease(self) -> Optional[ThresholdSuggestion]:
        data = await self._invoke("check_threshold_decrease")
        return ThresholdSuggestion.from_dict(data) if data else None

    # -------------------------------------------------------------------------
    # SCORING
    # -------------------------------------------------------------------------

    async def analyze_perplexity(self, text: str, threshold: int) -> ScoreResult:
        """Raises ScorerUnavailableError on any failure."""
        try:
            data = await self._invoke("analyze_perplexity", {"text": text, "threshold": threshold})
            return ScoreResult.from_dict(data)
        except (BackendError, KeyError, TypeError, ValueError) as e:
            raise ScorerUnavailableError(f"analyze_perplexity failed: {e}") from e

    # -------------------------------------------------------------------------
    # AUDIT
    # -------------------------------------------------------------------------

    async def record_safety_override(self, proposal_id: int, ai_score: float, threshold: int) -> int:
        """Raises AuditWriteError when the override cannot be stored."""
        try:
            override_id = await self._invoke(
                "record_safety_override",
                {"proposalId": proposal_id, "aiScore": ai_score, "threshold": threshold},
            )
            return int(override_id)
        except (BackendError, TypeError, ValueError) as e:
            raise AuditWriteError(f"record_safety_override failed: {e}") from e

    async def record(self, record: OverrideRecord) -> int:
        return await self.record_safety_override(record.proposal_id, record.ai_score, record.threshold)
