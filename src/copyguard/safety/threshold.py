"""Safety threshold validation and persistence.

The threshold is stored as a string-encoded integer under the
``safety_threshold`` settings key. ``ThresholdService.set_threshold`` is the
only write path: manual changes and accepted learner suggestions both go
through it, so the domain check cannot be bypassed.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..core.defaults import (
    SAFETY_THRESHOLD_KEY,
    SUGGESTION_DISMISSED_AT_KEY,
    SUGGESTION_LAST_DISMISSAL_KEY,
    THRESHOLD_DEFAULT,
    THRESHOLD_MAX,
    THRESHOLD_MIN,
    THRESHOLD_STEP,
)
from ..core.exceptions import InvalidThresholdError, ThresholdReadError

logger = logging.getLogger(__name__)


def is_valid_threshold(value: object) -> bool:
    """Check that a value is an int in [140, 220] and a multiple of 10."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return THRESHOLD_MIN <= value <= THRESHOLD_MAX and value % THRESHOLD_STEP == 0


def validate_threshold(value: object) -> int:
    """Return the threshold unchanged, or raise if it is outside the domain.

    Raises:
        InvalidThresholdError: If the value is not an int, outside
            [140, 220], or not a multiple of 10
    """
    if not is_valid_threshold(value):
        raise InvalidThresholdError(
            value,
            f"Threshold must be a multiple of {THRESHOLD_STEP} between "
            f"{THRESHOLD_MIN} and {THRESHOLD_MAX}, got {value!r}",
        )
    return value  # type: ignore[return-value]


def sanitize_stored_threshold(raw: Optional[str]) -> int:
    """Decode a persisted threshold.

    Missing, unparseable or off-step values fall back to the default;
    out-of-range values are clamped. Every reader therefore sees the same
    in-domain threshold.
    """
    if raw is None:
        return THRESHOLD_DEFAULT
    try:
        value = int(raw.strip())
    except (ValueError, AttributeError):
        return THRESHOLD_DEFAULT
    value = max(THRESHOLD_MIN, min(THRESHOLD_MAX, value))
    if value % THRESHOLD_STEP != 0:
        logger.warning(f"Ignoring off-step stored threshold {raw!r}, using {THRESHOLD_DEFAULT}")
        return THRESHOLD_DEFAULT
    return value


class SettingsStoreProtocol(Protocol):
    """Protocol for the key/value settings store."""

    async def get_setting(self, key: str) -> Optional[str]:
        """Get a setting value, or None if unset."""
        ...

    async def set_setting(self, key: str, value: str) -> None:
        """Insert or replace a setting."""
        ...

    async def delete_setting(self, key: str) -> None:
        """Remove a setting if present."""
        ...


class ThresholdService:
    """Reads and writes the safety threshold through the settings store."""

    def __init__(self, settings: SettingsStoreProtocol):
        self.settings = settings

    async def get_safety_threshold(self) -> int:
        """Get the current threshold (180 when unset).

        Raises:
            ThresholdReadError: If the settings store fails
        """
        try:
            raw = await self.settings.get_setting(SAFETY_THRESHOLD_KEY)
        except Exception as e:
            raise ThresholdReadError(f"Failed to read safety threshold: {e}") from e
        return sanitize_stored_threshold(raw)

    async def read_threshold_or_default(self) -> int:
        """Get the current threshold, falling back to 180 on any read failure."""
        try:
            return await self.get_safety_threshold()
        except ThresholdReadError as e:
            logger.warning(f"{e}; using default {THRESHOLD_DEFAULT}")
            return THRESHOLD_DEFAULT

    async def set_threshold(self, value: int) -> int:
        """Validate and persist a new threshold.

        Also clears any remembered suggestion dismissal so override
        counting starts fresh at the new threshold.

        Returns:
            The persisted threshold

        Raises:
            InvalidThresholdError: If the value is outside the domain
        """
        new_threshold = validate_threshold(value)
        old_threshold = await self.read_threshold_or_default()

        await self.settings.set_setting(SAFETY_THRESHOLD_KEY, str(new_threshold))
        await self.settings.delete_setting(SUGGESTION_DISMISSED_AT_KEY)
        await self.settings.delete_setting(SUGGESTION_LAST_DISMISSAL_KEY)

        logger.info(f"Safety threshold changed from {old_threshold} to {new_threshold}")
        return new_threshold

    async def apply_threshold_adjustment(self, new_threshold: int) -> None:
        """Backend-command name for ``set_threshold``."""
        await self.set_threshold(new_threshold)
