"""Override audit trail and its success lifecycle.

Each completed override is stored as ``pending``. It later becomes
``successful`` once its proposal has survived the confirmation window
(or the user confirms it), or ``unsuccessful`` when the proposal is
deleted. Unsuccessful overrides do not feed threshold learning.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Protocol, Tuple

from ..core.defaults import OVERRIDE_CONFIRM_DAYS, SECONDS_PER_DAY
from ..core.exceptions import AuditWriteError
from .types import OverrideRecord, OverrideStatus

logger = logging.getLogger(__name__)


class OverrideStoreProtocol(Protocol):
    """Protocol for override persistence required by OverrideLedger."""

    async def insert_override(self, record: OverrideRecord) -> int:
        """Insert an override. Returns its id."""
        ...

    async def get_override(self, override_id: int) -> Optional[OverrideRecord]:
        """Get an override by id."""
        ...

    async def update_override_status(
        self,
        override_id: int,
        status: OverrideStatus,
        user_feedback: Optional[str] = None,
    ) -> None:
        """Update status (and optionally feedback) of an override."""
        ...

    async def list_overrides(
        self,
        since: Optional[float] = None,
        status: Optional[OverrideStatus] = None,
    ) -> List[OverrideRecord]:
        """List overrides newest first, optionally filtered."""
        ...

    async def proposal_exists(self, proposal_id: int) -> bool:
        """Check whether a proposal still exists."""
        ...


class OverrideLedger:
    """Append-only override audit trail.

    Satisfies the workflow's audit recorder interface via ``record``.
    """

    def __init__(
        self,
        store: OverrideStoreProtocol,
        confirm_after_days: int = OVERRIDE_CONFIRM_DAYS,
    ):
        self.store = store
        self.confirm_after_days = confirm_after_days

    async def record(self, record: OverrideRecord) -> int:
        """Persist a completed override as pending.

        Raises:
            AuditWriteError: If the store rejects the write
        """
        pending = OverrideRecord(
            proposal_id=record.proposal_id,
            ai_score=record.ai_score,
            threshold=record.threshold,
            timestamp=record.timestamp,
            status=OverrideStatus.PENDING,
        )
        try:
            override_id = await self.store.insert_override(pending)
        except Exception as e:
            raise AuditWriteError(f"Failed to record override: {e}") from e
        return override_id

    async def confirm(self, override_id: int, feedback: Optional[str] = None) -> None:
        """Mark an override successful on explicit user feedback.

        Raises:
            ValueError: If the override does not exist
        """
        existing = await self.store.get_override(override_id)
        if existing is None:
            raise ValueError(f"Override {override_id} not found")
        await self.store.update_override_status(override_id, OverrideStatus.SUCCESSFUL, feedback)

    async def mark_proposal_unsuccessful(self, proposal_id: int) -> int:
        """Mark pending overrides of a deleted proposal unsuccessful.

        Returns the number of overrides updated.
        """
        pending = await self.store.list_overrides(status=OverrideStatus.PENDING)
        updated = 0
        for record in pending:
            if record.proposal_id != proposal_id or record.id is None:
                continue
            await self.store.update_override_status(record.id, OverrideStatus.UNSUCCESSFUL)
            updated += 1
        return updated

    async def auto_confirm_stale(self, now: Optional[float] = None) -> Tuple[int, int]:
        """Resolve pending overrides older than the confirmation window.

        Overrides whose proposal still exists become successful, the rest
        unsuccessful. Individual failures are logged and skipped.

        Returns:
            (successful_count, unsuccessful_count)
        """
        now = time.time() if now is None else now
        cutoff = now - self.confirm_after_days * SECONDS_PER_DAY

        pending = await self.store.list_overrides(status=OverrideStatus.PENDING)
        successful = 0
        unsuccessful = 0

        for record in pending:
            if record.timestamp > cutoff or record.id is None:
                continue
            try:
                if await self.store.proposal_exists(record.proposal_id):
                    await self.store.update_override_status(record.id, OverrideStatus.SUCCESSFUL)
                    successful += 1
                else:
                    await self.store.update_override_status(record.id, OverrideStatus.UNSUCCESSFUL)
                    unsuccessful += 1
            except Exception as e:
                logger.warning(f"Failed to resolve override {record.id}: {e}")
                continue

        if successful or unsuccessful:
            logger.info(
                f"Auto-confirmed overrides: {successful} successful, {unsuccessful} unsuccessful"
            )
        return successful, unsuccessful

    async def history(self, since: Optional[float] = None) -> List[OverrideRecord]:
        """All overrides, newest first."""
        return await self.store.list_overrides(since=since)
