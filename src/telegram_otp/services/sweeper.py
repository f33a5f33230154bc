"""Expiry sweeper — periodically purges stale OTP records."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from telegram_otp.models.records import utc_now
from telegram_otp.storage.otp_store import OTPStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Background task deleting OTP records older than the TTL.

    Runs every *interval* seconds on the application's event loop. The
    session store is never touched.
    """

    def __init__(
        self,
        otp_store: OTPStore,
        ttl: timedelta,
        interval: float,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = otp_store
        self._ttl = ttl
        self._interval = interval
        self._clock = clock
        self._task: asyncio.Task | None = None

    def sweep(self) -> int:
        """Delete every expired record and return how many were removed."""
        now = self._clock()
        removed = 0
        for record in self._store.scan():
            if record.is_expired(now, self._ttl):
                self._store.delete(record.recipient_id)
                removed += 1
        if removed:
            logger.info("Swept %d expired OTP(s); %d remaining", removed, len(self._store))
        return removed

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="otp-expiry-sweeper")
        logger.info("Expiry sweeper started (every %ss)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Expiry sweep failed")
