# fleet/client/poller.py

"""
poller.py

Periodic refresh of the machine list for the dashboard.

One fetch on start, then one per interval. The fetch itself runs in a worker
thread; if it is still running when the next tick comes, that tick is
skipped, so slow responses never pile up. Failures are kept as an error
state until a later fetch (periodic or refresh()) succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .constants import LOAD_MACHINES_ERROR, MACHINES_REFRESH_SEC
from .models import Machine

logger = logging.getLogger(__name__)

FetchMachines = Callable[[], List[Machine]]


class MachinePoller:
    def __init__(
        self,
        fetch: FetchMachines,
        *,
        interval_sec: float = MACHINES_REFRESH_SEC,
        on_update: Callable[[List[Machine]], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._fetch = fetch
        self._interval = interval_sec
        self._on_update = on_update
        self._on_error = on_error

        self._stop: asyncio.Event | None = None
        self._loop_task: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None

        self.machines: List[Machine] = []
        self.error: Optional[str] = None
        self.is_loading: bool = False
        self.last_updated: Optional[datetime] = None
        self.skipped_ticks: int = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    # ---- lifecycle ----

    def start(self) -> None:
        """
        Must be called from inside a running event loop.
        """
        if self.running:
            return
        self._stop = asyncio.Event()
        self._loop_task = asyncio.create_task(self._run(), name="machine-poller")

    async def stop(self) -> None:
        if self._stop is not None:
            self._stop.set()

        if self._loop_task is not None:
            await self._loop_task
            self._loop_task = None

        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
            try:
                await self._inflight
            except asyncio.CancelledError:
                pass
        self._inflight = None

    async def refresh(self) -> None:
        """
        Manual retry: fetch now, or wait for the fetch already in flight.
        """
        task = self._inflight if self._inflight is not None and not self._inflight.done() else self._kick()
        await task

    # ---- internals ----

    async def _run(self) -> None:
        stop = self._stop
        while not stop.is_set():
            if self._inflight is not None and not self._inflight.done():
                self.skipped_ticks += 1
                logger.debug("Previous machine fetch still running, tick skipped")
            else:
                self._kick()

            # sleep that can be interrupted by stop()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    def _kick(self) -> asyncio.Task:
        self._inflight = asyncio.create_task(self._fetch_once())
        return self._inflight

    async def _fetch_once(self) -> None:
        self.is_loading = True
        try:
            machines = await asyncio.to_thread(self._fetch)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Failed to fetch machines: %s", e)
            self.error = LOAD_MACHINES_ERROR
            if self._on_error is not None:
                self._on_error(self.error)
        else:
            self.machines = list(machines)
            self.error = None
            self.last_updated = datetime.now(timezone.utc)
            if self._on_update is not None:
                self._on_update(self.machines)
        finally:
            self.is_loading = False
