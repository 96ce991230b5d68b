"""Periodic NETIO reader - keeps the latest snapshot fresh in the background"""
import asyncio
import enum
import inspect
import logging
import threading
from typing import Any, Awaitable, Callable

from netio.errors import NetioError
from netio.model import Snapshot

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[Snapshot], Awaitable[None] | None]
ErrorCallback = Callable[[NetioError], Awaitable[None] | None]


class SnapshotCache:
    """
    Holds the most recent successfully decoded snapshot.

    Snapshots are immutable, so replacing the reference under the lock is
    enough for readers on any thread to see either the old or the new one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot: Snapshot | None = None

    def get(self) -> Snapshot | None:
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: Snapshot) -> None:
        with self._lock:
            self._snapshot = snapshot


class PollerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class SnapshotPoller:
    """
    Reads the device every `interval` seconds and reports each result.

    Failed reads are handed to the error callback and the loop carries on;
    a device that reboots or drops off the network for a while does not
    end the session. Fetches never overlap: the next wait only starts after
    the previous fetch and its callback have finished.
    """

    def __init__(self, client, interval: float = 1.0, cache: SnapshotCache | None = None):
        """
        Initialize the poller.

        Args:
            client: NetioClient (or anything with an async fetch_snapshot())
            interval: Seconds to wait before each fetch (default: 1.0)
            cache: Shared cache, a new one is created when omitted
        """
        self.client = client
        self.interval = interval
        self.cache = cache or SnapshotCache()
        self.state = PollerState.IDLE
        self._task: asyncio.Task | None = None
        self._on_update: UpdateCallback | None = None
        self._on_error: ErrorCallback | None = None

    @property
    def snapshot(self) -> Snapshot | None:
        return self.cache.get()

    @property
    def running(self) -> bool:
        return self.state == PollerState.RUNNING

    def start(self, on_update: UpdateCallback, on_error: ErrorCallback | None = None) -> asyncio.Task:
        """
        Start polling on the running event loop.

        Raises:
            RuntimeError: Poller was already started (a stopped poller is not restartable)
        """
        if self.state != PollerState.IDLE:
            raise RuntimeError(f"Poller cannot start from state {self.state.value}")

        self._on_update = on_update
        self._on_error = on_error
        self.state = PollerState.RUNNING
        self._task = asyncio.create_task(self._run(), name="netio-poller")
        logger.info(f"NETIO: Starting polling (interval: {self.interval}s)")
        return self._task

    async def stop(self) -> None:
        """
        Stop polling and wait for the loop to finish.

        Safe to call more than once. Once it returns, neither callback is
        invoked again.
        """
        if self.state == PollerState.STOPPED:
            return

        was_running = self.state == PollerState.RUNNING
        self.state = PollerState.STOPPED

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            # stop() called from inside a callback: the task ends at its next await
            if task is asyncio.current_task():
                return
            try:
                await task
            except asyncio.CancelledError:
                # Only absorb the poller task's own cancellation, not the caller's
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise

        if was_running:
            logger.info("NETIO: Polling stopped")

    async def _run(self) -> None:
        while self.state == PollerState.RUNNING:
            await asyncio.sleep(self.interval)
            if self.state != PollerState.RUNNING:
                break
            await self.poll_once()

    async def poll_once(self) -> Snapshot | None:
        """
        Run a single fetch cycle.

        Returns:
            The new snapshot, or None when the read failed
        """
        try:
            snapshot = await self.client.fetch_snapshot()
        except NetioError as e:
            logger.warning(f"NETIO: Poll failed: {e}")
            await self._notify(self._on_error, e)
            return None

        self.cache.replace(snapshot)
        await self._notify(self._on_update, snapshot)
        return snapshot

    async def _notify(self, callback: Callable[[Any], Any] | None, value: Any) -> None:
        if callback is None or self.state == PollerState.STOPPED:
            return
        try:
            result = callback(value)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"NETIO: Callback {getattr(callback, '__name__', callback)!r} failed: {e}")
