"""
Variant Readiness Waiter

Polls the variant cache until a generated variant is ready, the generation
pipeline reports an error, or the timeout elapses. Each wait owns two tasks
(the repeating lookup and the timeout timer) and both are cancelled together
on any terminal state or when the caller cancels.

States: idle -> polling -> ready | timed_out | errored
"""

import asyncio
import logging
from typing import AsyncIterator, Optional, Protocol, Tuple

from config.settings import settings
from models.schemas import (
    CacheEntryStatus,
    TERMINAL_WAITER_STATES,
    VariantCacheEntry,
    VariantKey,
    VariantPollUpdate,
    WaiterState,
)

logger = logging.getLogger(__name__)


class VariantCacheLookup(Protocol):
    async def lookup(self, key: VariantKey) -> VariantCacheEntry:
        ...


class VariantWaitHandle:
    """One wait for one variant; cancel() stops every scheduled check"""

    def __init__(
        self,
        key: VariantKey,
        cache: VariantCacheLookup,
        interval_ms: int,
        timeout_ms: int
    ):
        self.key = key
        self.interval_ms = interval_ms
        self.timeout_ms = timeout_ms
        self.lookup_count = 0
        self._cache = cache
        self._latest = VariantPollUpdate(key=key, state=WaiterState.IDLE)
        self._updates: asyncio.Queue = asyncio.Queue()
        self._finished = asyncio.Event()
        self._cancelled = False
        self._poll_task: Optional[asyncio.Task] = None
        self._timeout_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started_at = 0.0

    @property
    def state(self) -> WaiterState:
        return self._latest.state

    @property
    def latest(self) -> VariantPollUpdate:
        return self._latest

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def done(self) -> bool:
        return self._finished.is_set()

    def start(self) -> "VariantWaitHandle":
        """Schedule the immediate lookup and the timeout. Needs a running loop."""
        if self._loop is not None:
            raise RuntimeError(f"wait for {self.key} already started")

        self._loop = asyncio.get_running_loop()
        self._started_at = self._loop.time()
        self._publish(WaiterState.POLLING, is_loading=True)

        self._poll_task = self._loop.create_task(self._poll_loop())
        self._timeout_task = self._loop.create_task(self._timeout_timer())

        logger.info(
            f"🔄 Polling for variant {self.key} "
            f"(interval: {self.interval_ms}ms, timeout: {self.timeout_ms}ms)"
        )
        return self

    def cancel(self) -> bool:
        """
        Abandon the wait.

        Returns:
            False if the wait had already finished
        """
        if self.done():
            return False

        self._cancelled = True
        self._cancel_tasks()
        self._publish(WaiterState.IDLE, is_loading=False)
        self._finished.set()
        logger.info(f"⏹️ Variant wait cancelled: {self.key}")
        return True

    async def wait(self) -> VariantPollUpdate:
        """Block until a terminal state (or cancellation) and return it."""
        await self._finished.wait()
        return self._latest

    async def updates(self) -> AsyncIterator[VariantPollUpdate]:
        """Yield each state change until the wait finishes. Single consumer."""
        while True:
            update = await self._updates.get()
            yield update
            if update.is_terminal or (self._cancelled and update.state == WaiterState.IDLE):
                return

    async def __aenter__(self) -> "VariantWaitHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.cancel()

    async def _poll_loop(self):
        interval = self.interval_ms / 1000
        next_tick = self._started_at

        while True:
            self.lookup_count += 1
            try:
                entry = await self._cache.lookup(self.key)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error polling variant {self.key}: {e}")
                self._finish(WaiterState.ERRORED, error=str(e) or type(e).__name__)
                return

            if entry.status == CacheEntryStatus.READY:
                logger.info(f"✅ Variant {self.key} found after {self._elapsed_ms():.0f}ms")
                self._finish(WaiterState.READY, variant=entry.payload)
                return

            if entry.status == CacheEntryStatus.ERROR:
                logger.error(f"Variant generation failed for {self.key}: {entry.error}")
                self._finish(WaiterState.ERRORED, error=entry.error or "variant generation failed")
                return

            # Fixed-rate schedule; ticks missed during a slow lookup are skipped
            now = self._loop.time()
            next_tick += interval
            while next_tick <= now:
                next_tick += interval
            await asyncio.sleep(next_tick - now)

    async def _timeout_timer(self):
        await asyncio.sleep(self.timeout_ms / 1000)
        logger.warning(f"⏰ Variant polling timeout after {self.timeout_ms}ms: {self.key}")
        self._finish(WaiterState.TIMED_OUT, is_timeout=True)

    def _finish(self, state: WaiterState, **fields):
        if self.done():
            return
        self._publish(state, is_loading=False, **fields)
        self._cancel_tasks()
        self._finished.set()

    def _cancel_tasks(self):
        current = asyncio.current_task()
        for task in (self._poll_task, self._timeout_task):
            if task is not None and task is not current and not task.done():
                task.cancel()

    def _publish(self, state: WaiterState, **fields):
        self._latest = VariantPollUpdate(
            key=self.key,
            state=state,
            elapsed_ms=self._elapsed_ms(),
            **fields
        )
        self._updates.put_nowait(self._latest)

    def _elapsed_ms(self) -> float:
        if self._loop is None:
            return 0.0
        return (self._loop.time() - self._started_at) * 1000


class VariantReadinessWaiter:
    """Start bounded waits for variants against a cache collaborator"""

    def __init__(
        self,
        cache: VariantCacheLookup,
        interval_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None
    ):
        self.cache = cache
        self.interval_ms = interval_ms if interval_ms is not None else settings.VARIANT_POLL_INTERVAL_MS
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.VARIANT_POLL_TIMEOUT_MS
        self._validate(self.interval_ms, self.timeout_ms)

    def wait_for_variant(
        self,
        key: VariantKey,
        interval_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None
    ) -> VariantWaitHandle:
        """
        Begin waiting for a variant without blocking the caller.

        Args:
            key: Content id and variant type to wait for
            interval_ms: Polling interval override
            timeout_ms: Timeout override

        Returns:
            A started VariantWaitHandle
        """
        interval_ms = interval_ms if interval_ms is not None else self.interval_ms
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        self._validate(interval_ms, timeout_ms)

        return VariantWaitHandle(key, self.cache, interval_ms, timeout_ms).start()

    async def wait(
        self,
        key: VariantKey,
        interval_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None
    ) -> VariantPollUpdate:
        """Wait for the terminal state; abandoning this call cancels the wait."""
        async with self.wait_for_variant(key, interval_ms, timeout_ms) as handle:
            return await handle.wait()

    @staticmethod
    def _validate(interval_ms: int, timeout_ms: int):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")


class VariantWaitTracker:
    """Keeps at most one outstanding wait, restarted whenever its inputs change"""

    def __init__(self, waiter: VariantReadinessWaiter):
        self.waiter = waiter
        self._handle: Optional[VariantWaitHandle] = None
        self._inputs: Optional[Tuple[VariantKey, Optional[int], Optional[int]]] = None

    @property
    def current(self) -> Optional[VariantWaitHandle]:
        return self._handle

    def watch(
        self,
        key: Optional[VariantKey],
        enabled: bool = True,
        interval_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None
    ) -> Optional[VariantWaitHandle]:
        """
        Ensure the tracked wait matches the given inputs.

        Same inputs return the existing handle; changed inputs cancel it and
        start a fresh wait from idle. A missing key or enabled=False just stops.
        """
        inputs = (key, interval_ms, timeout_ms)
        if enabled and key is not None and self._handle is not None and inputs == self._inputs:
            return self._handle

        self.stop()

        if not enabled or key is None:
            return None

        self._handle = self.waiter.wait_for_variant(key, interval_ms, timeout_ms)
        self._inputs = inputs
        return self._handle

    def stop(self):
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._inputs = None
