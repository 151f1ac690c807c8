"""Trigger-driven sync scheduler.

Turns three trigger sources into one serialized "run a sync pass" action:

- manual: a user action (Sync Now), fired once per call
- interval: every ``interval_seconds`` while the scheduler runs
- daily: at the next local midnight after start, then every 24 hours

Only one pass runs at a time. Triggers that arrive while a pass is
running, or while a request is already waiting, are coalesced into a
single re-run that starts as soon as the current pass ends. Timers run
on their own threads and only record requests, so a slow device never
delays trigger detection.

Usage:
    from devicesync.sync.scheduler import SyncScheduler

    scheduler = SyncScheduler(queue, link)
    scheduler.start()
    result = scheduler.request_manual_sync()
    scheduler.stop()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass, field
from datetime import UTC, datetime

from devicesync.device.link import DeviceLink
from devicesync.errors import PersistenceError, QueueClosedError
from devicesync.observability.events import EventChannel
from devicesync.observability.logging import timed_operation
from devicesync.sync.executor import SyncExecutor
from devicesync.sync.models import PassResult, SchedulerState, TriggerSource
from devicesync.sync.queue import SyncTaskQueue
from devicesync.sync.timing import SECONDS_PER_DAY, seconds_until_next_midnight

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 10 * 60


@dataclass
class _PassRequest:
    """A requested pass and everyone waiting on it."""

    source: TriggerSource
    waiters: list[Future[PassResult]] = field(default_factory=list)
    coalesced: int = 0


class SyncScheduler:
    """Owns the trigger timers and the single pass worker.

    States are IDLE and RUNNING_PASS. ``start()`` creates the worker and
    timer threads; ``stop()`` is the only way they go away.
    """

    def __init__(
        self,
        queue: SyncTaskQueue,
        link: DeviceLink,
        executor: SyncExecutor | None = None,
        events: EventChannel | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        daily_enabled: bool = True,
        daily_delay: Callable[[], float] = seconds_until_next_midnight,
        daily_period_seconds: float = SECONDS_PER_DAY,
    ) -> None:
        """Initialize the scheduler.

        Args:
            queue: Task queue to drain.
            link: Device link; only ``is_connected`` is read here.
            executor: Task executor (built from link and queue if None).
            events: Channel for human-readable log lines.
            interval_seconds: Period of the interval trigger.
            daily_enabled: Whether to run the daily trigger.
            daily_delay: Returns the delay until the first daily firing.
            daily_period_seconds: Period of the daily trigger after the first firing.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._queue = queue
        self._link = link
        self._events = events
        self._executor = executor or SyncExecutor(link, queue, events)
        self._interval_seconds = interval_seconds
        self._daily_enabled = daily_enabled
        self._daily_delay = daily_delay
        self._daily_period_seconds = daily_period_seconds

        self._cond = threading.Condition(threading.Lock())
        self._pass_lock = threading.Lock()
        self._running = False
        self._generation = 0
        self._state = SchedulerState.IDLE
        self._pending: _PassRequest | None = None
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

        self._pass_count = 0
        self._last_result: PassResult | None = None
        self._on_pass_callbacks: list[Callable[[PassResult], None]] = []

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is running."""
        return self._running

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def pass_count(self) -> int:
        """Number of passes finished since construction."""
        return self._pass_count

    @property
    def last_result(self) -> PassResult | None:
        return self._last_result

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    def _emit(self, message: str, level: int = logging.INFO) -> None:
        if self._events is not None:
            self._events.emit(message, level)

    def start(self) -> None:
        """Start the worker and timer threads."""
        with self._cond:
            if self._running:
                logger.warning("Sync scheduler already running")
                return

            self._running = True
            self._generation += 1
            generation = self._generation
            self._stop_event = threading.Event()
            stop_event = self._stop_event

            self._threads = [
                threading.Thread(
                    target=self._run_loop,
                    args=(generation,),
                    name="SyncScheduler-worker",
                    daemon=True,
                ),
                threading.Thread(
                    target=self._interval_loop,
                    args=(stop_event,),
                    name="SyncScheduler-interval",
                    daemon=True,
                ),
            ]
            if self._daily_enabled:
                self._threads.append(
                    threading.Thread(
                        target=self._daily_loop,
                        args=(stop_event,),
                        name="SyncScheduler-daily",
                        daemon=True,
                    )
                )
            for thread in self._threads:
                thread.start()

        logger.info(
            f"Sync scheduler started (interval={self._interval_seconds}s, "
            f"daily={'on' if self._daily_enabled else 'off'})"
        )
        self._emit("Auto sync scheduled")

    def stop(self, timeout: float = 10.0) -> None:
        """Cancel all timers and stop accepting triggers.

        A pass already running is allowed to finish; a re-run that has
        not started is dropped and its waiters are cancelled.

        Args:
            timeout: Seconds to wait for each thread to stop.
        """
        with self._cond:
            if not self._running:
                return

            self._running = False
            self._stop_event.set()
            dropped = self._pending
            self._pending = None
            threads = self._threads
            self._threads = []
            self._cond.notify_all()

        if dropped is not None:
            for waiter in dropped.waiters:
                waiter.cancel()
            logger.info(f"Dropped queued {dropped.source.value} pass on stop")

        current = threading.current_thread()
        for thread in threads:
            if thread is current or not thread.is_alive():
                continue
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Scheduler thread {thread.name} did not stop cleanly")

        logger.info("Sync scheduler stopped")
        self._emit("Auto sync stopped")

    def trigger(self, source: TriggerSource) -> Future[PassResult] | None:
        """Request a sync pass.

        Args:
            source: What is asking for the pass.

        Returns:
            A future resolving to the PassResult of the pass that serves
            this request, or None if the scheduler is not running.
        """
        with self._cond:
            if not self._running:
                logger.debug(f"Ignoring {source.value} trigger: scheduler stopped")
                return None

            future: Future[PassResult] = Future()
            if self._pending is None:
                self._pending = _PassRequest(source=source)
                if self._state == SchedulerState.RUNNING_PASS:
                    logger.debug(f"{source.value} trigger queued as re-run")
            else:
                self._pending.coalesced += 1
                if source == TriggerSource.MANUAL:
                    # The re-run must do what the user asked for
                    self._pending.source = TriggerSource.MANUAL
                logger.debug(
                    f"{source.value} trigger coalesced into pending "
                    f"{self._pending.source.value} pass"
                )
            self._pending.waiters.append(future)
            self._cond.notify_all()

        return future

    def request_manual_sync(self, timeout: float | None = None) -> PassResult | None:
        """Run a user-initiated sync.

        Disconnected: a placeholder task is enqueued and the call returns
        at once. Connected: a manual pass (heartbeat, then the whole
        pending backlog) runs and the call returns when it has finished.

        Args:
            timeout: Seconds to wait for the pass.

        Returns:
            The PassResult, or None if the scheduler is not running or
            stopped before the pass could start. A stopped scheduler makes
            no device calls.

        Raises:
            TimeoutError: The pass did not finish within ``timeout``.
        """
        if not self._is_connected():
            result = PassResult(source=TriggerSource.MANUAL, connected=False)
            self._enqueue_placeholder(result)
            result.finished_at = datetime.now(UTC)
            return result

        future = self.trigger(TriggerSource.MANUAL)
        if future is None:
            logger.info("Manual sync ignored: scheduler not running")
            return None

        try:
            return future.result(timeout=timeout)
        except CancelledError:
            logger.info("Manual sync cancelled: scheduler stopped")
            return None

    def run_pass(self, source: TriggerSource) -> PassResult:
        """Run one pass in the calling thread.

        Serialized with the worker, so it waits for a pass in progress.
        """
        with self._pass_lock:
            with self._cond:
                self._state = SchedulerState.RUNNING_PASS
            try:
                return self._execute_pass(source)
            finally:
                with self._cond:
                    self._state = SchedulerState.IDLE
                    self._cond.notify_all()

    def register_on_pass(self, callback: Callable[[PassResult], None]) -> None:
        """Register callback for finished passes.

        Args:
            callback: Function to call with each PassResult.
        """
        self._on_pass_callbacks.append(callback)

    def _is_connected(self) -> bool:
        try:
            return bool(self._link.is_connected())
        except Exception as e:
            logger.warning(f"Connection check failed, treating as offline: {e}")
            return False

    def _enqueue_placeholder(self, result: PassResult) -> None:
        """Record that a sync was wanted while the device was unavailable."""
        try:
            task = self._queue.enqueue(None)
            result.placeholder_task_id = task.id
        except PersistenceError as e:
            result.placeholder_task_id = e.task_id
            self._emit(f"Sync request kept in memory only: {e}", logging.ERROR)
            return
        except QueueClosedError:
            logger.warning("Sync queue closed; offline sync request not recorded")
            return
        self._emit(f"Device offline; sync queued ({self._queue.pending_count()} pending)")

    def _execute_pass(self, source: TriggerSource) -> PassResult:
        """The pass algorithm. Never raises for per-task failures."""
        connected = self._is_connected()
        result = PassResult(source=source, connected=connected)

        with timed_operation(logger, "sync.pass", source=source.value) as ctx:
            if not connected:
                self._enqueue_placeholder(result)
            else:
                snapshot = self._queue.pending()
                self._emit(f"Sync pass started ({source.value}, {len(snapshot)} pending)")

                if source == TriggerSource.MANUAL:
                    result.heartbeat_ok = self._executor.heartbeat()
                    if not result.heartbeat_ok:
                        self._enqueue_placeholder(result)

                result.results, result.interrupted = self._executor.drain(snapshot)
                self._emit(
                    f"Sync pass finished: {result.completed} synced, {result.failed} failed"
                )

            try:
                self._queue.prune()
            except PersistenceError as e:
                logger.warning(f"Retention pruning failed: {e}")

            ctx["attempted"] = result.attempted
            ctx["completed"] = result.completed
            ctx["failed"] = result.failed
            ctx["connected"] = connected

        result.finished_at = datetime.now(UTC)
        self._pass_count += 1
        self._last_result = result

        for callback in list(self._on_pass_callbacks):
            try:
                callback(result)
            except Exception as e:
                logger.exception(f"Pass callback error: {e}")

        return result

    def _run_loop(self, generation: int) -> None:
        """Worker loop: one pass per (coalesced) request."""
        logger.debug("Sync worker started")

        while True:
            with self._cond:
                while self._pending is None and self._is_current(generation):
                    self._cond.wait()
                if not self._is_current(generation):
                    break
                request = self._pending
                self._pending = None
                self._state = SchedulerState.RUNNING_PASS

            if request.coalesced:
                logger.info(
                    f"Running {request.source.value} pass for {request.coalesced + 1} triggers"
                )

            try:
                with self._pass_lock:
                    result = self._execute_pass(request.source)
            except Exception as e:
                logger.exception(f"Error in sync pass: {e}")
                for waiter in request.waiters:
                    waiter.set_exception(e)
            else:
                for waiter in request.waiters:
                    waiter.set_result(result)
            finally:
                with self._cond:
                    self._state = SchedulerState.IDLE
                    self._cond.notify_all()

        logger.debug("Sync worker stopped")

    def _is_current(self, generation: int) -> bool:
        return self._running and self._generation == generation

    def _interval_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval_seconds):
            self.trigger(TriggerSource.INTERVAL)

    def _daily_loop(self, stop_event: threading.Event) -> None:
        delay = self._daily_delay()
        logger.debug(f"Daily sync first fires in {delay:.0f}s")
        while not stop_event.wait(delay):
            self.trigger(TriggerSource.DAILY)
            delay = self._daily_period_seconds


__all__ = [
    "SyncScheduler",
    "DEFAULT_INTERVAL_SECONDS",
]
