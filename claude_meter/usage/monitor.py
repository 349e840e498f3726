"""Background usage monitor – polls the usage endpoint periodically.

State machine::

    STOPPED --start()--> IDLE --timer/refresh--> POLLING --> IDLE ...
                                   any state --stop()--> STOPPED

Only one cycle runs at a time. Refresh requests that arrive while a cycle is
in flight coalesce into a single follow-up cycle.

Usage:
    monitor = UsageMonitor(settings)
    monitor.subscribe(my_callback)
    await monitor.start()
    ...
    monitor.request_refresh()     # safe from any thread
    ...
    await monitor.stop()
"""

from __future__ import annotations

import asyncio
import dataclasses
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from enum import Enum
from typing import Callable, Protocol

from loguru import logger

from claude_meter.config.store import SettingsStore
from claude_meter.system.processes import count_running
from claude_meter.usage.client import UsageClient
from claude_meter.usage.credentials import load_credentials
from claude_meter.usage.errors import ErrorKind, UsageError
from claude_meter.usage.models import Credentials, LocalStats, ParsedUsage, RawPayload, Snapshot, utc_now
from claude_meter.usage.parser import parse
from claude_meter.usage.stats import read_stats

OnSnapshot = Callable[[Snapshot], None]

# Slack on top of the request timeout before a stuck fetch is abandoned.
FETCH_GRACE_S = 1.0


class Fetcher(Protocol):
    def fetch(self, credentials: Credentials) -> RawPayload:
        ...


class MonitorState(str, Enum):
    STOPPED = "stopped"
    IDLE = "idle"
    POLLING = "polling"


def assemble_snapshot(
    previous: Snapshot,
    fetched_at: datetime,
    running_processes: int,
    stats: LocalStats | None = None,
    plan: str | None = None,
    parsed: ParsedUsage | None = None,
    error: ErrorKind | None = None,
) -> Snapshot:
    """Build the next snapshot from one cycle's results and the previous one.

    - success: fresh windows, logged in
    - auth failure: logged out, no windows
    - transient failure: previous windows and login state kept
    - malformed response: no windows, previous login state kept
    """
    if error is None:
        parsed = parsed or ParsedUsage()
        return Snapshot(
            session=parsed.session,
            weekly=parsed.weekly,
            running_processes=running_processes,
            logged_in=True,
            fetched_at=fetched_at,
            plan=plan,
            model_fractions=parsed.model_fractions,
            stats=stats,
            last_success_at=fetched_at,
        )

    if error.is_auth:
        return Snapshot(
            running_processes=running_processes,
            logged_in=False,
            fetched_at=fetched_at,
            error=error,
            stats=stats,
            last_success_at=previous.last_success_at,
        )

    if error.is_transient:
        return dataclasses.replace(
            previous,
            running_processes=running_processes,
            fetched_at=fetched_at,
            error=error,
            stats=stats if stats is not None else previous.stats,
        )

    return Snapshot(
        running_processes=running_processes,
        logged_in=previous.logged_in,
        fetched_at=fetched_at,
        error=error,
        plan=plan or previous.plan,
        stats=stats,
        last_success_at=previous.last_success_at,
    )


class UsageMonitor:
    """Async single-flight poller publishing immutable snapshots."""

    def __init__(
        self,
        settings: SettingsStore | None = None,
        *,
        client: Fetcher | None = None,
        credentials_loader: Callable[[], Credentials] | None = None,
        process_counter: Callable[[], int] | None = None,
        stats_reader: Callable[[], LocalStats | None] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings or SettingsStore()
        self._client = client
        self._load_credentials = credentials_loader or self._default_credentials
        self._count_processes = process_counter or count_running
        self._read_stats = stats_reader or self._default_stats
        self._clock = clock

        self._snapshot = Snapshot(fetched_at=clock())
        self._state = MonitorState.STOPPED
        self._subscribers: list[OnSnapshot] = []

        self._task: asyncio.Task | None = None
        self._wake: asyncio.Event | None = None
        self._event_loop: asyncio.AbstractEventLoop | None = None
        self._executor: ThreadPoolExecutor | None = None

        self.cycle_count = 0
        # Delay chosen on the most recent entry into IDLE.
        self.next_delay_s: float | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def state(self) -> MonitorState:
        return self._state

    def subscribe(self, callback: OnSnapshot) -> Callable[[], None]:
        """Register a snapshot callback; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    async def start(self) -> None:
        """Start the background polling task; the first cycle runs immediately."""
        if self._task is not None:
            return
        self._event_loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        self._ensure_executor()
        self._state = MonitorState.IDLE
        self._task = asyncio.create_task(self._run(), name="usage-monitor")
        logger.info(
            f"[usage] Monitor started, interval={self.settings.config.polling.interval_minutes}min"
        )

    async def stop(self) -> None:
        """Cancel the polling task and abandon any in-flight fetch."""
        self._state = MonitorState.STOPPED
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        self._wake = None
        self._event_loop = None
        logger.info("[usage] Monitor stopped")

    def request_refresh(self) -> bool:
        """Ask for an immediate cycle. Safe to call from any thread.

        Returns False when the monitor is not running or a refresh is already
        pending (the request is coalesced with it).
        """
        wake, event_loop = self._wake, self._event_loop
        if wake is None or event_loop is None or self._state is MonitorState.STOPPED:
            return False
        if wake.is_set():
            return False

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is event_loop:
            wake.set()
        else:
            event_loop.call_soon_threadsafe(wake.set)
        logger.debug("[usage] Manual refresh requested")
        return True

    async def poll_once(self) -> Snapshot:
        """Run one cycle now, or return the current snapshot if one is running."""
        await self._run_cycle()
        return self._snapshot

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _default_credentials(self) -> Credentials:
        return load_credentials(self.settings.config.credentials_path)

    def _default_stats(self) -> LocalStats | None:
        return read_stats(self.settings.config.stats_cache_path)

    def _fetcher(self) -> Fetcher:
        if self._client is not None:
            return self._client
        polling = self.settings.config.polling
        return UsageClient(url=polling.usage_url, timeout_s=polling.request_timeout_s)

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="usage-monitor")
        return self._executor

    async def _run(self) -> None:
        assert self._wake is not None
        while True:
            self._wake.clear()
            try:
                await self._run_cycle()
            except Exception as exc:
                logger.warning(f"[usage] Monitor loop error: {exc}")

            # Interval is re-read on every entry into IDLE.
            self.next_delay_s = self.settings.config.poll_interval_s
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.next_delay_s)
            except asyncio.TimeoutError:
                pass

    def _collect_usage(self, fetched_at: datetime) -> tuple[str | None, ParsedUsage]:
        credentials = self._load_credentials()
        raw = self._fetcher().fetch(credentials)
        return credentials.plan, parse(raw, fetched_at)

    def _collect_local(self) -> tuple[int, LocalStats | None]:
        try:
            running = int(self._count_processes())
        except Exception as exc:
            logger.debug(f"[usage] Process count failed: {exc}")
            running = 0
        try:
            stats = self._read_stats()
        except Exception as exc:
            logger.debug(f"[usage] Stats read failed: {exc}")
            stats = None
        return running, stats

    async def _run_cycle(self) -> None:
        if self._state is MonitorState.POLLING:
            logger.debug("[usage] Cycle already in flight, skipping")
            return

        self._state = MonitorState.POLLING
        try:
            loop = asyncio.get_running_loop()
            executor = self._ensure_executor()
            fetched_at = self._clock()

            deadline_s = self.settings.config.polling.request_timeout_s + FETCH_GRACE_S
            usage_result, local_result = await asyncio.gather(
                asyncio.wait_for(
                    loop.run_in_executor(executor, self._collect_usage, fetched_at),
                    timeout=deadline_s,
                ),
                loop.run_in_executor(executor, self._collect_local),
                return_exceptions=True,
            )
            if isinstance(local_result, BaseException):
                running, stats = 0, None
            else:
                running, stats = local_result

            plan: str | None = None
            parsed: ParsedUsage | None = None
            error: ErrorKind | None = None
            if isinstance(usage_result, UsageError):
                error = usage_result.kind
                logger.warning(f"[usage] Poll failed ({error.value}): {usage_result}")
            elif isinstance(usage_result, asyncio.TimeoutError):
                error = ErrorKind.TIMEOUT
                logger.warning(f"[usage] Fetch abandoned after {deadline_s:.1f}s")
            elif isinstance(usage_result, Exception):
                error = ErrorKind.UNREACHABLE
                logger.warning(f"[usage] Unexpected poll error: {usage_result!r}")
            elif isinstance(usage_result, BaseException):
                raise usage_result
            else:
                plan, parsed = usage_result

            snapshot = assemble_snapshot(
                self._snapshot,
                fetched_at=fetched_at,
                running_processes=running,
                stats=stats,
                plan=plan,
                parsed=parsed,
                error=error,
            )
            self.cycle_count += 1
            self._publish(snapshot)
        finally:
            if self._state is MonitorState.POLLING:
                self._state = MonitorState.IDLE if self._task is not None else MonitorState.STOPPED

    def _publish(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        logger.debug(
            f"[usage] Published snapshot: logged_in={snapshot.logged_in}, "
            f"error={snapshot.error.value if snapshot.error else None}, "
            f"processes={snapshot.running_processes}"
        )
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as exc:
                logger.debug(f"[usage] Subscriber callback error: {exc}")
