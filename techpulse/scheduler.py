"""
Ingestion Scheduler.

Owns one background task per active source, one trending task and one
heartbeat task. Each source re-arms at its own interval whether its last
cycle succeeded or not; a manual refresh runs an extra cycle without
touching those timers. A cycle already in flight for a source makes any
second trigger for that source a no-op.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from .database import Database, DBSource
from .database.converters import utcnow
from .exceptions import NotFound, require_source
from .locks import KeyedLocks
from .notifier import EventType, LiveNotifier
from .services.ingestion_service import CycleResult, IngestionService, SourceState
from .trending import TrendingAggregator


logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    ran: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)
    created: int = 0


class IngestionScheduler:
    """
    Background scheduler for feed ingestion and trending recomputation.

    Lifecycle is start() / stop(); no state outlives the instance.
    """

    def __init__(
        self,
        db: Database,
        ingestion: IngestionService,
        aggregator: TrendingAggregator,
        notifier: LiveNotifier,
        trending_interval_minutes: int = 15,
        heartbeat_seconds: int = 30,
    ):
        self.db = db
        self.ingestion = ingestion
        self.aggregator = aggregator
        self.notifier = notifier
        self.trending_interval_minutes = trending_interval_minutes
        self.heartbeat_seconds = heartbeat_seconds

        self._running = False
        self._source_tasks: dict[int, asyncio.Task] = {}
        self._source_intervals: dict[int, int] = {}
        self._trending_task: asyncio.Task | None = None
        self._heartbeat_task: asyncio.Task | None = None
        self._in_flight = KeyedLocks()
        self._states: dict[int, SourceState] = {}
        self.last_trending_run: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start per-source, trending and heartbeat tasks."""
        if self._running:
            return
        self._running = True
        self.sync_sources()
        self._trending_task = asyncio.create_task(self._trending_loop())
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info(
            f"Ingestion scheduler started ({len(self._source_tasks)} sources, "
            f"trending every {self.trending_interval_minutes} minutes)"
        )

    async def stop(self):
        """Cancel every owned task and wait for them to finish."""
        self._running = False

        tasks = list(self._source_tasks.values())
        tasks += [t for t in (self._trending_task, self._heartbeat_task) if t]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._source_tasks.clear()
        self._source_intervals.clear()
        self._trending_task = None
        self._heartbeat_task = None
        logger.info("Ingestion scheduler stopped")

    def sync_sources(self) -> None:
        """
        Reconcile source tasks with the registry.

        Starts tasks for newly active sources, cancels tasks for deactivated
        ones and re-arms sources whose interval changed. A task that has
        already exited counts as missing and is started again.
        """
        if not self._running:
            return

        active = {s.id: s for s in self.db.get_sources(active_only=True)}

        for source_id in list(self._source_tasks):
            source = active.get(source_id)
            if self._source_tasks[source_id].done():
                self._source_tasks.pop(source_id)
                self._source_intervals.pop(source_id, None)
            elif source is None or source.fetch_interval_minutes != self._source_intervals.get(source_id):
                self._source_tasks.pop(source_id).cancel()
                self._source_intervals.pop(source_id, None)

        for source_id, source in active.items():
            if source_id not in self._source_tasks:
                self._source_intervals[source_id] = source.fetch_interval_minutes
                self._source_tasks[source_id] = asyncio.create_task(self._source_loop(source))

    def source_states(self) -> dict[int, SourceState]:
        """Current pipeline stage per known source."""
        return dict(self._states)

    # ─────────────────────────────────────────────────────────────
    # Manual triggers
    # ─────────────────────────────────────────────────────────────

    async def refresh_now(self, source_id: int | None = None) -> RefreshResult:
        """
        Run one immediate cycle for one source or all active sources.

        Sources with a cycle already in flight are skipped. Timers are not
        re-armed. Per-source failures are reported, not raised.

        Raises:
            NotFound: source_id is unknown or deactivated
        """
        if source_id is not None:
            source = require_source(self.db.get_source(source_id))
            if not source.is_active:
                raise NotFound(f"Source {source_id} is not active")
            sources = [source]
        else:
            sources = self.db.get_sources(active_only=True)

        result = RefreshResult()
        outcomes = await asyncio.gather(
            *(self._run_cycle(source) for source in sources),
            return_exceptions=True,
        )
        for source, outcome in zip(sources, outcomes):
            if outcome is None:
                result.skipped.append(source.id)
            elif isinstance(outcome, Exception):
                result.failed[source.id] = f"{outcome.__class__.__name__}: {outcome}"
            else:
                result.ran.append(source.id)
                result.created += outcome.created

        logger.info(
            f"Manual refresh: {len(result.ran)} ran, {len(result.skipped)} skipped, "
            f"{len(result.failed)} failed, {result.created} new articles"
        )
        return result

    async def run_trending(self) -> dict[str, int]:
        """Recompute every trending window and announce it."""
        counts = self.aggregator.run_all()
        self.last_trending_run = utcnow()
        self.notifier.publish(EventType.TRENDING_UPDATED, {"windows": counts})
        return counts

    # ─────────────────────────────────────────────────────────────
    # Cycles and loops
    # ─────────────────────────────────────────────────────────────

    def _set_state(self, source_id: int, stage: SourceState):
        self._states[source_id] = stage

    async def _run_cycle(self, source: DBSource) -> CycleResult | None:
        """One cycle for a source, or None when one is already in flight."""
        if self._in_flight.locked(source.id):
            logger.debug(f"{source.name}: cycle already in flight, skipping")
            return None
        async with self._in_flight.hold(source.id):
            return await self.ingestion.run_source_cycle(source, on_state=self._set_state)

    def _initial_delay(self, source: DBSource) -> float:
        """Seconds until the source is next due, based on its last successful fetch."""
        if not source.last_fetched:
            return 0.0
        elapsed = (utcnow() - source.last_fetched).total_seconds()
        return max(0.0, source.fetch_interval_minutes * 60 - elapsed)

    async def _source_loop(self, source: DBSource):
        """Per-source loop: run a cycle, then wait for the interval."""
        self._states.setdefault(source.id, SourceState.IDLE)
        await asyncio.sleep(self._initial_delay(source))

        while self._running:
            try:
                # Pick up renames; stop if the source was removed meanwhile
                current = self.db.get_source(source.id)
                if current is None or not current.is_active:
                    logger.info(f"Source {source.id} no longer active, stopping its task")
                    break
                source = current
                await self._run_cycle(source)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"{source.name}: ingestion cycle failed: {e}")

            await asyncio.sleep(source.fetch_interval_minutes * 60)

        self._states.pop(source.id, None)

    async def _trending_loop(self):
        while self._running:
            try:
                await self.run_trending()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Error in trending loop: {e}")

            await asyncio.sleep(self.trending_interval_minutes * 60)

    async def _heartbeat_loop(self):
        while self._running:
            await asyncio.sleep(self.heartbeat_seconds)
            self.notifier.publish(EventType.HEARTBEAT, {
                "time": utcnow().isoformat(),
                "listeners": self.notifier.listener_count,
            })
