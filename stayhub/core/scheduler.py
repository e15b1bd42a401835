"""
In-process periodic jobs.

Each job owns an asyncio task with an explicit start/stop lifecycle. The
blocking database work runs in a worker thread with its own session, and a
tick that arrives while the previous run is still going is skipped.
"""
import asyncio
import logging
from typing import Callable, List, Optional, Set

from sqlalchemy.orm import Session

from stayhub.core.config import settings
from stayhub.db.session import SessionLocal

logger = logging.getLogger(__name__)

SessionJob = Callable[[Session], int]


def _run_with_session(job: SessionJob, session_factory: Callable[[], Session]) -> int:
    db = session_factory()
    try:
        return job(db)
    finally:
        db.close()


class PeriodicJob:
    def __init__(
        self,
        name: str,
        job: SessionJob,
        interval_seconds: float,
        initial_delay_seconds: float = 0,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.name = name
        self.job = job
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self.session_factory = session_factory
        self.in_flight = False
        self.runs = 0
        self._task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[int]:
        """Run the job now unless a previous run is still in flight."""
        if self.in_flight:
            logger.warning("Job %s still running, skipping this tick.", self.name)
            return None
        self.in_flight = True
        try:
            result = await asyncio.to_thread(_run_with_session, self.job, self.session_factory)
            self.runs += 1
            if result:
                logger.info("Job %s processed %d item(s).", self.name, result)
            return result
        except Exception:
            logger.exception("Error during job %s.", self.name)
            return None
        finally:
            self.in_flight = False

    async def _loop(self) -> None:
        await asyncio.sleep(self.initial_delay_seconds)
        while True:
            # Fire and keep the cadence; the in-flight guard drops overlapping runs
            run = asyncio.create_task(self.run_once())
            self._pending.add(run)
            run.add_done_callback(self._pending.discard)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"job:{self.name}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        # A run already handed to a worker thread finishes before stop returns
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._pending.clear()


class Scheduler:
    def __init__(self, jobs: Optional[List[PeriodicJob]] = None):
        self.jobs: List[PeriodicJob] = list(jobs or [])

    def add(self, job: PeriodicJob) -> None:
        self.jobs.append(job)

    def start(self) -> None:
        for job in self.jobs:
            job.start()
        logger.info("Scheduler started with %d job(s).", len(self.jobs))

    async def stop(self) -> None:
        for job in self.jobs:
            await job.stop()
        logger.info("Scheduler stopped.")


def build_checkout_scheduler(session_factory: Callable[[], Session] = SessionLocal) -> Scheduler:
    """Auto-checkout every 30 min, owner reminders hourly, guest reminders every 15 min."""
    from stayhub.services.auto_checkout import (
        run_auto_checkout_pass,
        send_guest_checkout_reminders,
        send_owner_checkout_reminders,
    )

    delay = settings.SCHEDULER_INITIAL_DELAY_SECONDS
    return Scheduler([
        PeriodicJob(
            "auto-checkout",
            run_auto_checkout_pass,
            settings.AUTO_CHECKOUT_INTERVAL_MINUTES * 60,
            delay,
            session_factory,
        ),
        PeriodicJob(
            "owner-checkout-reminders",
            send_owner_checkout_reminders,
            settings.OWNER_REMINDER_INTERVAL_MINUTES * 60,
            delay,
            session_factory,
        ),
        PeriodicJob(
            "guest-checkout-reminders",
            send_guest_checkout_reminders,
            settings.GUEST_REMINDER_INTERVAL_MINUTES * 60,
            delay,
            session_factory,
        ),
    ])
