"""Scheduled task chains.

A chain has one root task fired by a cron schedule and an ordered list of
dependents. A dependent runs only after the task before it succeeded and
only if its own ``when`` predicate holds at that moment; each predicate is
evaluated independently at its own trigger time. Chains are created
suspended and must be resumed before ``run_pending`` fires them.

At most one run of a chain is in flight at a time; a second caller gets
``ChainBusyError`` instead of waiting.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from pkgalerts.core.errors import ChainBusyError
from pkgalerts.pipeline.schedule import CronSchedule

logger = logging.getLogger(__name__)


class StepOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ScheduledTask:
    name: str
    action: Callable[[], Any]
    when: Callable[[], bool] | None = None


@dataclass
class StepResult:
    task: str
    outcome: StepOutcome
    result: Any = None
    error: str | None = None


@dataclass
class ChainRun:
    started_at: datetime
    steps: list[StepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(s.outcome is not StepOutcome.FAILED for s in self.steps)

    def outcome_of(self, task_name: str) -> StepOutcome | None:
        for step in self.steps:
            if step.task == task_name:
                return step.outcome
        return None


class TaskChain:
    def __init__(self, root: ScheduledTask, schedule: CronSchedule) -> None:
        self.root = root
        self.schedule = schedule
        self.dependents: list[ScheduledTask] = []
        self.suspended = True
        self.last_run: ChainRun | None = None
        self._next_fire: datetime | None = None
        self._stop = threading.Event()
        self._lock = threading.Lock()

    def then(self, task: ScheduledTask) -> TaskChain:
        self.dependents.append(task)
        return self

    # -- state --------------------------------------------------------------

    def resume(self, now: datetime | None = None) -> None:
        now = now or datetime.now(timezone.utc)
        self.suspended = False
        self._next_fire = self.schedule.next_after(now)
        logger.info("Chain %s resumed; next run at %s", self.root.name, self._next_fire.isoformat())

    def suspend(self) -> None:
        self.suspended = True
        self._next_fire = None
        logger.info("Chain %s suspended", self.root.name)

    @property
    def next_fire(self) -> datetime | None:
        return self._next_fire

    @property
    def running(self) -> bool:
        return self._lock.locked()

    # -- execution ----------------------------------------------------------

    def _run_step(self, task: ScheduledTask) -> StepResult:
        if task.when is not None and not task.when():
            logger.info("Task %s skipped: condition not met", task.name)
            return StepResult(task=task.name, outcome=StepOutcome.SKIPPED)
        try:
            result = task.action()
        except Exception as exc:
            logger.exception("Task %s failed", task.name)
            return StepResult(task=task.name, outcome=StepOutcome.FAILED, error=str(exc))
        logger.info("Task %s succeeded", task.name)
        return StepResult(task=task.name, outcome=StepOutcome.SUCCEEDED, result=result)

    def run_once(self, now: datetime | None = None) -> ChainRun:
        """Run the root and its dependents in order, regardless of schedule.

        Raises ``ChainBusyError`` if another run is still in progress.
        """
        if not self._lock.acquire(blocking=False):
            raise ChainBusyError(self.root.name)
        try:
            run = ChainRun(started_at=now or datetime.now(timezone.utc))
            previous = self._run_step(self.root)
            run.steps.append(previous)
            for task in self.dependents:
                if previous.outcome is not StepOutcome.SUCCEEDED:
                    previous = StepResult(task=task.name, outcome=StepOutcome.SKIPPED)
                    run.steps.append(previous)
                    continue
                previous = self._run_step(task)
                run.steps.append(previous)
            self.last_run = run
        finally:
            self._lock.release()
        return run

    def run_pending(self, now: datetime | None = None) -> ChainRun | None:
        """Run the chain if it is resumed and its next fire time has passed.

        A due run that finds the chain busy is retried on the next poll.
        """
        now = now or datetime.now(timezone.utc)
        if self.suspended or self._next_fire is None or now < self._next_fire:
            return None
        try:
            run = self.run_once(now)
        except ChainBusyError:
            logger.warning("Chain %s still running; scheduled run deferred", self.root.name)
            return None
        self._next_fire = self.schedule.next_after(now)
        return run

    def run_forever(self, poll_seconds: float = 30.0) -> None:
        """Fire the chain on schedule until ``stop()`` is called."""
        self._stop.clear()
        while not self._stop.is_set():
            self.run_pending()
            self._stop.wait(poll_seconds)

    def stop(self) -> None:
        self._stop.set()
