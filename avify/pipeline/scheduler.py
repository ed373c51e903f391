"""Bounded-concurrency scheduler for transform tasks.

Admission is gated by a semaphore holding one permit per worker: the admitting
thread blocks while ``max_workers`` tasks are in flight and resumes as soon as
any of them releases its permit. Permits are released unconditionally, so a
failing task never starves the pool. No task's failure stops admission of the
rest; every admitted task is waited for before the final stats are returned.
"""

import concurrent.futures
import logging
import threading
from enum import Enum
from typing import Callable, Iterable, List, Optional
from avify.domain.errors import ConfigurationError
from avify.domain.events import TaskFailed, TaskSucceeded
from avify.domain.models import BatchStats, Task, TaskFailure, TaskOutcome, TaskStage, TaskSuccess
from avify.infrastructure.event_bus import EventBus
from avify.pipeline.aggregator import Aggregator


class SchedulerState(str, Enum):
    ACCEPTING = "accepting"
    DRAINING = "draining"
    DONE = "done"


class Scheduler:
    """Runs tasks on a thread pool with at most ``max_workers`` executing at once.

    A scheduler runs a single batch; it is not resumable once done.
    """

    def __init__(self, max_workers: int, event_bus: Optional[EventBus] = None):
        if max_workers < 1:
            raise ConfigurationError(f"Concurrency budget must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)
        self._slots = threading.BoundedSemaphore(max_workers)
        self._state = SchedulerState.ACCEPTING
        self._state_lock = threading.Lock()
        self._started = False

    @property
    def state(self) -> SchedulerState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: SchedulerState):
        with self._state_lock:
            self._state = state

    def _publish(self, outcome: TaskOutcome):
        if self.event_bus is None:
            return
        if isinstance(outcome, TaskSuccess):
            self.event_bus.publish(TaskSucceeded(outcome=outcome))
        else:
            self.event_bus.publish(TaskFailed(outcome=outcome))

    def _run_task(self, task: Task, execute: Callable[[Task], TaskOutcome], aggregator: Aggregator):
        try:
            try:
                outcome = execute(task)
            except Exception as e:
                self.logger.error(f"Exception processing {task.path}: {e}")
                outcome = TaskFailure(path=task.path, stage=TaskStage.CONVERT, error=f"Exception: {e}")
            aggregator.record(outcome)
            self._publish(outcome)
        finally:
            self._slots.release()

    def run(
        self,
        tasks: Iterable[Task],
        execute: Callable[[Task], TaskOutcome],
        aggregator: Optional[Aggregator] = None,
    ) -> BatchStats:
        with self._state_lock:
            if self._started:
                raise RuntimeError(f"Scheduler cannot run again (state={self._state.value})")
            self._started = True

        aggregator = aggregator or Aggregator()
        futures: List[concurrent.futures.Future] = []

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="avify-worker"
        ) as executor:
            for task in tasks:
                self._slots.acquire()
                try:
                    futures.append(executor.submit(self._run_task, task, execute, aggregator))
                except BaseException:
                    self._slots.release()
                    raise

            self._set_state(SchedulerState.DRAINING)
            self.logger.debug(f"Admitted {len(futures)} tasks, draining")
            concurrent.futures.wait(futures)

        for future in futures:
            error = future.exception()
            if error is not None:
                # Outcome was recorded; only the reporter callback failed
                self.logger.error(f"Future failed with exception: {error}")

        stats = aggregator.close()
        self._set_state(SchedulerState.DONE)

        if stats.total_tasks != len(futures):
            self.logger.error(
                f"Outcome count mismatch: submitted={len(futures)} recorded={stats.total_tasks}"
            )
        return stats
