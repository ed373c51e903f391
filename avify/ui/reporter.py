import threading
from typing import Optional
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from avify.domain.events import (
    FilesDiscovered,
    PhaseFinished,
    PhaseStarted,
    TaskFailed,
    TaskSucceeded,
)
from avify.infrastructure.event_bus import EventBus


class ProgressReporter:
    """Subscribes to EventBus and renders one rich progress bar per phase.

    Purely observational: it never feeds anything back into the pipeline.
    Task events arrive on worker threads; Progress serialises its own updates.
    """

    def __init__(self, bus: EventBus, console: Optional[Console] = None):
        self.bus = bus
        self.console = console or Console()
        self._lock = threading.Lock()
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None
        self._label = ""
        self._failed = 0
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(PhaseStarted, self.on_phase_started)
        self.bus.subscribe(PhaseFinished, self.on_phase_finished)
        self.bus.subscribe(FilesDiscovered, self.on_files_discovered)
        self.bus.subscribe(TaskSucceeded, self.on_task_completed)
        self.bus.subscribe(TaskFailed, self.on_task_failed)

    def _advance(self, amount: int = 1):
        with self._lock:
            if self._progress is not None and self._task_id is not None:
                self._progress.advance(self._task_id, amount)

    def on_phase_started(self, event: PhaseStarted):
        with self._lock:
            if self._progress is not None:
                self._progress.stop()
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[cyan]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self.console,
            )
            self._label = event.label
            self._failed = 0
            self._task_id = self._progress.add_task(event.label, total=event.total)
            self._progress.start()

    def on_phase_finished(self, event: PhaseFinished):
        with self._lock:
            if self._progress is not None:
                self._progress.stop()
            self._progress = None
            self._task_id = None

    def on_files_discovered(self, event: FilesDiscovered):
        self._advance(event.count)

    def on_task_completed(self, event: TaskSucceeded):
        self._advance()

    def on_task_failed(self, event: TaskFailed):
        with self._lock:
            self._failed += 1
            if self._progress is not None and self._task_id is not None:
                self._progress.update(self._task_id, description=f"{self._label} [red]{self._failed} failed")
        self._advance()
