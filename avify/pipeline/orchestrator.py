"""Pipeline orchestrator for one conversion batch.

Coordinates the two phases of a run and publishes events for the progress
display through the EventBus:

- Discovery: walk the root, filter, collect every matching path. The walk is
  all-or-nothing, so nothing is scheduled unless it completes.
- Conversion: hand the collected tasks to the Scheduler, which runs the
  TransformTask for each under the concurrency budget and returns the stats.
"""

import logging
from pathlib import Path
from typing import List, Optional
from avify.domain.events import (
    DiscoveryFinished,
    DiscoveryStarted,
    PhaseFinished,
    PhaseStarted,
    ProcessingFinished,
)
from avify.domain.models import BatchStats, Task
from avify.infrastructure.event_bus import EventBus
from avify.infrastructure.file_scanner import FileScanner
from avify.pipeline.scheduler import Scheduler
from avify.pipeline.transform import TransformTask

DISCOVERY_LABEL = "Search images..."
CONVERSION_LABEL = "Converting images..."


class Orchestrator:
    """Runs discovery then conversion for a single root directory.

    Args:
        event_bus: EventBus receiving phase, discovery and task events.
        file_scanner: FileScanner producing candidate paths.
        transformer: TransformTask executed once per discovered path.
        threads: Concurrency budget for the conversion phase.
    """

    def __init__(
        self,
        event_bus: EventBus,
        file_scanner: FileScanner,
        transformer: TransformTask,
        threads: int,
    ):
        self.event_bus = event_bus
        self.file_scanner = file_scanner
        self.transformer = transformer
        self.threads = threads
        self.logger = logging.getLogger(__name__)

    def discover(self, root: Path) -> List[Task]:
        """Returns every matching path under root. Raises TraversalError."""
        self.logger.info(f"DISCOVERY_START: scanning {root}")
        self.event_bus.publish(DiscoveryStarted(directory=root))
        self.event_bus.publish(PhaseStarted(label=DISCOVERY_LABEL, total=None))
        try:
            tasks = [Task(path=path) for path in self.file_scanner.scan(root)]
        finally:
            self.event_bus.publish(PhaseFinished())

        self.logger.info(f"DISCOVERY_END: found={len(tasks)}")
        self.event_bus.publish(DiscoveryFinished(files_found=len(tasks)))
        return tasks

    def run(self, root: Path) -> Optional[BatchStats]:
        """Converts everything under root. Returns None when nothing matched."""
        tasks = self.discover(root)
        if not tasks:
            self.logger.info("No files to process, exiting")
            return None

        scheduler = Scheduler(self.threads, event_bus=self.event_bus)
        self.logger.info(f"Conversion started: tasks={len(tasks)}, threads={self.threads}")
        self.event_bus.publish(PhaseStarted(label=CONVERSION_LABEL, total=len(tasks)))
        try:
            stats = scheduler.run(tasks, self.transformer.execute)
        finally:
            self.event_bus.publish(PhaseFinished())

        self.logger.info(
            f"BATCH_END: succeeded={stats.success_count}, failed={len(stats.failures)}, "
            f"before={stats.total_bytes_before}, after={stats.total_bytes_after}"
        )
        self.event_bus.publish(ProcessingFinished(stats=stats))
        return stats
