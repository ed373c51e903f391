"""Domain events for the image conversion pipeline.

Events are the reporter seam: the pipeline publishes them through the EventBus
and the progress display subscribes. Nothing the pipeline does depends on who
listens.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel
from .models import BatchStats, TaskFailure, TaskSuccess


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class PhaseStarted(Event):
    """Emitted when a phase begins. ``total`` is None while the size is unknown."""

    label: str
    total: Optional[int] = None


class PhaseFinished(Event):
    pass


class DiscoveryStarted(Event):
    directory: Path


class FilesDiscovered(Event):
    """Emitted in batches while the walker finds matching files."""

    count: int


class DiscoveryFinished(Event):
    files_found: int


class TaskSucceeded(Event):
    outcome: TaskSuccess


class TaskFailed(Event):
    outcome: TaskFailure


class ProcessingFinished(Event):
    """Emitted once every admitted task has settled."""

    stats: BatchStats
