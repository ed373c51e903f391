from enum import Enum
from pathlib import Path
from typing import List, Union
from pydantic import BaseModel, ConfigDict, Field, computed_field


class CollisionPolicy(str, Enum):
    OVERWRITE = "overwrite"
    ERROR = "error"


class TaskStage(str, Enum):
    COLLISION = "collision"
    OPEN = "open"
    CONVERT = "convert"
    WRITE = "write"
    REMOVE = "remove"


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path


class TaskSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    output_path: Path
    bytes_in: int = Field(ge=0)
    bytes_out: int = Field(ge=0)


class TaskFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    stage: TaskStage
    error: str


TaskOutcome = Union[TaskSuccess, TaskFailure]


class BatchStats(BaseModel):
    """Final, read-only aggregate of one batch run."""

    model_config = ConfigDict(frozen=True)

    total_bytes_before: int = Field(default=0, ge=0)
    total_bytes_after: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0)
    failures: List[TaskFailure] = Field(default_factory=list)

    @computed_field
    @property
    def failed_paths(self) -> List[Path]:
        return [failure.path for failure in self.failures]

    @property
    def total_tasks(self) -> int:
        return self.success_count + len(self.failures)

    @property
    def saved_bytes(self) -> int:
        return self.total_bytes_before - self.total_bytes_after

    @property
    def saved_percent(self) -> float:
        if self.total_bytes_before == 0:
            return 0.0
        return self.saved_bytes / self.total_bytes_before * 100
