import pytest
from pathlib import Path
from pydantic import ValidationError
from avify.domain.models import BatchStats, Task, TaskFailure, TaskStage, TaskSuccess

def test_task_is_immutable():
    task = Task(path=Path("a.jpg"))
    with pytest.raises(ValidationError):
        task.path = Path("b.jpg")

def test_task_success_rejects_negative_sizes():
    with pytest.raises(ValidationError):
        TaskSuccess(path=Path("a.jpg"), output_path=Path("a.avif"), bytes_in=-1, bytes_out=0)

def test_task_failure_stage_must_be_known():
    with pytest.raises(ValidationError):
        TaskFailure(path=Path("a.jpg"), stage="INVALID", error="x")

def test_task_failure_stage_from_string():
    failure = TaskFailure(path=Path("a.jpg"), stage="remove", error="busy")
    assert failure.stage == TaskStage.REMOVE

def test_batch_stats_derived_values():
    stats = BatchStats(
        total_bytes_before=4000,
        total_bytes_after=1000,
        success_count=3,
        failures=[TaskFailure(path=Path("d.jpeg"), stage=TaskStage.CONVERT, error="bad")],
    )
    assert stats.failed_paths == [Path("d.jpeg")]
    assert stats.total_tasks == 4
    assert stats.saved_bytes == 3000
    assert stats.saved_percent == 75.0

def test_batch_stats_output_larger_than_input():
    stats = BatchStats(total_bytes_before=100, total_bytes_after=150, success_count=1)
    assert stats.saved_bytes == -50
    assert stats.saved_percent == -50.0

def test_batch_stats_is_frozen():
    stats = BatchStats()
    with pytest.raises(ValidationError):
        stats.success_count = 3

def test_batch_stats_dump_includes_failed_paths():
    stats = BatchStats(failures=[TaskFailure(path=Path("x.png"), stage=TaskStage.OPEN, error="gone")])
    assert stats.model_dump()["failed_paths"] == [Path("x.png")]
