"""Per-file transform step: read, convert, write, optionally remove the original.

Every step is a commit point. A failure short-circuits the remaining steps and
nothing already written is rolled back, so a failed removal still leaves a valid
output file behind.
"""

import logging
import threading
import time
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Protocol
from avify.domain.errors import TaskError
from avify.domain.models import (
    CollisionPolicy,
    Task,
    TaskFailure,
    TaskOutcome,
    TaskStage,
    TaskSuccess,
)
from avify.infrastructure.image_codec import EncodedImage


class Codec(Protocol):
    output_extension: str

    def encode(self, stream: BinaryIO) -> EncodedImage: ...


class CountingReader:
    """Read-only file wrapper that records how far into the stream the decoder read.

    Decoders seek back over headers and probe past the end of short files, so
    the count is the highest offset covered by data a read actually returned,
    not the sum of all reads and not the seek position.
    """

    def __init__(self, fp: BinaryIO):
        self._fp = fp
        self.count = 0

    def read(self, size: int = -1) -> bytes:
        start = self._fp.tell()
        data = self._fp.read(size)
        if data:
            self.count = max(self.count, start + len(data))
        return data

    def readinto(self, buffer) -> int:
        start = self._fp.tell()
        n = self._fp.readinto(buffer)
        if n:
            self.count = max(self.count, start + n)
        return n

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._fp.seek(offset, whence)

    def tell(self) -> int:
        return self._fp.tell()

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return self._fp.seekable()


def replace_extension(path: Path, extension: str) -> Path:
    """Swaps the final suffix for ``extension`` (files without one just gain it)."""
    return path.with_name(path.name[: len(path.name) - len(path.suffix)] + extension)


class TransformTask:
    """Converts one source file per call. Safe to share between worker threads.

    Args:
        codec: Object with ``encode(stream)`` and ``output_extension``.
        remove_originals: Delete the source after the output is written.
        on_collision: What to do when the destination already exists or is
            claimed by another task of the same batch.
        debug: Log per-task timings.
    """

    def __init__(
        self,
        codec: Codec,
        remove_originals: bool = True,
        on_collision: CollisionPolicy = CollisionPolicy.OVERWRITE,
        debug: bool = False,
    ):
        self.codec = codec
        self.remove_originals = remove_originals
        self.on_collision = CollisionPolicy(on_collision)
        self.debug = debug
        self.logger = logging.getLogger(__name__)

        # destination -> source that claimed it first in this batch
        self._claims: Dict[Path, Path] = {}
        self._claims_lock = threading.Lock()

    def destination_for(self, source: Path) -> Path:
        return replace_extension(source, self.codec.output_extension)

    def _claim(self, source: Path, destination: Path):
        if destination == source:
            raise TaskError(TaskStage.COLLISION, source, f"Source already has the output extension {self.codec.output_extension}")

        with self._claims_lock:
            owner: Optional[Path] = self._claims.get(destination)
            if owner is None:
                self._claims[destination] = source

        if self.on_collision == CollisionPolicy.ERROR:
            if owner is not None:
                raise TaskError(TaskStage.COLLISION, source, f"Destination {destination.name} is also produced from {owner}")
            if destination.exists():
                raise TaskError(TaskStage.COLLISION, source, f"Destination already exists: {destination}")
        elif owner is not None:
            self.logger.warning(f"COLLISION: {source.name} overwrites output of {owner.name} ({destination})")

    def _convert(self, source: Path):
        try:
            fp = open(source, "rb")
        except OSError as exc:
            raise TaskError(TaskStage.OPEN, source, f"Cannot open: {exc}") from exc

        with fp:
            reader = CountingReader(fp)
            try:
                encoded = self.codec.encode(reader)
            except Exception as exc:
                raise TaskError(TaskStage.CONVERT, source, f"Conversion failed: {exc}") from exc
        return reader.count, encoded

    def _write(self, source: Path, destination: Path, data: bytes):
        try:
            with open(destination, "wb") as f:
                f.write(data)
        except OSError as exc:
            raise TaskError(TaskStage.WRITE, source, f"Cannot write {destination}: {exc}") from exc

    def _remove(self, source: Path):
        try:
            source.unlink()
        except OSError as exc:
            raise TaskError(TaskStage.REMOVE, source, f"Output written but original not removed: {exc}") from exc

    def execute(self, task: Task) -> TaskOutcome:
        source = task.path
        start_time = time.monotonic() if self.debug else None
        if self.debug:
            self.logger.debug(f"TASK_START: {source.name} (thread {threading.get_ident()})")

        try:
            destination = self.destination_for(source)
            self._claim(source, destination)
            bytes_in, encoded = self._convert(source)
            self._write(source, destination, encoded.data)
            if self.remove_originals:
                self._remove(source)
        except TaskError as e:
            self.logger.error(f"TASK_FAILED: {source} stage={e.stage.value} error={e}")
            return TaskFailure(path=source, stage=e.stage, error=str(e))

        outcome = TaskSuccess(
            path=source,
            output_path=destination,
            bytes_in=bytes_in,
            bytes_out=len(encoded.data),
        )
        if self.debug and start_time is not None:
            elapsed = time.monotonic() - start_time
            self.logger.debug(
                f"TASK_END: {source.name} in={outcome.bytes_in} out={outcome.bytes_out} elapsed={elapsed:.2f}s"
            )
        return outcome
