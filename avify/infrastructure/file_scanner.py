import logging
import os
import re
import stat
from pathlib import Path
from typing import Generator, List, Optional
from avify.domain.errors import ConfigurationError, TraversalError
from avify.domain.events import FilesDiscovered
from avify.infrastructure.event_bus import EventBus


class PathFilter:
    """Case-sensitive regex test deciding whether a file belongs to the batch."""

    def __init__(self, extensions: Optional[List[str]] = None, pattern: Optional[str] = None):
        if pattern is None:
            if not extensions:
                raise ConfigurationError("PathFilter needs extensions or a pattern")
            alternatives = "|".join(re.escape(ext.lstrip(".")) for ext in extensions)
            pattern = rf"\.({alternatives})$"
        try:
            self._regex = re.compile(pattern)
        except re.error as exc:
            raise ConfigurationError(f"Invalid filter pattern {pattern!r}: {exc}") from exc

    @property
    def pattern(self) -> str:
        return self._regex.pattern

    def matches(self, path: Path) -> bool:
        return self._regex.search(str(path)) is not None


class FileScanner:
    """Recursively scans for image files in a directory.

    The walk is all-or-nothing: any listing or classification error aborts it
    with TraversalError. Only regular files are offered to the filter; symlinks
    are neither followed nor matched.
    """

    def __init__(self, path_filter: PathFilter, event_bus: Optional[EventBus] = None, report_every: int = 20):
        self.path_filter = path_filter
        self.event_bus = event_bus
        self.report_every = max(1, report_every)
        self.logger = logging.getLogger(__name__)

    def _raise_walk_error(self, error: OSError):
        raise TraversalError(f"Cannot read directory {error.filename}: {error.strerror or error}", Path(error.filename or "")) from error

    def _notify(self, count: int):
        if count and self.event_bus is not None:
            self.event_bus.publish(FilesDiscovered(count=count))

    def scan(self, root_dir: Path) -> Generator[Path, None, None]:
        """Walks root_dir and yields matching regular files."""
        root_dir = Path(root_dir)
        try:
            root_mode = root_dir.stat().st_mode
        except OSError as exc:
            raise TraversalError(f"Cannot access {root_dir}: {exc.strerror or exc}", root_dir) from exc
        if not stat.S_ISDIR(root_mode):
            raise TraversalError(f"Not a directory: {root_dir}", root_dir)

        unreported = 0
        matched = 0
        skipped = 0
        for root, dirs, files in os.walk(str(root_dir), onerror=self._raise_walk_error):
            root_path = Path(root)

            # Ensure deterministic traversal: sort directories and files
            dirs.sort()
            files.sort()

            for file_name in files:
                file_path = root_path / file_name
                try:
                    mode = file_path.lstat().st_mode
                except OSError as exc:
                    raise TraversalError(f"Cannot classify {file_path}: {exc.strerror or exc}", file_path) from exc

                if not stat.S_ISREG(mode):
                    self.logger.debug(f"Skipping non-regular entry: {file_path}")
                    skipped += 1
                    continue
                if not self.path_filter.matches(file_path):
                    continue

                matched += 1
                unreported += 1
                if unreported >= self.report_every:
                    self._notify(unreported)
                    unreported = 0
                yield file_path

        self._notify(unreported)
        self.logger.debug(f"Scan of {root_dir} finished: matched={matched}, non_regular_skipped={skipped}")
