"""
File system watcher driving regeneration.

This module provides:
- Watchdog-based monitoring of entity definitions and tsera.toml
- Debouncing, so an editor's save cycle triggers a single regeneration
- Filtering of hidden paths, which keeps the engine's own writes under
  .tsera/ from re-triggering it
"""

import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import CONFIG_FILENAME
from .entities import ENTITY_SUFFIX


class ProjectEventHandler(FileSystemEventHandler):
    """
    Collects relevant file system events and reports them in batches.

    Key behaviors:
    - Only ``*.entity.md`` files and ``tsera.toml`` are relevant
    - Hidden files and directories are ignored
    - Events are batched until no new event arrived for DEBOUNCE_SECONDS
    """

    DEBOUNCE_SECONDS = 0.5

    def __init__(
        self,
        project_dir: Path,
        on_change: Callable[[list[Path]], None],
        debounce_seconds: float | None = None,
    ):
        """
        Initialize the event handler.

        Args:
            project_dir: Project root being watched
            on_change: Callback receiving the sorted batch of changed paths
            debounce_seconds: Override for DEBOUNCE_SECONDS
        """
        super().__init__()
        self.project_dir = project_dir.resolve()
        self.on_change = on_change
        self.debounce_seconds = self.DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds

        # Pending changed paths and the time of the latest event
        self.pending: set[Path] = set()
        self.last_event_at: float = 0.0

    def is_relevant(self, path: str) -> bool:
        """Check if the file can influence the generated output."""
        p = Path(path)
        try:
            rel = p.resolve().relative_to(self.project_dir)
        except ValueError:
            return False

        # Skip hidden files and directories (.tsera, .git, editor swap files)
        if any(part.startswith(".") for part in rel.parts):
            return False

        return p.name == CONFIG_FILENAME or p.name.endswith(ENTITY_SUFFIX)

    def _record(self, path: str) -> None:
        if self.is_relevant(path):
            self.pending.add(Path(path))
            self.last_event_at = time.monotonic()

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Record created/modified/deleted/moved files."""
        if event.is_directory or event.event_type in ("opened", "closed", "closed_no_write"):
            return
        self._record(event.src_path)
        dest = getattr(event, "dest_path", "")
        if dest:
            self._record(dest)

    def flush_pending(self, now: float | None = None) -> bool:
        """
        Emit the pending batch once the debounce window has passed.

        Returns True if a batch was emitted.
        """
        if not self.pending:
            return False
        now = time.monotonic() if now is None else now
        if now - self.last_event_at < self.debounce_seconds:
            return False

        batch = sorted(self.pending)
        self.pending.clear()
        self.on_change(batch)
        return True


def watch_project(
    project_dir: Path,
    on_change: Callable[[list[Path]], None],
) -> tuple[Observer, ProjectEventHandler]:
    """
    Start watching a project for entity and config changes.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = ProjectEventHandler(project_dir=project_dir, on_change=on_change)

    observer = Observer()
    observer.schedule(handler, str(project_dir), recursive=True)
    observer.start()

    return observer, handler


def run_watch_loop(
    project_dir: Path,
    on_change: Callable[[list[Path]], None],
) -> None:
    """
    Run the watch loop until interrupted.

    This is a blocking function that watches for events and flushes
    pending batches periodically.
    """
    observer, handler = watch_project(project_dir, on_change)

    try:
        while True:
            time.sleep(0.2)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
