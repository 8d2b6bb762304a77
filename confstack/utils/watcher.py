"""File watching for configuration hot reload."""

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

_TRIGGER_EVENTS = (EVENT_TYPE_MODIFIED, EVENT_TYPE_CREATED, EVENT_TYPE_MOVED)


class ConfigFileHandler(FileSystemEventHandler):
    """Forwards file system events for watched files to the watcher."""

    def __init__(self, watcher: "FileChangeWatcher"):
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _TRIGGER_EVENTS:
            return

        paths = [event.src_path]
        # editors that save via rename report the config file as the destination
        if getattr(event, "dest_path", ""):
            paths.append(event.dest_path)

        for raw in paths:
            self.watcher.notify(Path(os.fsdecode(raw)).resolve())


class FileChangeWatcher:
    """Calls back when watched configuration files change on disk.

    Bursts of events (some editors save several times) are debounced: the
    callback runs once, ``debounce`` seconds after the last event.
    """

    def __init__(self, callback: Callable[[], None], debounce: float = 0.5):
        """Initialize the watcher.

        Args:
            callback: Function to call after a change
            debounce: Delay in seconds to debounce rapid changes
        """
        self._callback = callback
        self._debounce = debounce
        self._observer: Optional[Observer] = None
        self._handler = ConfigFileHandler(self)
        self._watched_files: set[Path] = set()
        self._watched_directories: set[Path] = set()
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def start(self, paths: Iterable[Union[str, Path]]) -> None:
        """Start watching files. Can be called again to add more files."""
        with self._lock:
            if self._observer is None:
                self._observer = Observer()
                self._observer.daemon = True
                self._observer.start()

            for path in paths:
                config_path = Path(path).resolve()
                directory = config_path.parent

                if not directory.is_dir():
                    logger.warning(f"Cannot watch {config_path}: directory does not exist")
                    continue

                self._watched_files.add(config_path)
                if directory not in self._watched_directories:
                    self._observer.schedule(self._handler, str(directory), recursive=False)
                    self._watched_directories.add(directory)
                    logger.info(f"Watching directory: {directory}")

        logger.info(f"Watching {len(self._watched_files)} configuration files")

    def stop(self) -> None:
        """Stop watching and drop any pending callback."""
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None

            observer, self._observer = self._observer, None
            self._watched_files.clear()
            self._watched_directories.clear()

        if observer:
            observer.stop()
            observer.join(timeout=5.0)
            logger.info("Stopped configuration file watching")

    def watched_files(self) -> list[Path]:
        with self._lock:
            return sorted(self._watched_files)

    def notify(self, path: Path) -> None:
        """Schedule the callback if path is watched."""
        with self._lock:
            if path not in self._watched_files:
                return
            if self._timer:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce, self._fire)
            self._timer.daemon = True
            self._timer.start()
        logger.debug(f"Change detected in {path}")

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        try:
            self._callback()
        except Exception as e:
            logger.error(f"File change callback failed: {e}")
