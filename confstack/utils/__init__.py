"""Background reloading helpers."""

from .reloader import PeriodicReloader
from .watcher import FileChangeWatcher

__all__ = ["FileChangeWatcher", "PeriodicReloader"]
