"""Main configuration loading module."""

import logging
import threading
from pathlib import Path
from typing import IO, Any, Callable, Iterable, Optional, Union

from .loader.base import Source, describe_target
from .loader.env import EnvironmentSource
from .loader.file import ConfigFormat, ContentSource, FileSource, ReaderSource
from .utils.reloader import PeriodicReloader
from .utils.watcher import FileChangeWatcher

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Applies registered sources to a target in registration order.

    Each pass calls every source once, oldest first, so for any field the most
    recently registered source that provides a value wins. The first failing
    source ends the pass.

    Example:
        settings = Settings()
        loader = ConfigLoader(settings)
        loader.from_yaml_file("config.yaml").from_env("APP_")
        loader.process()
    """

    def __init__(self, target: Any):
        """Initialize the loader.

        Args:
            target: Dataclass or pydantic model instance to populate

        Raises:
            InvalidSpecificationError: If target cannot be populated
        """
        describe_target(target)

        self.target = target
        self._sources: list[Source] = []
        self._lock = threading.Lock()
        self._reloader: Optional[PeriodicReloader] = None
        self._watcher: Optional[FileChangeWatcher] = None
        self._reload_callbacks: list[Callable[[Any], None]] = []
        self._error_callbacks: list[Callable[[Exception], None]] = []

    @classmethod
    def with_reload(cls, target: Any, interval: float) -> "ConfigLoader":
        """Create a loader that re-runs process() every interval seconds.

        Returns immediately; the first pass happens after one interval. Call
        stop() to end reloading.

        Raises:
            ValueError: If interval is not positive
        """
        loader = cls(target)
        loader._reloader = PeriodicReloader(loader._background_process, interval)
        loader._reloader.start()
        return loader

    def process(self) -> None:
        """Apply all registered sources to the target.

        Raises:
            ConfigurationError: From the first source that fails
        """
        with self._lock:
            for source in self._sources:
                source.to_target(self.target)
            logger.debug(
                f"Applied {len(self._sources)} sources to {type(self.target).__name__}"
            )

    def stop(self) -> None:
        """Stop background reloading and file watching.

        Safe to call repeatedly or on a loader without reloading. The target is
        not modified.
        """
        if self._reloader:
            self._reloader.stop()
            self._reloader = None
        if self._watcher:
            self._watcher.stop()
            self._watcher = None

    def is_reloading(self) -> bool:
        return self._reloader is not None and self._reloader.is_running()

    @property
    def sources(self) -> tuple[Source, ...]:
        with self._lock:
            return tuple(self._sources)

    def add_source(self, source: Source) -> "ConfigLoader":
        """Register a source, including custom Source implementations."""
        with self._lock:
            self._sources.append(source)
        logger.debug(f"Registered source {source!r}")
        return self

    def reset_sources(self) -> "ConfigLoader":
        """Remove all registered sources."""
        with self._lock:
            self._sources = []
        return self

    def from_file(self, path: Union[str, Path]) -> "ConfigLoader":
        """Register a file source, detecting the format from the extension."""
        return self.add_source(FileSource(path))

    def from_yaml_file(self, path: Union[str, Path]) -> "ConfigLoader":
        return self.add_source(FileSource(path, ConfigFormat.YAML))

    def from_yaml(self, content: Union[str, bytes]) -> "ConfigLoader":
        return self.add_source(ContentSource(content, ConfigFormat.YAML))

    def from_yaml_reader(self, stream: IO) -> "ConfigLoader":
        return self.add_source(ReaderSource(stream, ConfigFormat.YAML))

    def from_json_file(self, path: Union[str, Path]) -> "ConfigLoader":
        return self.add_source(FileSource(path, ConfigFormat.JSON))

    def from_json(self, content: Union[str, bytes]) -> "ConfigLoader":
        return self.add_source(ContentSource(content, ConfigFormat.JSON))

    def from_json_reader(self, stream: IO) -> "ConfigLoader":
        return self.add_source(ReaderSource(stream, ConfigFormat.JSON))

    def from_toml_file(self, path: Union[str, Path]) -> "ConfigLoader":
        return self.add_source(FileSource(path, ConfigFormat.TOML))

    def from_toml(self, content: Union[str, bytes]) -> "ConfigLoader":
        return self.add_source(ContentSource(content, ConfigFormat.TOML))

    def from_toml_reader(self, stream: IO) -> "ConfigLoader":
        return self.add_source(ReaderSource(stream, ConfigFormat.TOML))

    def from_env(self, prefix: str = "") -> "ConfigLoader":
        """Register an environment source reading ``prefix + tag`` variables."""
        return self.add_source(EnvironmentSource(prefix))

    def on_reload(self, callback: Callable[[Any], None]) -> None:
        """Register a callback run with the target after each background pass."""
        if callback not in self._reload_callbacks:
            self._reload_callbacks.append(callback)

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        """Register a callback run with the error of each failed background pass."""
        if callback not in self._error_callbacks:
            self._error_callbacks.append(callback)

    def watch(self, paths: Iterable[Union[str, Path]], debounce: float = 0.5) -> None:
        """Re-run process() when any of the given files changes on disk."""
        if self._watcher is None:
            self._watcher = FileChangeWatcher(self._background_process, debounce)
        self._watcher.start(paths)

    def _background_process(self) -> None:
        try:
            self.process()
        except Exception as e:
            logger.warning(f"Background configuration reload failed: {e}")
            self._notify(self._error_callbacks, e)
        else:
            self._notify(self._reload_callbacks, self.target)

    def _notify(self, callbacks: list[Callable], arg: Any) -> None:
        for callback in list(callbacks):
            try:
                callback(arg)
            except Exception as e:
                logger.error(f"Reload callback {getattr(callback, '__name__', callback)} failed: {e}")

    def __enter__(self) -> "ConfigLoader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
