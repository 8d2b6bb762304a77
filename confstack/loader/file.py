"""Document configuration sources.

Supports loading configuration from JSON, YAML and TOML documents held in
files, in memory, or behind a readable stream.
"""

import json
import logging
import tomllib
from abc import abstractmethod
from enum import Enum
from pathlib import Path
from typing import IO, Any, Optional, Union

import yaml

from .base import FileLoadError, FormatError, Source, apply_mapping

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"


class ConfigFormat(Enum):
    """Supported document formats. The value doubles as the field tag name."""

    JSON = "json"
    YAML = "yaml"
    TOML = "toml"


_SUFFIXES = {
    ".json": ConfigFormat.JSON,
    ".yaml": ConfigFormat.YAML,
    ".yml": ConfigFormat.YAML,
    ".toml": ConfigFormat.TOML,
}


def detect_format(path: Union[str, Path]) -> ConfigFormat:
    """Auto-detect document format from a file extension.

    Raises:
        FormatError: If format cannot be detected
    """
    suffix = Path(path).suffix.lower()
    if suffix in _SUFFIXES:
        return _SUFFIXES[suffix]
    raise FormatError(f"Unsupported file format: {suffix or path}")


def parse_content(
    content: Union[str, bytes], format: ConfigFormat, encoding: str = DEFAULT_ENCODING
) -> Any:
    """Decode document content.

    Args:
        content: Raw document
        format: Document format
        encoding: Encoding used when content is bytes

    Returns:
        The decoded document, or None for an empty one

    Raises:
        FormatError: If decoding fails
    """
    try:
        if isinstance(content, bytes):
            content = content.decode(encoding)

        if format == ConfigFormat.JSON:
            if not content.strip():
                return None
            return json.loads(content)

        elif format == ConfigFormat.YAML:
            return yaml.safe_load(content)

        elif format == ConfigFormat.TOML:
            return tomllib.loads(content)

        else:
            raise FormatError(f"Unsupported format: {format}")

    except (UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        raise FormatError(f"Failed to parse {format.value} content: {e}") from e


class DocumentSource(Source):
    """Base for sources that decode a whole document and copy it into the target."""

    def __init__(self, format: ConfigFormat, encoding: str = DEFAULT_ENCODING):
        self.format = format
        self.encoding = encoding

    @abstractmethod
    def read(self) -> Union[str, bytes]:
        """Return the raw document."""

    def load(self) -> Any:
        """Read and decode the document."""
        return parse_content(self.read(), self.format, self.encoding)

    def to_target(self, target: Any) -> None:
        count = apply_mapping(target, self.load(), self.format.value)
        logger.debug(f"{self!r} wrote {count} fields")


class FileSource(DocumentSource):
    """Reads a document file on every pass."""

    def __init__(
        self,
        path: Union[str, Path],
        format: Optional[ConfigFormat] = None,
        encoding: str = DEFAULT_ENCODING,
    ):
        """Initialize the file source.

        Args:
            path: Path to configuration file
            format: File format (auto-detected if None)
            encoding: File encoding to use

        Raises:
            FormatError: If format is None and the extension is unknown
        """
        self.path = Path(path)
        super().__init__(format or detect_format(self.path), encoding)

    def read(self) -> bytes:
        if not self.path.is_file():
            raise FileLoadError(f"Configuration file not found: {self.path}")
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise FileLoadError(f"Failed to read file {self.path}: {e}") from e

    def __repr__(self) -> str:
        return f"FileSource({str(self.path)!r}, {self.format.value})"


class ContentSource(DocumentSource):
    """Decodes an in-memory document on every pass."""

    def __init__(
        self,
        content: Union[str, bytes],
        format: ConfigFormat,
        encoding: str = DEFAULT_ENCODING,
    ):
        super().__init__(format, encoding)
        self.content = content

    def read(self) -> Union[str, bytes]:
        return self.content

    def __repr__(self) -> str:
        unit = "bytes" if isinstance(self.content, bytes) else "chars"
        return f"ContentSource({len(self.content)} {unit}, {self.format.value})"


class ReaderSource(DocumentSource):
    """Reads a stream to EOF on every pass.

    The stream is not rewound, so once it is drained later passes see an empty
    document and leave the target unchanged.
    """

    def __init__(
        self,
        stream: IO,
        format: ConfigFormat,
        encoding: str = DEFAULT_ENCODING,
    ):
        super().__init__(format, encoding)
        self.stream = stream

    def read(self) -> Union[str, bytes]:
        try:
            return self.stream.read()
        except (OSError, ValueError) as e:
            # ValueError: I/O operation on closed file
            raise FileLoadError(f"Failed to read stream: {e}") from e

    def __repr__(self) -> str:
        return f"ReaderSource({type(self.stream).__name__}, {self.format.value})"
