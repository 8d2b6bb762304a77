"""Layered configuration loading.

Populates a dataclass or pydantic model from files, in-memory documents,
streams and environment variables, applied in registration order.
"""

from .loader import (
    ConfigFormat,
    ConfigurationError,
    ContentSource,
    DecodeError,
    EnvironmentParseError,
    EnvironmentSource,
    FileLoadError,
    FileSource,
    FormatError,
    InvalidSpecificationError,
    ReaderSource,
    Source,
    setting,
)
from .manager import ConfigLoader

__version__ = "1.0.0"

__all__ = [
    "ConfigFormat",
    "ConfigLoader",
    "ConfigurationError",
    "ContentSource",
    "DecodeError",
    "EnvironmentParseError",
    "EnvironmentSource",
    "FileLoadError",
    "FileSource",
    "FormatError",
    "InvalidSpecificationError",
    "ReaderSource",
    "Source",
    "setting",
]
