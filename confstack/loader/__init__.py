"""Configuration source package.

Each source writes the values it finds into a target object: document sources
decode JSON, YAML or TOML from files, memory or streams, and the environment
source binds tagged fields to environment variables.
"""

from .base import (
    ConfigurationError,
    DecodeError,
    EnvironmentParseError,
    FieldSpec,
    FileLoadError,
    FormatError,
    InvalidSpecificationError,
    Source,
    apply_mapping,
    describe_target,
    setting,
)
from .env import EnvironmentSource
from .file import (
    ConfigFormat,
    ContentSource,
    DocumentSource,
    FileSource,
    ReaderSource,
    detect_format,
    parse_content,
)

__all__ = [
    "ConfigFormat",
    "ConfigurationError",
    "ContentSource",
    "DecodeError",
    "DocumentSource",
    "EnvironmentParseError",
    "EnvironmentSource",
    "FieldSpec",
    "FileLoadError",
    "FileSource",
    "FormatError",
    "InvalidSpecificationError",
    "ReaderSource",
    "Source",
    "apply_mapping",
    "describe_target",
    "detect_format",
    "parse_content",
    "setting",
]
