"""Environment variable configuration source.

Binds environment variables to tagged target fields, parsing each value by the
field's type. Only flat fields are supported.
"""

import logging
import os
import re
from collections.abc import Mapping
from typing import Any, Callable, Optional

from pydantic import ValidationError

from .base import (
    EnvironmentParseError,
    Source,
    coerce,
    describe_target,
    unwrap_annotation,
)

logger = logging.getLogger(__name__)

ENV_TAG = "env"

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_FLOAT_PATTERN = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def parse_int(value: str) -> int:
    if not _INT_PATTERN.fullmatch(value):
        raise ValueError("invalid integer")
    return int(value)


def parse_bool(value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError("invalid boolean")


def parse_float(value: str) -> float:
    if not _FLOAT_PATTERN.fullmatch(value):
        raise ValueError("invalid float")
    return float(value)


def parse_bytes(value: str) -> bytes:
    # undo the surrogateescape decoding os.environ applies
    return os.fsencode(value)


PARSERS: dict[type, Callable[[str], Any]] = {
    str: str,
    int: parse_int,
    bool: parse_bool,
    float: parse_float,
    bytes: parse_bytes,
    bytearray: lambda value: bytearray(parse_bytes(value)),
}


class EnvironmentSource(Source):
    """Environment variable configuration source.

    Each field tagged with ``env`` is read from ``prefix + tag``. Missing
    variables leave the field alone, untagged fields and fields tagged ``-``
    are never read, and fields of unsupported types are skipped.
    """

    def __init__(
        self,
        prefix: str = "",
        tag_name: str = ENV_TAG,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize the environment source.

        Args:
            prefix: Prepended to every tag to form the variable name
            tag_name: Field tag holding the variable name
            environ: Variables to read (os.environ if None)
        """
        self.prefix = prefix
        self.tag_name = tag_name
        self.environ = environ

    def to_target(self, target: Any) -> None:
        """Write tagged environment values into target.

        Raises:
            InvalidSpecificationError: If target is not a valid target
            EnvironmentParseError: On the first value that cannot be parsed.
                Fields written before it keep their new values.
        """
        environ = os.environ if self.environ is None else self.environ
        count = 0

        for spec in describe_target(target):
            tag = spec.key_for(self.tag_name, default_to_name=False)
            if tag is None:
                continue

            variable = self.prefix + tag
            raw = environ.get(variable)
            if raw is None:
                continue

            parser = PARSERS.get(unwrap_annotation(spec.annotation))
            if parser is None:
                logger.debug(
                    f"Skipping {variable}: unsupported field type {spec.annotation!r}"
                )
                continue

            try:
                value = parser(raw)
            except ValueError as e:
                raise EnvironmentParseError(variable, raw, str(e)) from e

            try:
                # field constraints, then validate_assignment on write
                setattr(target, spec.name, coerce(spec.annotation, value))
            except ValidationError as e:
                raise EnvironmentParseError(variable, raw, str(e)) from e
            count += 1
            logger.debug(f"Loaded env var: {variable} -> {spec.name}")

        logger.debug(f"Loaded {count} environment variables with prefix '{self.prefix}'")

    def __repr__(self) -> str:
        return f"EnvironmentSource(prefix={self.prefix!r})"
