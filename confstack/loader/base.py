"""Source contract, target introspection and error types.

A target is the application's configuration object: a dataclass instance or a
pydantic model instance. Sources write into it field by field, so a value that
a source does not provide is left as it was.

Field tags name the key used for each origin::

    @dataclass
    class Settings:
        host: str = setting("localhost", env="HOST")
        port: int = setting(8080, env="PORT", yaml="listen_port")

    class Settings(BaseModel):
        host: str = Field("localhost", json_schema_extra={"env": "HOST"})
"""

import dataclasses
import functools
import logging
import sys
import types
import typing
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    PydanticUserError,
    TypeAdapter,
    ValidationError,
)

logger = logging.getLogger(__name__)

SKIP_TAG = "-"

# encoding/json style key matching
CASE_INSENSITIVE_TAGS = frozenset({"json"})

# YAML and TOML decode bare numbers, so string fields must accept them
_COERCION = ConfigDict(coerce_numbers_to_str=True)


class ConfigurationError(Exception):
    """Base exception for configuration errors."""

    pass


class InvalidSpecificationError(ConfigurationError):
    """Exception raised when the target is not a dataclass or model instance."""

    pass


class FileLoadError(ConfigurationError):
    """Exception raised when file loading fails."""

    pass


class FormatError(ConfigurationError):
    """Exception raised when file format is unsupported or invalid."""

    pass


class DecodeError(ConfigurationError):
    """Exception raised when a decoded document does not fit the target."""

    pass


class EnvironmentParseError(ConfigurationError):
    """Exception raised when an environment value cannot be parsed."""

    def __init__(self, variable: str, value: str, reason: str):
        super().__init__(f"Cannot parse {variable}={value!r}: {reason}")
        self.variable = variable
        self.value = value


@dataclass(frozen=True)
class FieldSpec:
    """A single writable field of a target."""

    name: str
    annotation: Any
    tags: dict[str, str]

    def key_for(self, tag: str, default_to_name: bool = True) -> Optional[str]:
        """Return the key this field is read from, or None if it is skipped."""
        key = self.tags.get(tag)
        if key is None:
            return self.name if default_to_name else None
        if key == "" or key == SKIP_TAG:
            return None
        return key


class Source(ABC):
    """An origin that writes the configuration values it finds into a target."""

    @abstractmethod
    def to_target(self, target: Any) -> None:
        """Write configuration values into target.

        Raises:
            ConfigurationError: If the values cannot be read or applied
        """


def setting(
    default: Any = dataclasses.MISSING,
    *,
    env: Optional[str] = None,
    yaml: Optional[str] = None,
    json: Optional[str] = None,
    toml: Optional[str] = None,
    default_factory: Any = dataclasses.MISSING,
) -> Any:
    """Declare a dataclass field carrying source tags.

    Args:
        default: Default value of the field
        env: Environment variable name, without the loader prefix
        yaml: Key in YAML documents (defaults to the field name)
        json: Key in JSON documents (defaults to the field name)
        toml: Key in TOML documents (defaults to the field name)
        default_factory: Factory for mutable defaults

    Returns:
        A dataclasses.Field
    """
    tags = {
        name: value
        for name, value in (("env", env), ("yaml", yaml), ("json", json), ("toml", toml))
        if value is not None
    }
    return dataclasses.field(
        default=default, default_factory=default_factory, metadata=tags
    )


def describe_target(target: Any) -> list[FieldSpec]:
    """List the writable fields of a target.

    Raises:
        InvalidSpecificationError: If target is not a mutable dataclass or
            pydantic model instance
    """
    if isinstance(target, type):
        raise InvalidSpecificationError(
            f"Target must be an instance, got the class {target.__name__}"
        )

    if isinstance(target, BaseModel):
        model = type(target)
        if model.model_config.get("frozen"):
            raise InvalidSpecificationError(f"Model {model.__name__} is frozen")
        specs = []
        for name, info in model.model_fields.items():
            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            tags = {k: v for k, v in extra.items() if isinstance(v, str)}
            annotation = info.annotation
            if info.metadata:
                # Field(gt=...) and similar constraints live in metadata
                annotation = Annotated[(annotation, *info.metadata)]
            specs.append(FieldSpec(name, annotation, tags))
        return specs

    if dataclasses.is_dataclass(target):
        cls = type(target)
        if cls.__dataclass_params__.frozen:
            raise InvalidSpecificationError(f"Dataclass {cls.__name__} is frozen")
        hints = _dataclass_hints(cls)
        return [
            FieldSpec(f.name, hints[f.name], dict(f.metadata))
            for f in dataclasses.fields(target)
        ]

    raise InvalidSpecificationError(
        f"Target must be a dataclass or pydantic model instance, got {type(target).__name__}"
    )


def _dataclass_hints(cls: type) -> dict[str, Any]:
    """Resolve field annotations, keeping Annotated extras.

    Under ``from __future__ import annotations`` a single unresolvable name
    (e.g. a TYPE_CHECKING-only import) makes get_type_hints fail for the whole
    class, so fall back to resolving field by field. Fields that still cannot
    be resolved are typed Any.
    """
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError):
        pass

    hints = {}
    for f in dataclasses.fields(cls):
        annotation = f.type
        if isinstance(annotation, str):
            owner = next(
                (k for k in cls.__mro__ if f.name in k.__dict__.get("__annotations__", {})),
                cls,
            )
            namespace = getattr(sys.modules.get(owner.__module__), "__dict__", {})
            try:
                annotation = eval(annotation, namespace, dict(vars(owner)))
            except (NameError, TypeError, SyntaxError) as e:
                logger.warning(
                    f"Cannot resolve annotation of {cls.__name__}.{f.name} ({f.type!r}): {e}"
                )
                annotation = Any
        hints[f.name] = annotation
    return hints


@functools.lru_cache(maxsize=None)
def _cached_adapter(annotation: Any) -> TypeAdapter:
    return _build_adapter(annotation)


def _build_adapter(annotation: Any) -> TypeAdapter:
    try:
        return TypeAdapter(annotation, config=_COERCION)
    except PydanticUserError:
        # models and dataclasses carry their own config
        return TypeAdapter(annotation)


def coerce(annotation: Any, value: Any) -> Any:
    """Coerce a decoded value to a field annotation, constraints included.

    Raises:
        pydantic.ValidationError: If the value does not fit the annotation
    """
    try:
        adapter = _cached_adapter(annotation)
    except TypeError:
        # unhashable Annotated metadata
        adapter = _build_adapter(annotation)
    return adapter.validate_python(value)


def unwrap_annotation(annotation: Any) -> Any:
    """Reduce Annotated[X, ...], Optional[X] and X | None to X."""
    while True:
        origin = typing.get_origin(annotation)
        if origin is Annotated:
            annotation = typing.get_args(annotation)[0]
        elif origin in (Union, types.UnionType):
            args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
            if len(args) != 1:
                return annotation
            annotation = args[0]
        else:
            return annotation


def _lookup(data: dict, key: str, fold_case: bool) -> tuple[bool, Any]:
    if key in data:
        return True, data[key]
    if fold_case:
        wanted = key.casefold()
        for candidate, value in data.items():
            if isinstance(candidate, str) and candidate.casefold() == wanted:
                return True, value
    return False, None


def _snapshot(target: Any, names: Iterable[str]) -> tuple[dict[str, Any], Optional[set]]:
    previous = {name: getattr(target, name) for name in names}
    fields_set = set(target.model_fields_set) if isinstance(target, BaseModel) else None
    return previous, fields_set


def _restore(target: Any, previous: dict[str, Any], fields_set: Optional[set]) -> None:
    if isinstance(target, BaseModel):
        # write around validate_assignment, the old values were already valid
        target.__dict__.update(previous)
        object.__setattr__(target, "__pydantic_fields_set__", fields_set)
    else:
        for name, value in previous.items():
            setattr(target, name, value)


def apply_mapping(target: Any, data: Any, tag: str) -> int:
    """Copy a decoded document onto a target.

    Keys are matched to fields through ``tag`` (the field name when untagged).
    JSON keys fall back to a case-insensitive match when there is no exact
    one. Unknown keys are ignored. All values are coerced, field constraints
    included, before any field is written, and a write rejected by the model
    rolls back the earlier ones, so a bad document leaves the target untouched.

    Args:
        target: Configuration object to write into
        data: Decoded document; None is treated as empty
        tag: Tag name used to look up field keys

    Returns:
        Number of fields written

    Raises:
        InvalidSpecificationError: If target is not a valid target
        DecodeError: If the document root is not a mapping or a value has the
            wrong type
    """
    specs = describe_target(target)

    if data is None:
        return 0
    if not isinstance(data, dict):
        raise DecodeError(
            f"Document root must be a mapping, got {type(data).__name__}"
        )

    fold_case = tag in CASE_INSENSITIVE_TAGS
    updates = {}
    for spec in specs:
        key = spec.key_for(tag)
        if key is None:
            continue
        found, raw = _lookup(data, key, fold_case)
        if not found:
            continue
        try:
            updates[spec.name] = coerce(spec.annotation, raw)
        except ValidationError as e:
            raise DecodeError(f"Invalid value for field '{spec.name}' (key '{key}'): {e}") from e

    previous, fields_set = _snapshot(target, updates)
    for name, value in updates.items():
        try:
            setattr(target, name, value)
        except ValidationError as e:
            # validate_assignment runs field and model validators on write
            _restore(target, previous, fields_set)
            raise DecodeError(f"Invalid value for field '{name}': {e}") from e
        logger.debug(f"Set {type(target).__name__}.{name} from {tag} document")

    return len(updates)
