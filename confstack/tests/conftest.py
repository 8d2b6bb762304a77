"""Shared test configuration and fixtures for confstack."""

import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pytest
from pydantic import BaseModel, ConfigDict, Field, field_validator

from confstack import setting


@dataclass
class AppSettings:
    """Flat dataclass target covering every env-parsable type."""

    name: str = setting("demo", env="NAME")
    port: int = setting(8080, env="PORT", yaml="listen_port")
    debug: bool = setting(False, env="DEBUG")
    ratio: float = setting(0.5, env="RATIO")
    token: bytes = setting(b"", env="TOKEN")
    timeout: Optional[int] = setting(None, env="TIMEOUT")
    tags: list[str] = setting(default_factory=list, env="TAGS")
    secret: str = setting("", env="-", json="-")
    untagged: str = "keep"


class ServiceSettings(BaseModel):
    """Pydantic model target."""

    host: str = Field("localhost", json_schema_extra={"env": "HOST"})
    port: int = Field(8000, json_schema_extra={"env": "PORT", "toml": "listen"})
    verbose: bool = Field(False, json_schema_extra={"env": "VERBOSE"})


class GuardedSettings(BaseModel):
    """Model that re-validates on assignment."""

    model_config = ConfigDict(validate_assignment=True)

    name: str = Field("demo", json_schema_extra={"env": "NAME"})
    port: int = Field(8000, gt=0, json_schema_extra={"env": "PORT"})

    @field_validator("port")
    @classmethod
    def reject_reserved(cls, value: int) -> int:
        if value == 13:
            raise ValueError("port 13 is reserved")
        return value


class BoundedSettings(BaseModel):
    """Plain model with field constraints."""

    port: int = Field(8000, gt=0, json_schema_extra={"env": "PORT"})
    label: str = Field("x", max_length=3, json_schema_extra={"env": "LABEL"})


@pytest.fixture()
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture()
def app_settings():
    return AppSettings()


@pytest.fixture()
def service_settings():
    return ServiceSettings()
