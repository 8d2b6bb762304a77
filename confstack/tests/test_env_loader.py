"""Tests for environment variable configuration source.

Tests type parsing, prefix handling, tag skipping and error handling.
"""

import os

import pytest
from conftest import AppSettings, BoundedSettings, GuardedSettings
from deferred_models import DeferredSettings

from confstack.loader.base import (
    ConfigurationError,
    EnvironmentParseError,
    InvalidSpecificationError,
)
from confstack.loader.env import (
    EnvironmentSource,
    parse_bool,
    parse_float,
    parse_int,
)


class TestParsers:
    """Test cases for the primitive parsers."""

    def test_parse_bool_true_values(self):
        for value in ["1", "t", "T", "TRUE", "true", "True"]:
            assert parse_bool(value) is True

    def test_parse_bool_false_values(self):
        for value in ["0", "f", "F", "FALSE", "false", "False"]:
            assert parse_bool(value) is False

    @pytest.mark.parametrize("value", ["yes", "on", "tRuE", "", " true"])
    def test_parse_bool_invalid(self, value):
        with pytest.raises(ValueError):
            parse_bool(value)

    def test_parse_int(self):
        assert parse_int("42") == 42
        assert parse_int("-42") == -42
        assert parse_int("+7") == 7

    @pytest.mark.parametrize("value", ["4.2", "1_000", " 1", "0x10", "", "abc"])
    def test_parse_int_invalid(self, value):
        with pytest.raises(ValueError):
            parse_int(value)

    def test_parse_float(self):
        assert parse_float("3.14") == 3.14
        assert parse_float("-1e3") == -1000.0
        assert parse_float(".5") == 0.5
        assert parse_float("7") == 7.0
        assert parse_float("Inf") == float("inf")

    @pytest.mark.parametrize("value", ["1,5", "1_0", "", "pi"])
    def test_parse_float_invalid(self, value):
        with pytest.raises(ValueError):
            parse_float(value)


class TestEnvironmentSource:
    """Test cases for EnvironmentSource class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.original_env = os.environ.copy()

    def teardown_method(self):
        """Restore original environment."""
        os.environ.clear()
        os.environ.update(self.original_env)

    def test_init_with_defaults(self):
        source = EnvironmentSource()
        assert source.prefix == ""
        assert source.tag_name == "env"
        assert source.environ is None

    def test_all_supported_types(self, app_settings):
        environ = {
            "NAME": "from-env",
            "PORT": "9090",
            "DEBUG": "true",
            "RATIO": "0.75",
            "TOKEN": "s3cr3t",
            "TIMEOUT": "30",
        }

        EnvironmentSource(environ=environ).to_target(app_settings)

        assert app_settings.name == "from-env"
        assert app_settings.port == 9090
        assert app_settings.debug is True
        assert app_settings.ratio == 0.75
        assert app_settings.token == b"s3cr3t"
        assert app_settings.timeout == 30

    def test_reads_os_environ_by_default(self, app_settings):
        os.environ["CONFSTACK_TEST_NAME"] = "process-env"

        EnvironmentSource(prefix="CONFSTACK_TEST_").to_target(app_settings)

        assert app_settings.name == "process-env"

    def test_prefix(self, app_settings):
        environ = {"APP_NAME": "prefixed", "NAME": "bare"}

        EnvironmentSource(prefix="APP_", environ=environ).to_target(app_settings)

        assert app_settings.name == "prefixed"

    def test_missing_variables_leave_fields(self, app_settings):
        EnvironmentSource(environ={}).to_target(app_settings)
        assert app_settings == AppSettings()

    def test_empty_value_is_set_for_strings(self, app_settings):
        EnvironmentSource(environ={"NAME": ""}).to_target(app_settings)
        assert app_settings.name == ""

    def test_skip_and_untagged_fields(self, app_settings):
        environ = {"-": "nope", "SECRET": "nope", "UNTAGGED": "nope"}

        EnvironmentSource(environ=environ).to_target(app_settings)

        assert app_settings.secret == ""
        assert app_settings.untagged == "keep"

    def test_unsupported_type_skipped(self, app_settings):
        EnvironmentSource(environ={"TAGS": "a,b"}).to_target(app_settings)
        assert app_settings.tags == []

    def test_parse_error_stops_processing(self, app_settings):
        environ = {"NAME": "set-first", "PORT": "eighty", "DEBUG": "true"}

        with pytest.raises(EnvironmentParseError) as exc_info:
            EnvironmentSource(environ=environ).to_target(app_settings)

        assert exc_info.value.variable == "PORT"
        assert exc_info.value.value == "eighty"
        # fields are visited in declaration order
        assert app_settings.name == "set-first"
        assert app_settings.debug is False

    def test_custom_tag_name(self):
        from dataclasses import dataclass

        from confstack import setting

        @dataclass
        class Target:
            level: str = setting("info", env="LEVEL")

        source = EnvironmentSource(tag_name="json", environ={"level": "debug"})
        target = Target()
        source.to_target(target)

        # the json tag is absent, so the field is not env-bound under that tag
        assert target.level == "info"

    def test_pydantic_target(self, service_settings):
        environ = {"SVC_HOST": "db", "SVC_PORT": "5432", "SVC_VERBOSE": "1"}

        EnvironmentSource(prefix="SVC_", environ=environ).to_target(service_settings)

        assert service_settings.host == "db"
        assert service_settings.port == 5432
        assert service_settings.verbose is True

    def test_invalid_target(self):
        with pytest.raises(InvalidSpecificationError):
            EnvironmentSource(environ={}).to_target({"name": "x"})

    def test_bytes_keep_undecodable_octets(self, app_settings):
        # os.environ decodes non-UTF-8 octets as lone surrogates
        EnvironmentSource(environ={"TOKEN": "ab\udcff"}).to_target(app_settings)
        assert app_settings.token == b"ab\xff"


class TestFieldConstraints:
    """Constraints declared on fields apply to environment values."""

    @pytest.mark.parametrize("raw", ["-5", "0"])
    def test_model_constraint_rejected(self, raw):
        target = BoundedSettings()

        with pytest.raises(EnvironmentParseError) as exc_info:
            EnvironmentSource(environ={"PORT": raw}).to_target(target)

        assert exc_info.value.variable == "PORT"
        assert exc_info.value.value == raw
        assert target.port == 8000

    def test_validate_assignment_model(self):
        target = GuardedSettings()

        with pytest.raises(ConfigurationError):
            EnvironmentSource(environ={"PORT": "-5"}).to_target(target)
        with pytest.raises(EnvironmentParseError, match="reserved"):
            EnvironmentSource(environ={"PORT": "13"}).to_target(target)

        assert target.port == 8000

    def test_deferred_annotations(self):
        target = DeferredSettings()

        EnvironmentSource(environ={"PORT": "42", "WORKERS": "4"}).to_target(target)

        assert target.port == 42
        assert target.workers == 4

    def test_deferred_annotated_constraint(self):
        with pytest.raises(EnvironmentParseError) as exc_info:
            EnvironmentSource(environ={"WORKERS": "0"}).to_target(DeferredSettings())

        assert exc_info.value.variable == "WORKERS"
