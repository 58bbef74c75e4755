"""Tests for unit classification, options and error messages."""

import pytest

from crontask.errors import (
    InvalidConfigurationEntry,
    ProcessExitedAbnormally,
    UnsupportedUnitType,
)
from crontask.types import RegistrationOptions
from crontask.units import ProcessStatus, UnitKind, classify_unit
from tests.conftest import FakeProcess, RecordingJob


class TestClassifyUnit:
    """Tests for classify_unit()."""

    def test_job(self):
        assert classify_unit(RecordingJob("a")) is UnitKind.JOB

    def test_process(self):
        assert classify_unit(FakeProcess()) is UnitKind.PROCESS

    def test_unsupported_message_names_accepted_types(self):
        with pytest.raises(UnsupportedUnitType) as exc_info:
            classify_unit("echo hi")
        message = str(exc_info.value)
        assert message.startswith('The item type "str" is not of type ')
        assert "crontask.units.Job|crontask.units.Process" in message
        assert exc_info.value.unit_type is str


class TestProcessDefaults:
    """Tests for behavior Process provides to subclasses."""

    def test_is_running_follows_status(self):
        process = FakeProcess()
        assert not process.is_running()
        process.start()
        assert process.status is ProcessStatus.RUNNING
        assert process.is_running()


class TestRegistrationOptions:
    """Tests for RegistrationOptions.from_value()."""

    def test_none_gives_defaults(self):
        options = RegistrationOptions.from_value(None)
        assert options == RegistrationOptions()
        assert options.needs_wait is False

    def test_instance_is_returned_as_is(self):
        options = RegistrationOptions(background=True)
        assert RegistrationOptions.from_value(options) is options

    def test_wait_background_needs_wait(self):
        options = RegistrationOptions.from_value(
            {"background": True, "wait_background": True}
        )
        assert options.needs_wait is True

    def test_unknown_keys_listed_with_available(self):
        with pytest.raises(ValueError) as exc_info:
            RegistrationOptions.from_value({"timeout": 5})
        assert "timeout" in str(exc_info.value)
        assert "wait_background" in str(exc_info.value)

    @pytest.mark.parametrize("value", [["background"], "background", True])
    def test_non_mapping_rejected(self, value):
        with pytest.raises(TypeError, match="must be RegistrationOptions, a mapping"):
            RegistrationOptions.from_value(value)


class TestErrorMessages:
    """Tests for error message formatting."""

    def test_exit_code_message(self):
        error = ProcessExitedAbnormally("backup.sh", exit_code=2)
        assert str(error) == 'The process "backup.sh" exited with code 2'

    def test_signal_message(self):
        error = ProcessExitedAbnormally("backup.sh", signal=9)
        assert str(error) == 'The process "backup.sh" was terminated by signal 9'

    def test_configuration_entry_message(self):
        error = InvalidConfigurationEntry("* * * * *", "commands|jobs not found")
        assert str(error) == (
            'Invalid schedule entry for "* * * * *": commands|jobs not found'
        )
