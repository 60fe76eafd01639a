"""
Sensor Command Unit Tests

명령 정의 테스트:
- 입력 검증
- 명령별 TX 프레임
- prepare / 완료 조건 / 결과값
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from sds011 import commands
from sds011.commands import (
    CommandKind, SensorCommand,
    prepare_command, build_frame, is_fulfilled, command_result
)
from sds011.exceptions import InvalidArgumentError
from sds011.protocol import ReportingMode, verify_packet
from sds011.state import SensorState, Measurement


class TestCommandValidation:
    """입력 검증 (동기적으로 InvalidArgumentError)"""

    def test_working_period_range(self):
        assert commands.set_working_period(0).value == 0
        assert commands.set_working_period(30).value == 30

        with pytest.raises(InvalidArgumentError):
            commands.set_working_period(-1)
        with pytest.raises(InvalidArgumentError):
            commands.set_working_period(31)

    def test_working_period_type(self):
        with pytest.raises(InvalidArgumentError):
            commands.set_working_period(1.5)
        with pytest.raises(InvalidArgumentError):
            commands.set_working_period(True)

    def test_reporting_mode_names(self):
        assert commands.set_reporting_mode('active').value is ReportingMode.ACTIVE
        assert commands.set_reporting_mode('query').value is ReportingMode.QUERY
        assert commands.set_reporting_mode(ReportingMode.QUERY).value is ReportingMode.QUERY

    def test_reporting_mode_invalid(self):
        with pytest.raises(InvalidArgumentError):
            commands.set_reporting_mode('passive')

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            commands.set_reporting_mode('passive')

    def test_sleep_flag(self):
        assert commands.set_sleep(True).value is True
        with pytest.raises(InvalidArgumentError):
            commands.set_sleep(1)


class TestBuildFrame:
    """명령별 TX 프레임"""

    def test_query(self):
        frame = build_frame(commands.query())
        assert frame[2:5] == bytes([4, 0, 0])

    def test_get_reporting_mode(self):
        frame = build_frame(commands.get_reporting_mode())
        assert frame[2:5] == bytes([2, 0, 0])

    def test_set_reporting_mode(self):
        assert build_frame(commands.set_reporting_mode('active'))[2:5] == bytes([2, 1, 0])
        assert build_frame(commands.set_reporting_mode('query'))[2:5] == bytes([2, 1, 1])

    def test_set_sleep(self):
        assert build_frame(commands.set_sleep(True))[2:5] == bytes([6, 1, 0])
        assert build_frame(commands.set_sleep(False))[2:5] == bytes([6, 1, 1])

    def test_get_firmware_version(self):
        assert build_frame(commands.get_firmware_version())[2:5] == bytes([7, 0, 0])

    def test_working_period(self):
        assert build_frame(commands.get_working_period())[2:5] == bytes([8, 0, 0])
        assert build_frame(commands.set_working_period(30))[2:5] == bytes([8, 1, 30])

    def test_set_working_period_checksum(self):
        """AA B4 08 01 1E ... FF FF 25 AB"""
        frame = build_frame(commands.set_working_period(30))
        # 0x08 + 0x01 + 0x1E + 0xFF + 0xFF = 0x225
        assert frame[17] == 0x25

    def test_every_kind_has_frame(self):
        samples = {
            CommandKind.SET_REPORTING_MODE: ReportingMode.ACTIVE,
            CommandKind.SET_SLEEP: False,
            CommandKind.SET_WORKING_PERIOD: 1,
        }
        for kind in CommandKind:
            frame = build_frame(SensorCommand(kind, samples.get(kind)))
            assert len(frame) == 19
            assert not verify_packet(frame)  # 송신 프레임은 수신 형식이 아님


class TestPrepare:
    """prepare: 관련 필드만 초기화"""

    def test_query_clears_pm(self):
        state = SensorState(pm2_5=1.0, pm10=2.0, firmware='1-2-3')
        prepare_command(commands.query(), state)

        assert state.pm2_5 is None
        assert state.pm10 is None
        assert state.firmware == '1-2-3'

    def test_set_mode_clears_mode(self):
        state = SensorState(mode=ReportingMode.ACTIVE, working_period=3)
        prepare_command(commands.set_reporting_mode('active'), state)

        assert state.mode is None
        assert state.working_period == 3


class TestFulfilled:
    """완료 조건"""

    def test_query(self):
        command = commands.query()
        state = SensorState()

        assert not is_fulfilled(command, state)
        state.pm2_5 = 7.5
        assert not is_fulfilled(command, state)
        state.pm10 = 8.1
        assert is_fulfilled(command, state)

    def test_get_commands(self):
        assert is_fulfilled(commands.get_reporting_mode(), SensorState(mode=ReportingMode.QUERY))
        assert is_fulfilled(commands.get_firmware_version(), SensorState(firmware='16-11-21'))
        assert is_fulfilled(commands.get_working_period(), SensorState(working_period=0))

    def test_set_mode_requires_matching_value(self):
        command = commands.set_reporting_mode('active')

        assert not is_fulfilled(command, SensorState())
        assert not is_fulfilled(command, SensorState(mode=ReportingMode.QUERY))
        assert is_fulfilled(command, SensorState(mode=ReportingMode.ACTIVE))

    def test_set_sleep(self):
        command = commands.set_sleep(False)

        assert not is_fulfilled(command, SensorState())
        assert not is_fulfilled(command, SensorState(is_sleeping=True))
        assert is_fulfilled(command, SensorState(is_sleeping=False))

    def test_set_working_period(self):
        command = commands.set_working_period(0)

        assert not is_fulfilled(command, SensorState())
        assert not is_fulfilled(command, SensorState(working_period=5))
        assert is_fulfilled(command, SensorState(working_period=0))


class TestCommandResult:
    """결과값"""

    def test_results(self):
        state = SensorState(
            pm2_5=7.5, pm10=8.1, mode=ReportingMode.ACTIVE,
            firmware='16-11-21', working_period=30, is_sleeping=False
        )

        assert command_result(commands.query(), state) == Measurement(7.5, 8.1)
        assert command_result(commands.get_reporting_mode(), state) is ReportingMode.ACTIVE
        assert command_result(commands.get_firmware_version(), state) == '16-11-21'
        assert command_result(commands.get_working_period(), state) == 30

    def test_set_commands_return_none(self):
        state = SensorState(mode=ReportingMode.ACTIVE, is_sleeping=True, working_period=1)

        assert command_result(commands.set_reporting_mode('active'), state) is None
        assert command_result(commands.set_sleep(True), state) is None
        assert command_result(commands.set_working_period(1), state) is None

    def test_command_str(self):
        assert str(commands.query()) == 'query'
        assert str(commands.set_working_period(5)) == 'set_working_period(5)'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
