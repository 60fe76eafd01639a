"""
Sensor Command Module

센서 명령 정의 (종류 + 불변 파라미터)
- prepare: 첫 실행 전 관련 상태 필드 초기화
- build_frame: 매 재시도마다 전송할 TX 프레임
- is_fulfilled: 상태가 명령 완료를 나타내는지 확인
- command_result: 완료 시 Future에 전달할 값
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union

from .exceptions import InvalidArgumentError
from .protocol import ReportingMode, Setting, build_command_frame
from .state import SensorState


# Working period 범위 (분)
MIN_WORKING_PERIOD = 0
MAX_WORKING_PERIOD = 30


class CommandKind(Enum):
    """명령 종류"""
    QUERY = 'query'
    GET_REPORTING_MODE = 'get_reporting_mode'
    SET_REPORTING_MODE = 'set_reporting_mode'
    SET_SLEEP = 'set_sleep'
    GET_FIRMWARE_VERSION = 'get_firmware_version'
    GET_WORKING_PERIOD = 'get_working_period'
    SET_WORKING_PERIOD = 'set_working_period'


class _CommandInfo(NamedTuple):
    setting: Setting
    write: bool
    fields: Tuple[str, ...]  # prepare에서 초기화하고 완료 확인에 쓰는 필드


_COMMANDS: Dict[CommandKind, _CommandInfo] = {
    CommandKind.QUERY: _CommandInfo(Setting.QUERY, False, ('pm2_5', 'pm10')),
    CommandKind.GET_REPORTING_MODE: _CommandInfo(Setting.REPORTING_MODE, False, ('mode',)),
    CommandKind.SET_REPORTING_MODE: _CommandInfo(Setting.REPORTING_MODE, True, ('mode',)),
    CommandKind.SET_SLEEP: _CommandInfo(Setting.SLEEP, True, ('is_sleeping',)),
    CommandKind.GET_FIRMWARE_VERSION: _CommandInfo(Setting.FIRMWARE_VERSION, False, ('firmware',)),
    CommandKind.GET_WORKING_PERIOD: _CommandInfo(Setting.WORKING_PERIOD, False, ('working_period',)),
    CommandKind.SET_WORKING_PERIOD: _CommandInfo(Setting.WORKING_PERIOD, True, ('working_period',)),
}


@dataclass(frozen=True)
class SensorCommand:
    """
    대기열에 들어가는 명령

    value: SET 명령의 요청 값 (ReportingMode, bool, int), GET/QUERY는 None
    """
    kind: CommandKind
    value: Any = None

    def __str__(self) -> str:
        if self.value is None:
            return self.kind.value
        return f"{self.kind.value}({self.value})"


# Command constructors (입력 검증 포함)

def query() -> SensorCommand:
    """최신 PM 측정값 요청"""
    return SensorCommand(CommandKind.QUERY)


def get_reporting_mode() -> SensorCommand:
    return SensorCommand(CommandKind.GET_REPORTING_MODE)


def set_reporting_mode(mode: Union[ReportingMode, str]) -> SensorCommand:
    """
    보고 모드 설정

    Args:
        mode: ReportingMode 또는 'active' / 'query'

    Raises:
        InvalidArgumentError: 알 수 없는 모드
    """
    if isinstance(mode, ReportingMode):
        return SensorCommand(CommandKind.SET_REPORTING_MODE, mode)

    try:
        return SensorCommand(CommandKind.SET_REPORTING_MODE, ReportingMode(mode))
    except ValueError:
        raise InvalidArgumentError(f"Invalid mode: {mode!r} (valid: 'active', 'query')")


def set_sleep(should_sleep: bool) -> SensorCommand:
    """
    슬립 모드 설정 (팬과 레이저 정지)

    Raises:
        InvalidArgumentError: bool이 아닌 값
    """
    if not isinstance(should_sleep, bool):
        raise InvalidArgumentError(f"Sleep flag must be bool, got {should_sleep!r}")
    return SensorCommand(CommandKind.SET_SLEEP, should_sleep)


def get_firmware_version() -> SensorCommand:
    return SensorCommand(CommandKind.GET_FIRMWARE_VERSION)


def get_working_period() -> SensorCommand:
    return SensorCommand(CommandKind.GET_WORKING_PERIOD)


def set_working_period(minutes: int) -> SensorCommand:
    """
    작업 주기 설정 (0이면 연속 동작)

    Raises:
        InvalidArgumentError: 0~30 범위의 정수가 아닌 경우
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidArgumentError(f"Working period must be int, got {minutes!r}")
    if not MIN_WORKING_PERIOD <= minutes <= MAX_WORKING_PERIOD:
        raise InvalidArgumentError(
            f"Invalid working period: {minutes} "
            f"(valid: {MIN_WORKING_PERIOD}-{MAX_WORKING_PERIOD})"
        )
    return SensorCommand(CommandKind.SET_WORKING_PERIOD, minutes)


# Kind-specific behaviour

def _payload(command: SensorCommand) -> int:
    """SET 명령의 데이터 바이트 (offset 4)"""
    if command.kind is CommandKind.SET_REPORTING_MODE:
        return 0 if command.value is ReportingMode.ACTIVE else 1
    if command.kind is CommandKind.SET_SLEEP:
        return 0 if command.value else 1
    if command.kind is CommandKind.SET_WORKING_PERIOD:
        return command.value
    return 0


def prepare_command(command: SensorCommand, state: SensorState) -> None:
    """관련 상태 필드 초기화 (첫 실행 전 1회)"""
    state.clear(*_COMMANDS[command.kind].fields)


def build_frame(command: SensorCommand) -> bytes:
    """명령 TX 프레임 생성"""
    info = _COMMANDS[command.kind]
    return build_command_frame(info.setting.value, info.write, bytes([_payload(command)]))


def is_fulfilled(command: SensorCommand, state: SensorState) -> bool:
    """
    완료 여부

    GET/QUERY: 관련 필드가 모두 다시 채워짐
    SET: 센서가 보고한 값이 요청 값과 같음
    """
    info = _COMMANDS[command.kind]
    values = [getattr(state, name) for name in info.fields]

    if info.write:
        return all(value == command.value for value in values)
    return all(value is not None for value in values)


def command_result(command: SensorCommand, state: SensorState) -> Optional[Any]:
    """완료된 명령의 결과값 (SET 명령은 None)"""
    if command.kind is CommandKind.QUERY:
        return state.measurement
    if command.kind is CommandKind.GET_REPORTING_MODE:
        return state.mode
    if command.kind is CommandKind.GET_FIRMWARE_VERSION:
        return state.firmware
    if command.kind is CommandKind.GET_WORKING_PERIOD:
        return state.working_period
    return None
