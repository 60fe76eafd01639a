"""
SDS011 Sensor Driver Library

SDS011 미세먼지 센서 시리얼 통신 라이브러리
- 패킷 코덱 (수신 프레임 검증/디코딩, 명령 프레임 생성)
- 명령 대기열 및 재시도 엔진
- 측정값/종료 이벤트 구독

사용 예:
    from sds011 import SDS011

    with SDS011(port='/dev/ttyUSB0') as sensor:
        sensor.set_reporting_mode('query').result()
        sensor.set_working_period(0).result()

        measurement = sensor.query().result()
        print(f"PM2.5: {measurement.pm2_5}, PM10: {measurement.pm10}")

        print(sensor.get_firmware_version().result())
"""

__version__ = '1.0.0'

# Core classes
from .sensor import SDS011
from .serial_comm import SerialConnection
from .engine import CommandQueue, ALLOWED_RETRIES, COMMAND_RETRY_INTERVAL
from .config import SensorConfig, load_config

# State & commands
from .state import SensorState, Measurement
from .commands import CommandKind, SensorCommand
from .events import EventChannel, Subscription

# Protocol
from .protocol import (
    FrameType, Setting, ReportingMode, UnknownCodePolicy,
    FieldUpdate, CommandFrame, PacketDecoder,
    verify_packet, check_packet, decode_packet,
    build_command_frame, add_checksum, calculate_checksum,
    HEAD, TAIL
)

# Exceptions
from .exceptions import (
    SDS011Error,
    InvalidArgumentError,
    CommunicationError,
    ConnectionError,
    ConnectionClosedError,
    TimeoutError,
    FrameError,
    ChecksumError,
    ProtocolError,
    UnknownFrameTypeError,
    UnknownSettingError,
    RetryExhaustedError
)

__all__ = [
    # Version
    '__version__',

    # Core
    'SDS011',
    'SerialConnection',
    'CommandQueue',
    'ALLOWED_RETRIES',
    'COMMAND_RETRY_INTERVAL',
    'SensorConfig',
    'load_config',

    # State & commands
    'SensorState',
    'Measurement',
    'CommandKind',
    'SensorCommand',
    'EventChannel',
    'Subscription',

    # Protocol
    'FrameType',
    'Setting',
    'ReportingMode',
    'UnknownCodePolicy',
    'FieldUpdate',
    'CommandFrame',
    'PacketDecoder',
    'verify_packet',
    'check_packet',
    'decode_packet',
    'build_command_frame',
    'add_checksum',
    'calculate_checksum',
    'HEAD',
    'TAIL',

    # Exceptions
    'SDS011Error',
    'InvalidArgumentError',
    'CommunicationError',
    'ConnectionError',
    'ConnectionClosedError',
    'TimeoutError',
    'FrameError',
    'ChecksumError',
    'ProtocolError',
    'UnknownFrameTypeError',
    'UnknownSettingError',
    'RetryExhaustedError',
]
