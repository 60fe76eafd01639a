"""
SDS011 Communication Protocol

수신 프레임 (센서 -> 호스트, 10 bytes):
| HEAD (0xAA) | Type (1B) | Data (6B) | Checksum (1B) | TAIL (0xAB) |
체크섬: offset 2~7 합계 mod 256

송신 프레임 (호스트 -> 센서, 19 bytes):
| HEAD (0xAA) | 0xB4 | Setting (1B) | Write (1B) | Data (11B) | 0xFF 0xFF | Checksum (1B) | TAIL (0xAB) |
체크섬: offset 2~16 합계 mod 256
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from .exceptions import (
    ChecksumError, FrameError, InvalidArgumentError,
    UnknownFrameTypeError, UnknownSettingError
)

logger = logging.getLogger(__name__)


# Protocol constants
HEAD = 0xAA
TAIL = 0xAB
COMMAND_ID = 0xB4          # 송신 프레임의 "set" opcode
BROADCAST_ID = (0xFF, 0xFF)  # 모든 센서 대상

PACKET_LENGTH = 10
COMMAND_LENGTH = 19

# 수신 프레임 체크섬 범위 (offset 포함)
PACKET_DATA_START = 2
PACKET_DATA_END = 7
PACKET_CHECKSUM_OFFSET = 8

# 송신 프레임 체크섬 범위 (offset 포함)
COMMAND_DATA_START = 2
COMMAND_DATA_END = 16
COMMAND_CHECKSUM_OFFSET = 17

COMMAND_PAYLOAD_OFFSET = 4
COMMAND_PAYLOAD_SIZE = 11  # offset 4 ~ 14


class FrameType(Enum):
    """수신 프레임 타입 (offset 1)"""
    PM_READING = 0xC0        # PM2.5 / PM10 측정값
    SETTING_RESPONSE = 0xC5  # 설정 명령 응답


class Setting(Enum):
    """설정 ID (송신 offset 2, 0xC5 응답 offset 2)"""
    REPORTING_MODE = 2
    QUERY = 4
    SLEEP = 6
    FIRMWARE_VERSION = 7
    WORKING_PERIOD = 8


class ReportingMode(Enum):
    """보고 모드"""
    ACTIVE = 'active'  # 0x00 - 측정값 연속 전송
    QUERY = 'query'    # 0x01 - 요청 시에만 전송


class UnknownCodePolicy(Enum):
    """알 수 없는 프레임 타입/설정 ID 처리 정책"""
    PROPAGATE = 'propagate'  # 예외 발생
    IGNORE = 'ignore'        # 로그만 남기고 무시


@dataclass
class FieldUpdate:
    """
    디코딩 결과

    프레임 하나가 갱신하는 센서 상태 필드만 값을 가진다 (나머지는 None).
    """
    frame_type: FrameType
    setting: Optional[Setting] = None
    pm2_5: Optional[float] = None
    pm10: Optional[float] = None
    mode: Optional[ReportingMode] = None
    is_sleeping: Optional[bool] = None
    firmware: Optional[str] = None
    working_period: Optional[int] = None

    def changes(self) -> Dict[str, Any]:
        """값이 있는 상태 필드만 반환"""
        values = {
            'pm2_5': self.pm2_5,
            'pm10': self.pm10,
            'mode': self.mode,
            'is_sleeping': self.is_sleeping,
            'firmware': self.firmware,
            'working_period': self.working_period,
        }
        return {name: value for name, value in values.items() if value is not None}


def calculate_checksum(data: Sequence[int], start: int, end: int) -> int:
    """
    체크섬 계산

    Args:
        data: 프레임 바이트
        start: 합산 시작 offset
        end: 합산 끝 offset (포함)

    Returns:
        합계 mod 256
    """
    return sum(data[start:end + 1]) % 256


def add_checksum(command) -> None:
    """
    송신 프레임에 체크섬 기록 (offset 17)

    Args:
        command: 19 bytes 가변 시퀀스 (list 또는 bytearray)
    """
    command[COMMAND_CHECKSUM_OFFSET] = calculate_checksum(
        command, COMMAND_DATA_START, COMMAND_DATA_END
    )


def check_packet(packet: bytes) -> None:
    """
    수신 프레임 검증

    Raises:
        FrameError: 길이 또는 HEAD/TAIL 오류 시
        ChecksumError: 체크섬 불일치 시
    """
    if len(packet) != PACKET_LENGTH:
        raise FrameError(f"Invalid packet length: {len(packet)} bytes")

    if packet[0] != HEAD or packet[-1] != TAIL:
        raise FrameError(
            f"Invalid HEAD/TAIL: 0x{packet[0]:02X}/0x{packet[-1]:02X}"
        )

    expected = calculate_checksum(packet, PACKET_DATA_START, PACKET_DATA_END)
    actual = packet[PACKET_CHECKSUM_OFFSET]
    if expected != actual:
        raise ChecksumError(
            f"Checksum mismatch: expected 0x{expected:02X}, got 0x{actual:02X}"
        )


def verify_packet(packet: bytes) -> bool:
    """수신 프레임이 유효하면 True (예외를 던지지 않음)"""
    try:
        check_packet(packet)
    except FrameError:
        return False
    return True


@dataclass
class CommandFrame:
    """송신 프레임"""
    setting: Setting
    write: bool = False
    data: bytes = field(default_factory=bytes)

    def build(self) -> bytes:
        """TX 프레임 생성 (체크섬 포함)"""
        return build_command_frame(self.setting.value, self.write, self.data)


def build_command_frame(
    setting: int,
    write: bool = False,
    data: bytes = b'',
    opcode: int = COMMAND_ID
) -> bytes:
    """
    송신 프레임 생성

    Args:
        setting: 설정 ID
        write: True면 설정 쓰기, False면 조회
        data: offset 4부터 채울 데이터 (최대 11 bytes, 나머지는 0)
        opcode: offset 1 값 (기본값: 0xB4)

    Returns:
        19 bytes TX 프레임

    Raises:
        InvalidArgumentError: 데이터 길이 또는 바이트 값이 범위를 벗어난 경우
    """
    if len(data) > COMMAND_PAYLOAD_SIZE:
        raise InvalidArgumentError(
            f"Command data too long: {len(data)} bytes (max: {COMMAND_PAYLOAD_SIZE})"
        )

    for value in (setting, opcode, *data):
        if not 0 <= value <= 0xFF:
            raise InvalidArgumentError(f"Byte value out of range: {value}")

    frame = bytearray(COMMAND_LENGTH)
    frame[0] = HEAD
    frame[1] = opcode
    frame[2] = setting
    frame[3] = 1 if write else 0
    frame[COMMAND_PAYLOAD_OFFSET:COMMAND_PAYLOAD_OFFSET + len(data)] = bytes(data)
    frame[15], frame[16] = BROADCAST_ID
    frame[-1] = TAIL
    add_checksum(frame)

    return bytes(frame)


def _combine(low: int, high: int) -> float:
    """리틀엔디안 2바이트 -> 소수점 한 자리 값"""
    return (high * 256 + low) / 10


class PacketDecoder:
    """
    수신 프레임 디코더

    사용 예:
        decoder = PacketDecoder(on_unknown=UnknownCodePolicy.PROPAGATE)
        update = decoder.decode(packet)
        state.apply(update)
    """

    def __init__(self, on_unknown: UnknownCodePolicy = UnknownCodePolicy.IGNORE):
        """
        Args:
            on_unknown: 알 수 없는 타입/설정 ID 처리 정책
        """
        self.on_unknown = on_unknown

        self._setting_handlers = {
            Setting.REPORTING_MODE.value: self._decode_mode,
            Setting.SLEEP.value: self._decode_sleep,
            Setting.FIRMWARE_VERSION.value: self._decode_firmware,
            Setting.WORKING_PERIOD.value: self._decode_working_period,
        }

    def decode(self, packet: bytes) -> Optional[FieldUpdate]:
        """
        프레임 디코딩 (검증은 호출자가 먼저 수행)

        Returns:
            FieldUpdate, 또는 IGNORE 정책에서 알 수 없는 코드인 경우 None

        Raises:
            UnknownFrameTypeError: PROPAGATE 정책에서 알 수 없는 타입
            UnknownSettingError: PROPAGATE 정책에서 알 수 없는 설정 ID
        """
        frame_type = packet[1]

        if frame_type == FrameType.PM_READING.value:
            return self._decode_pm(packet)

        if frame_type == FrameType.SETTING_RESPONSE.value:
            setting = packet[2]
            handler = self._setting_handlers.get(setting)
            if handler is None:
                return self._unknown(UnknownSettingError(f"Unhandled setting: {setting}"))
            return handler(packet)

        return self._unknown(UnknownFrameTypeError(f"Unknown packet type: 0x{frame_type:02X}"))

    def _unknown(self, error: Exception) -> None:
        if self.on_unknown is UnknownCodePolicy.PROPAGATE:
            raise error
        logger.warning(str(error))
        return None

    @staticmethod
    def _decode_pm(packet: bytes) -> FieldUpdate:
        return FieldUpdate(
            frame_type=FrameType.PM_READING,
            pm2_5=_combine(packet[2], packet[3]),
            pm10=_combine(packet[4], packet[5]),
        )

    @staticmethod
    def _decode_mode(packet: bytes) -> FieldUpdate:
        mode = ReportingMode.ACTIVE if packet[4] == 0 else ReportingMode.QUERY
        return FieldUpdate(
            frame_type=FrameType.SETTING_RESPONSE,
            setting=Setting.REPORTING_MODE,
            mode=mode,
        )

    @staticmethod
    def _decode_sleep(packet: bytes) -> FieldUpdate:
        return FieldUpdate(
            frame_type=FrameType.SETTING_RESPONSE,
            setting=Setting.SLEEP,
            is_sleeping=(packet[4] == 0),
        )

    @staticmethod
    def _decode_firmware(packet: bytes) -> FieldUpdate:
        year, month, day = packet[3], packet[4], packet[5]
        return FieldUpdate(
            frame_type=FrameType.SETTING_RESPONSE,
            setting=Setting.FIRMWARE_VERSION,
            firmware=f"{year}-{month}-{day}",
        )

    @staticmethod
    def _decode_working_period(packet: bytes) -> FieldUpdate:
        return FieldUpdate(
            frame_type=FrameType.SETTING_RESPONSE,
            setting=Setting.WORKING_PERIOD,
            working_period=packet[4],
        )


def decode_packet(
    packet: bytes,
    on_unknown: UnknownCodePolicy = UnknownCodePolicy.PROPAGATE
) -> Optional[FieldUpdate]:
    """
    프레임 디코딩 헬퍼 함수

    주의: 기본 정책이 PacketDecoder(기본값 IGNORE)와 다르다. 이 함수는
    알 수 없는 타입/설정 ID에 대해 기본적으로 예외를 던진다.
    SDS011 드라이버는 SensorConfig.unknown_code_policy(기본값 IGNORE)를 따른다.

    Args:
        packet: 검증된 10 bytes 수신 프레임
        on_unknown: 알 수 없는 코드 처리 정책 (기본값: PROPAGATE, 예외 발생)

    Raises:
        UnknownFrameTypeError: PROPAGATE 정책에서 알 수 없는 타입
        UnknownSettingError: PROPAGATE 정책에서 알 수 없는 설정 ID
    """
    return PacketDecoder(on_unknown=on_unknown).decode(packet)
