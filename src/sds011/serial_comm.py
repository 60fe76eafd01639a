"""
Serial Communication Layer

시리얼 포트 연결 및 프레임 단위 송수신을 담당하는 래퍼 클래스
SDS011 기본 설정: 9600 baud, 8N1
"""

import logging
import threading
from typing import Optional

import serial

from .exceptions import ConnectionError, CommunicationError, TimeoutError
from .protocol import HEAD, PACKET_LENGTH

logger = logging.getLogger(__name__)


# Default serial settings (SDS011 데이터시트)
DEFAULT_BAUDRATE = 9600
DEFAULT_BYTESIZE = serial.EIGHTBITS
DEFAULT_PARITY = serial.PARITY_NONE
DEFAULT_STOPBITS = serial.STOPBITS_ONE
DEFAULT_TIMEOUT = 1.0  # seconds
DEFAULT_WRITE_TIMEOUT = 1.0  # seconds


class SerialConnection:
    """
    시리얼 포트 연결 관리 클래스

    Context manager 지원:
        with SerialConnection('/dev/ttyUSB0') as conn:
            conn.send(data)
            frame = conn.read_frame()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        bytesize: int = DEFAULT_BYTESIZE,
        parity: str = DEFAULT_PARITY,
        stopbits: float = DEFAULT_STOPBITS,
        timeout: float = DEFAULT_TIMEOUT,
        write_timeout: float = DEFAULT_WRITE_TIMEOUT
    ):
        """
        Args:
            port: 시리얼 포트 이름 (예: 'COM5', '/dev/ttyUSB0')
            baudrate: 보레이트 (기본값: 9600)
            bytesize: 데이터 비트 (기본값: 8)
            parity: 패리티 (기본값: None)
            stopbits: 스톱 비트 (기본값: 1)
            timeout: 읽기 타임아웃 (초)
            write_timeout: 쓰기 타임아웃 (초)
        """
        self.port = port
        self.baudrate = baudrate
        self.bytesize = bytesize
        self.parity = parity
        self.stopbits = stopbits
        self.timeout = timeout
        self.write_timeout = write_timeout

        self._serial: Optional[serial.Serial] = None
        self._write_lock = threading.Lock()  # 송신은 여러 스레드에서 호출될 수 있음

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._serial is not None and self._serial.is_open

    def connect(self) -> bool:
        """
        시리얼 포트 연결

        Returns:
            성공 시 True

        Raises:
            ConnectionError: 연결 실패 시
        """
        if self.is_connected:
            logger.warning(f"Already connected to {self.port}")
            return True

        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=self.bytesize,
                parity=self.parity,
                stopbits=self.stopbits,
                timeout=self.timeout,
                write_timeout=self.write_timeout
            )
            logger.info(f"Connected to {self.port} at {self.baudrate} baud")
            return True

        except serial.SerialException as e:
            raise ConnectionError(f"Failed to connect to {self.port}: {e}")

    def disconnect(self) -> None:
        """시리얼 포트 연결 해제"""
        if self._serial is not None:
            try:
                if self._serial.is_open:
                    self._serial.close()
                    logger.info(f"Disconnected from {self.port}")
            except serial.SerialException as e:
                logger.error(f"Error closing serial port: {e}")
            finally:
                self._serial = None

    def send(self, data: bytes) -> int:
        """
        데이터 전송 (스레드 안전)

        Returns:
            전송된 바이트 수

        Raises:
            CommunicationError: 전송 실패 시
            TimeoutError: 쓰기 타임아웃 시
        """
        if not self.is_connected:
            raise CommunicationError("Not connected to serial port")

        with self._write_lock:
            try:
                bytes_written = self._serial.write(data)
                self._serial.flush()

                logger.debug(f"TX ({bytes_written} bytes): {data.hex(' ').upper()}")
                return bytes_written

            except serial.SerialTimeoutException:
                raise TimeoutError("Write timeout")
            except serial.SerialException as e:
                raise CommunicationError(f"Failed to send data: {e}")

    def read_frame(self) -> bytes:
        """
        수신 프레임 1개 읽기

        HEAD (0xAA)가 나올 때까지 앞부분을 버린 뒤 나머지 9 bytes를 읽는다.
        검증은 하지 않는다: 타임아웃으로 잘린 프레임도 그대로 반환하고
        코덱에서 버린다.

        Returns:
            수신된 바이트 (타임아웃 시 b'')

        Raises:
            CommunicationError: 수신 실패 시
        """
        port = self._serial
        if port is None or not port.is_open:
            raise CommunicationError("Not connected to serial port")

        try:
            skipped = 0
            while True:
                byte = port.read(1)
                if not byte:
                    if skipped:
                        logger.debug(f"Discarded {skipped} bytes before timeout")
                    return b''
                if byte[0] == HEAD:
                    break
                skipped += 1
                if self._serial is not port:
                    raise CommunicationError("Serial port closed while reading")

            if skipped:
                logger.debug(f"Skipped {skipped} bytes before HEAD")

            frame = byte + port.read(PACKET_LENGTH - 1)
            if len(frame) < PACKET_LENGTH:
                logger.warning(f"Partial frame received before timeout: {len(frame)} bytes")

            return bytes(frame)

        except serial.SerialException as e:
            raise CommunicationError(f"Failed to receive data: {e}")
        except (OSError, TypeError, AttributeError) as e:
            # 다른 스레드에서 포트를 닫은 경우
            raise CommunicationError(f"Serial port closed while reading: {e}")

    def __enter__(self) -> 'SerialConnection':
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit"""
        self.disconnect()
