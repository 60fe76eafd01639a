"""
SerialConnection Unit Tests

시리얼 연결 테스트 (pyserial Serial을 MockSerial로 대체):
- 연결/해제
- 송신
- 프레임 단위 수신 (HEAD 동기화)
"""

import pytest
import sys
import os
from unittest.mock import patch, MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import serial

from sds011.serial_comm import SerialConnection, DEFAULT_BAUDRATE
from sds011.exceptions import ConnectionError, CommunicationError, TimeoutError

from mock_serial import MockSerial, pm_packet


@pytest.fixture
def mock_port():
    return MockSerial()


@pytest.fixture
def connection(mock_port):
    with patch('sds011.serial_comm.serial.Serial', return_value=mock_port):
        conn = SerialConnection('/dev/ttyUSB0')
        conn.connect()
    yield conn
    conn.disconnect()


class TestConnect:
    """연결/해제"""

    def test_default_baudrate(self):
        assert DEFAULT_BAUDRATE == 9600

    def test_connect(self, connection):
        assert connection.is_connected

    def test_connect_failure(self):
        with patch('sds011.serial_comm.serial.Serial',
                   side_effect=serial.SerialException("no such port")):
            conn = SerialConnection('/dev/missing')
            with pytest.raises(ConnectionError) as exc_info:
                conn.connect()

        assert "/dev/missing" in str(exc_info.value)
        assert not conn.is_connected

    def test_serial_settings(self):
        with patch('sds011.serial_comm.serial.Serial', return_value=MockSerial()) as serial_cls:
            SerialConnection('COM5', timeout=0.5).connect()

        kwargs = serial_cls.call_args.kwargs
        assert kwargs['port'] == 'COM5'
        assert kwargs['baudrate'] == 9600
        assert kwargs['bytesize'] == serial.EIGHTBITS
        assert kwargs['parity'] == serial.PARITY_NONE
        assert kwargs['stopbits'] == serial.STOPBITS_ONE
        assert kwargs['timeout'] == 0.5

    def test_disconnect(self, connection, mock_port):
        connection.disconnect()

        assert not connection.is_connected
        assert not mock_port.is_open

    def test_context_manager(self, mock_port):
        with patch('sds011.serial_comm.serial.Serial', return_value=mock_port):
            with SerialConnection('COM5') as conn:
                assert conn.is_connected
        assert not mock_port.is_open


class TestSend:
    """송신"""

    def test_send(self, connection, mock_port):
        assert connection.send(b'\xAA\xB4') == 2
        assert bytes(mock_port.written) == b'\xAA\xB4'

    def test_send_not_connected(self):
        with pytest.raises(CommunicationError):
            SerialConnection('COM5').send(b'\x00')

    def test_send_timeout(self, connection, mock_port):
        mock_port.write = MagicMock(side_effect=serial.SerialTimeoutException("timeout"))
        with pytest.raises(TimeoutError):
            connection.send(b'\x00')


class TestReadFrame:
    """프레임 수신"""

    def test_read_frame(self, connection, mock_port):
        mock_port.feed(pm_packet(75, 81))
        assert connection.read_frame() == pm_packet(75, 81)

    def test_skip_garbage_before_head(self, connection, mock_port):
        mock_port.feed(b'\x00\x13\xAB' + pm_packet(75, 81))
        assert connection.read_frame() == pm_packet(75, 81)

    def test_consecutive_frames(self, connection, mock_port):
        mock_port.feed(pm_packet(1, 2) + pm_packet(3, 4))

        assert connection.read_frame() == pm_packet(1, 2)
        assert connection.read_frame() == pm_packet(3, 4)

    def test_timeout_returns_empty(self, connection, mock_port):
        assert connection.read_frame() == b''

        mock_port.feed(b'\x01\x02')
        assert connection.read_frame() == b''

    def test_partial_frame_returned(self, connection, mock_port):
        mock_port.feed(pm_packet(75, 81)[:6])
        assert connection.read_frame() == pm_packet(75, 81)[:6]

    def test_read_not_connected(self):
        with pytest.raises(CommunicationError):
            SerialConnection('COM5').read_frame()

    def test_disconnect_during_read(self, connection):
        """읽는 중 다른 스레드에서 disconnect()"""
        class ClosingPort(MockSerial):
            def read(self, size=1):
                connection._serial = None
                return b'\x00'

        connection._serial = ClosingPort()

        with pytest.raises(CommunicationError):
            connection.read_frame()

    @pytest.mark.parametrize('error', [
        TypeError("object of type 'NoneType' has no len()"),
        AttributeError("'NoneType' object has no attribute 'read'"),
        OSError(9, "Bad file descriptor"),
    ])
    def test_closed_port_errors_wrapped(self, connection, mock_port, error):
        mock_port.read = MagicMock(side_effect=error)
        with pytest.raises(CommunicationError):
            connection.read_frame()

    def test_read_error(self, connection, mock_port):
        mock_port.read = MagicMock(side_effect=serial.SerialException("device lost"))
        with pytest.raises(CommunicationError):
            connection.read_frame()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
