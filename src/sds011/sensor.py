"""
SDS011 Sensor Driver

센서와의 통신을 담당하는 메인 클래스
- 수신 스레드: 시리얼 포트에서 프레임을 읽어 inbox로 전달
- 작업 스레드: inbox 하나로 수신 프레임, 새 명령, 재시도 tick을 순서대로 처리
  (센서 상태와 명령 대기열은 작업 스레드만 수정)
"""

import dataclasses
import logging
import queue
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional, Union

from . import commands
from .config import SensorConfig
from .engine import CommandQueue, PendingCommand
from .events import EventChannel, Subscription
from .exceptions import (
    CommunicationError, ConnectionClosedError, InvalidArgumentError, ProtocolError
)
from .protocol import PacketDecoder, ReportingMode
from .serial_comm import SerialConnection

logger = logging.getLogger(__name__)


# Inbox message types
_FRAME = 'frame'
_COMMAND = 'command'
_STOP = 'stop'

_JOIN_TIMEOUT = 2.0  # seconds


class SDS011:
    """
    SDS011 미세먼지 센서 드라이버

    모든 명령은 즉시 Future를 반환한다 (입력 검증 오류만 동기적으로 발생).

    사용 예:
        with SDS011(port='/dev/ttyUSB0') as sensor:
            sensor.set_reporting_mode('query').result()
            measurement = sensor.query().result()
            print(measurement.pm2_5, measurement.pm10)

        # Active 모드: 측정값 구독
        sensor = SDS011(port='COM5')
        sensor.open()
        sub = sensor.on_measurement(lambda m: print(m))
        sensor.set_reporting_mode('active')
        ...
        sub.unsubscribe()
        sensor.close()
    """

    def __init__(
        self,
        port: Optional[str] = None,
        config: Optional[SensorConfig] = None,
        connection=None
    ):
        """
        Args:
            port: 시리얼 포트 이름 (config.port보다 우선)
            config: 드라이버 설정 (None이면 기본값)
            connection: connect()/disconnect()/send()/read_frame()을 제공하는
                        전송 객체 (None이면 SerialConnection 생성)

        Raises:
            InvalidArgumentError: 포트도 connection도 지정되지 않은 경우
        """
        if config is None:
            config = SensorConfig(port=port)
        elif port is not None:
            config = dataclasses.replace(config, port=port)
        self.config = config

        if connection is None:
            if config.port is None:
                raise InvalidArgumentError("Serial port is required")
            connection = SerialConnection(
                port=config.port,
                baudrate=config.baudrate,
                timeout=config.timeout,
                write_timeout=config.write_timeout
            )
        self._connection = connection

        self._engine = CommandQueue(
            connection,
            decoder=PacketDecoder(on_unknown=config.unknown_code_policy),
            allowed_retries=config.allowed_retries,
            retry_interval=config.retry_interval
        )
        self._errors = EventChannel('error')

        self._inbox: 'queue.Queue[tuple]' = queue.Queue()
        self._lock = threading.Lock()
        self._running = False
        self._closed = False
        self._worker: Optional[threading.Thread] = None
        self._reader: Optional[threading.Thread] = None

    @property
    def is_open(self) -> bool:
        """명령을 받을 수 있는 상태"""
        return self._running and not self._closed

    @property
    def state(self) -> Dict[str, Any]:
        """센서 상태 복사본 (읽는 시점에 따라 지난 값일 수 있음)"""
        return self._engine.state.snapshot()

    def open(self) -> None:
        """
        포트 연결 및 스레드 시작

        config.warm_up이면 query 명령으로 연결을 확인한다 (실패 시 경고 로그만 남김).

        Raises:
            ConnectionError: 포트 연결 실패 시
            ConnectionClosedError: 이미 닫힌 드라이버를 다시 여는 경우
        """
        with self._lock:
            if self._closed:
                raise ConnectionClosedError("Sensor connection is closed")
            if self._running:
                logger.warning("Sensor is already open")
                return

            self._connection.connect()
            self._running = True

            self._worker = threading.Thread(
                target=self._run_worker, name='sds011-worker', daemon=True
            )
            self._reader = threading.Thread(
                target=self._run_reader, name='sds011-reader', daemon=True
            )
            self._worker.start()
            self._reader.start()

        if self.config.warm_up:
            self.query().add_done_callback(self._on_warm_up_done)

    def close(self, reason: Optional[str] = None) -> None:
        """
        연결 종료

        대기 중인 명령은 ConnectionClosedError로 실패 처리되고 close 이벤트가 발생한다.
        """
        with self._lock:
            if self._closed:
                logger.warning("Sensor connection is already closed")
                return
            self._closed = True
            self._running = False
            worker = self._worker
            self._inbox.put((_STOP, reason))

        if worker is None:
            # open()되지 않음: 작업 스레드 대신 직접 정리
            self._shutdown(reason)
        elif worker is not threading.current_thread():
            worker.join(timeout=_JOIN_TIMEOUT)

        # 수신 스레드가 read_frame()을 빠져나온 뒤 포트를 닫음 (읽기 타임아웃 < join 타임아웃)
        reader = self._reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=_JOIN_TIMEOUT)

        self._connection.disconnect()

    # Sensor operations

    def query(self) -> Future:
        """
        최신 측정값 요청

        Returns:
            Future[Measurement]
        """
        return self._submit(commands.query())

    def get_reporting_mode(self) -> Future:
        """Future[ReportingMode]"""
        return self._submit(commands.get_reporting_mode())

    def set_reporting_mode(self, mode: Union[ReportingMode, str]) -> Future:
        """
        보고 모드 설정 (전원이 꺼져도 유지)

        Args:
            mode: 'active' - 측정값을 이벤트로 전달, 'query' - query()로 직접 요청

        Raises:
            InvalidArgumentError: 알 수 없는 모드
        """
        return self._submit(commands.set_reporting_mode(mode))

    def set_sleep(self, should_sleep: bool) -> Future:
        """
        슬립 모드 전환 (슬립 중에는 팬과 레이저가 꺼짐)

        Raises:
            InvalidArgumentError: bool이 아닌 값
        """
        return self._submit(commands.set_sleep(should_sleep))

    def get_firmware_version(self) -> Future:
        """Future[str] - "년-월-일" 형식"""
        return self._submit(commands.get_firmware_version())

    def get_working_period(self) -> Future:
        """Future[int] - 작업 주기 (분)"""
        return self._submit(commands.get_working_period())

    def set_working_period(self, minutes: int) -> Future:
        """
        작업 주기 설정 (전원이 꺼져도 유지)

        Args:
            minutes: 0~30분, 0이면 연속 동작

        Raises:
            InvalidArgumentError: 범위 초과
        """
        return self._submit(commands.set_working_period(minutes))

    # Events

    def on_measurement(self, callback: Callable[[Any], None]) -> Subscription:
        """Active 모드 측정값 구독 (작업 스레드에서 호출됨)"""
        return self._engine.measurements.subscribe(callback)

    def on_close(self, callback: Callable[[Any], None]) -> Subscription:
        """종료 이벤트 구독 (인자: close() reason)"""
        return self._engine.closed.subscribe(callback)

    def on_error(self, callback: Callable[[Any], None]) -> Subscription:
        """프로토콜 오류 구독 (unknown_code_policy가 propagate일 때만 발생)"""
        return self._errors.subscribe(callback)

    # Internals

    def _submit(self, command: commands.SensorCommand) -> Future:
        with self._lock:
            if self._closed:
                raise ConnectionClosedError(f"Cannot run {command}: connection closed")
            if not self._running:
                raise CommunicationError(f"Cannot run {command}: sensor is not open")

            future: Future = Future()
            self._inbox.put((_COMMAND, PendingCommand(command, future)))
            return future

    def _run_worker(self) -> None:
        """작업 스레드: 상태/대기열을 수정하는 유일한 스레드"""
        deadline: Optional[float] = None

        while True:
            if deadline is not None and time.monotonic() >= deadline:
                deadline = self._tick()
                continue

            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                kind, payload = self._inbox.get(timeout=timeout)
            except queue.Empty:
                continue

            if kind == _STOP:
                self._shutdown(payload)
                return

            if kind == _FRAME:
                self._handle_frame(payload)
            elif kind == _COMMAND:
                self._engine.enqueue(payload.command, payload.future)
                if deadline is None:
                    deadline = self._tick()

    def _tick(self) -> Optional[float]:
        if self._closed:
            # close() 이후에는 _STOP 처리 전이라도 전송하지 않음
            return None
        delay = self._engine.process()
        return None if delay is None else time.monotonic() + delay

    def _handle_frame(self, frame: bytes) -> None:
        try:
            self._engine.handle_frame(frame)
        except ProtocolError as e:
            logger.error(f"Protocol error: {e}")
            self._errors.emit(e)

    def _shutdown(self, reason: Optional[str]) -> None:
        """inbox에 남은 명령까지 실패 처리 후 엔진 종료"""
        while True:
            try:
                kind, payload = self._inbox.get_nowait()
            except queue.Empty:
                break
            if kind == _COMMAND and not payload.future.done():
                payload.future.set_exception(
                    ConnectionClosedError(f"{payload.command} aborted: connection closed")
                )

        self._engine.close(reason)
        self._errors.clear()
        logger.info("Sensor connection closed")

    def _run_reader(self) -> None:
        """수신 스레드: 프레임 단위로 inbox에 전달"""
        while self._running:
            try:
                frame = self._connection.read_frame()
            except CommunicationError as e:
                if self._running:
                    logger.error(f"Serial read failed: {e}")
                break

            if frame:
                self._inbox.put((_FRAME, frame))

    @staticmethod
    def _on_warm_up_done(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning(f"Warm-up query failed: {error}")
        else:
            logger.info(f"Sensor responded to warm-up query: {future.result()}")

    def __enter__(self) -> 'SDS011':
        """Context manager entry"""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit"""
        self.close()
