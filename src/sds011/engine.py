"""
Command Queue / Retry Engine

명령을 FIFO 순서로 하나씩 처리하는 상태 머신
- 대기열 맨 앞 명령만 prepare/전송
- 매 tick마다 완료 여부 확인, 미완료 시 재전송
- 재시도 횟수 초과 시 RetryExhaustedError로 실패 처리

스레드를 직접 만들지 않는다. process()가 다음 tick까지의 대기 시간을
반환하면 호출자(SDS011 작업 스레드)가 해당 시간 후 다시 호출한다.
"""

import logging
from collections import deque
from concurrent.futures import Future
from typing import Deque, NamedTuple, Optional

from .commands import (
    SensorCommand, build_frame, command_result, is_fulfilled, prepare_command
)
from .events import EventChannel
from .exceptions import (
    CommunicationError, ConnectionClosedError, FrameError, RetryExhaustedError
)
from .protocol import (
    FieldUpdate, FrameType, PacketDecoder, ReportingMode, check_packet
)
from .state import SensorState

logger = logging.getLogger(__name__)


ALLOWED_RETRIES = 10          # 명령 하나당 최대 전송 횟수
COMMAND_RETRY_INTERVAL = 0.15  # 재시도 간격 (초)


class PendingCommand(NamedTuple):
    """대기열 항목"""
    command: SensorCommand
    future: Future


class CommandQueue:
    """
    명령 대기열 및 재시도 엔진

    사용 예:
        engine = CommandQueue(transport)
        future = engine.enqueue(commands.get_firmware_version())

        delay = engine.process()          # 첫 tick: prepare + 전송
        engine.handle_frame(rx_frame)     # 센서 응답 반영
        delay = engine.process()          # 완료 확인 -> future 완료
    """

    def __init__(
        self,
        transport,
        state: Optional[SensorState] = None,
        decoder: Optional[PacketDecoder] = None,
        allowed_retries: int = ALLOWED_RETRIES,
        retry_interval: float = COMMAND_RETRY_INTERVAL
    ):
        """
        Args:
            transport: send(bytes)를 제공하는 객체
            state: 센서 상태 (None이면 새로 생성)
            decoder: 수신 프레임 디코더 (None이면 IGNORE 정책)
            allowed_retries: 명령 하나당 최대 전송 횟수
            retry_interval: 재시도 간격 (초)
        """
        self._transport = transport
        self.state = state if state is not None else SensorState()
        self.decoder = decoder if decoder is not None else PacketDecoder()
        self.allowed_retries = allowed_retries
        self.retry_interval = retry_interval

        self._queue: Deque[PendingCommand] = deque()
        self._retry_count = 0

        self.measurements = EventChannel('measurement')
        self.closed = EventChannel('close')

    @property
    def pending(self) -> int:
        """대기 중인 명령 수 (처리 중인 명령 포함)"""
        return len(self._queue)

    @property
    def is_idle(self) -> bool:
        return not self._queue

    @property
    def current(self) -> Optional[SensorCommand]:
        """처리 중인 명령"""
        return self._queue[0].command if self._queue else None

    def enqueue(self, command: SensorCommand, future: Optional[Future] = None) -> Future:
        """
        명령 추가

        Returns:
            완료 시 결과값, 실패 시 예외가 설정되는 Future

        Raises:
            ConnectionClosedError: 연결이 닫힌 경우
        """
        if self.state.closed:
            raise ConnectionClosedError(f"Cannot enqueue {command}: connection closed")

        if future is None:
            future = Future()

        self._queue.append(PendingCommand(command, future))
        logger.debug(f"Queued {command} (pending: {len(self._queue)})")
        return future

    def process(self) -> Optional[float]:
        """
        상태 머신 1 tick 실행

        Returns:
            다음 tick까지 대기 시간 (초), 대기열이 비었으면 None
        """
        while self._queue:
            pending = self._queue[0]

            if self._retry_count == 0:
                # RUNNING 상태가 된 Future는 더 이상 취소할 수 없음
                if not pending.future.set_running_or_notify_cancel():
                    self._queue.popleft()
                    logger.debug(f"Dropped cancelled command {pending.command}")
                    continue
                prepare_command(pending.command, self.state)

            self._retry_count += 1

            if self._retry_count > self.allowed_retries:
                self._queue.popleft()
                self._retry_count = 0
                logger.warning(
                    f"{pending.command} not confirmed after {self.allowed_retries} attempts"
                )
                self._settle_exception(
                    pending,
                    RetryExhaustedError(
                        f"{pending.command} not confirmed after "
                        f"{self.allowed_retries} attempts"
                    )
                )
                continue

            if is_fulfilled(pending.command, self.state):
                self._queue.popleft()
                self._retry_count = 0
                result = command_result(pending.command, self.state)
                logger.debug(f"{pending.command} completed: {result}")
                self._settle_result(pending, result)
                continue

            frame = build_frame(pending.command)
            logger.debug(
                f"TX {pending.command} (attempt {self._retry_count}/{self.allowed_retries}): "
                f"{frame.hex(' ').upper()}"
            )
            try:
                self._transport.send(frame)
            except CommunicationError as e:
                # 전송 실패도 시도 1회로 계산
                logger.error(f"Failed to send {pending.command}: {e}")
            return self.retry_interval

        self._retry_count = 0
        return None

    def handle_frame(self, packet: bytes) -> Optional[FieldUpdate]:
        """
        수신 프레임 처리

        잘못된 프레임은 버린다 (명령 오류로 전달하지 않음).

        Returns:
            반영된 FieldUpdate, 버렸거나 무시된 경우 None

        Raises:
            ProtocolError: 디코더 정책이 PROPAGATE이고 알 수 없는 코드인 경우
        """
        try:
            check_packet(packet)
        except FrameError as e:
            logger.debug(f"Dropped frame {bytes(packet).hex(' ').upper()}: {e}")
            return None

        logger.debug(f"RX: {bytes(packet).hex(' ').upper()}")

        update = self.decoder.decode(packet)
        if update is None:
            return None

        self.state.apply(update)

        if (update.frame_type is FrameType.PM_READING
                and self.state.mode is ReportingMode.ACTIVE):
            self.measurements.emit(self.state.measurement)

        return update

    def close(self, reason: Optional[str] = None) -> None:
        """
        대기열 정리 및 종료

        대기 중인 모든 명령은 ConnectionClosedError로 실패 처리
        """
        if self.state.closed:
            logger.warning("Command queue is already closed")
            return

        self.state.closed = True
        self._retry_count = 0

        dropped = list(self._queue)
        self._queue.clear()
        for pending in dropped:
            self._settle_exception(
                pending, ConnectionClosedError(f"{pending.command} aborted: connection closed")
            )

        if dropped:
            logger.info(f"Aborted {len(dropped)} pending command(s)")

        self.closed.emit(reason)
        self.measurements.clear()
        self.closed.clear()

    @staticmethod
    def _settle_result(pending: PendingCommand, result) -> None:
        if not pending.future.done():
            pending.future.set_result(result)

    @staticmethod
    def _settle_exception(pending: PendingCommand, error: Exception) -> None:
        if not pending.future.done():
            pending.future.set_exception(error)
