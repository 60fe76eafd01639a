"""
Event Channel Module

측정값/종료 이벤트 구독 관리
"""

import logging
import threading
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


class Subscription:
    """구독 핸들 (unsubscribe()로 해제)"""

    def __init__(self, channel: 'EventChannel', token: int):
        self._channel = channel
        self._token = token

    @property
    def active(self) -> bool:
        return self._channel.is_subscribed(self._token)

    def unsubscribe(self) -> None:
        self._channel.unsubscribe(self._token)

    def __enter__(self) -> 'Subscription':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unsubscribe()


class EventChannel:
    """
    이벤트 채널

    사용 예:
        channel = EventChannel('measurement')
        sub = channel.subscribe(lambda m: print(m))
        channel.emit(measurement)
        sub.unsubscribe()
    """

    def __init__(self, name: str):
        self.name = name
        self._listeners: Dict[int, Callable[[Any], None]] = {}
        self._next_token = 0
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[Any], None]) -> Subscription:
        """콜백 등록"""
        if not callable(callback):
            raise TypeError(f"Callback must be callable, got {callback!r}")

        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = callback

        return Subscription(self, token)

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    def is_subscribed(self, token: int) -> bool:
        with self._lock:
            return token in self._listeners

    def emit(self, value: Any) -> None:
        """
        모든 구독자에게 전달

        구독자 예외는 로그로 남기고 다음 구독자로 진행
        """
        with self._lock:
            listeners = list(self._listeners.values())

        for callback in listeners:
            try:
                callback(value)
            except Exception as e:
                logger.error(f"{self.name} listener error: {e}")

    def clear(self) -> None:
        """모든 구독 해제"""
        with self._lock:
            self._listeners.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)
