"""
Sensor State Module

센서의 마지막 상태 (디코딩된 프레임으로만 갱신)
- 명령의 prepare 단계에서 관련 필드를 None으로 초기화
- 명령 완료 여부는 필드가 다시 채워졌는지로 판단
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .protocol import FieldUpdate, ReportingMode


# 센서 상태 필드 이름
FIELDS = ('pm2_5', 'pm10', 'mode', 'is_sleeping', 'firmware', 'working_period')


@dataclass(frozen=True)
class Measurement:
    """PM 측정값 (ug/m3)"""
    pm2_5: float
    pm10: float

    def __str__(self) -> str:
        return f"PM2.5: {self.pm2_5}, PM10: {self.pm10}"


@dataclass
class SensorState:
    """
    센서 상태

    잠금 없음: 하나의 작업 스레드만 읽고 쓴다.
    """
    pm2_5: Optional[float] = None
    pm10: Optional[float] = None
    mode: Optional[ReportingMode] = None
    is_sleeping: Optional[bool] = None
    firmware: Optional[str] = None
    working_period: Optional[int] = None
    closed: bool = False

    def apply(self, update: FieldUpdate) -> None:
        """디코딩 결과 반영"""
        for name, value in update.changes().items():
            setattr(self, name, value)

    def clear(self, *names: str) -> None:
        """
        필드 초기화 (명령 prepare 단계)

        Raises:
            KeyError: 알 수 없는 필드 이름
        """
        for name in names:
            if name not in FIELDS:
                raise KeyError(name)
            setattr(self, name, None)

    @property
    def measurement(self) -> Optional[Measurement]:
        """PM2.5/PM10이 모두 있으면 Measurement 반환"""
        if self.pm2_5 is None or self.pm10 is None:
            return None
        return Measurement(pm2_5=self.pm2_5, pm10=self.pm10)

    def snapshot(self) -> Dict[str, Any]:
        """현재 상태 복사본"""
        return asdict(self)
