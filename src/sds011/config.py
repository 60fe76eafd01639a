"""
Sensor Configuration

드라이버 설정 (YAML 파일 또는 dict)

설정 파일 예:
    port: /dev/ttyUSB0
    baudrate: 9600
    allowed_retries: 10
    retry_interval: 0.15
    unknown_code_policy: ignore
"""

import logging
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .engine import ALLOWED_RETRIES, COMMAND_RETRY_INTERVAL
from .exceptions import InvalidArgumentError
from .protocol import UnknownCodePolicy
from .serial_comm import DEFAULT_BAUDRATE, DEFAULT_TIMEOUT, DEFAULT_WRITE_TIMEOUT

logger = logging.getLogger(__name__)


@dataclass
class SensorConfig:
    """센서 드라이버 설정"""
    port: Optional[str] = None
    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = DEFAULT_TIMEOUT
    write_timeout: float = DEFAULT_WRITE_TIMEOUT
    allowed_retries: int = ALLOWED_RETRIES
    retry_interval: float = COMMAND_RETRY_INTERVAL
    unknown_code_policy: UnknownCodePolicy = UnknownCodePolicy.IGNORE
    warm_up: bool = True  # open() 직후 query 명령으로 연결 확인

    def __post_init__(self):
        self._check_types()

        if isinstance(self.unknown_code_policy, str):
            try:
                self.unknown_code_policy = UnknownCodePolicy(self.unknown_code_policy.lower())
            except ValueError:
                raise InvalidArgumentError(
                    f"Invalid unknown_code_policy: {self.unknown_code_policy!r} "
                    f"(valid: 'propagate', 'ignore')"
                )

        if self.baudrate <= 0:
            raise InvalidArgumentError(f"Invalid baudrate: {self.baudrate}")
        if self.allowed_retries < 1:
            raise InvalidArgumentError(f"allowed_retries must be >= 1, got {self.allowed_retries}")
        if self.retry_interval <= 0:
            raise InvalidArgumentError(f"retry_interval must be > 0, got {self.retry_interval}")
        if self.timeout <= 0 or self.write_timeout <= 0:
            raise InvalidArgumentError("Serial timeouts must be > 0")

    def _check_types(self) -> None:
        """값 비교 전에 타입 확인 (bool은 숫자로 취급하지 않음)"""
        if self.port is not None and not isinstance(self.port, str):
            raise InvalidArgumentError(f"port must be str, got {self.port!r}")

        for name in ('baudrate', 'allowed_retries'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidArgumentError(f"{name} must be int, got {value!r}")

        for name in ('timeout', 'write_timeout', 'retry_interval'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidArgumentError(f"{name} must be a number, got {value!r}")

        if not isinstance(self.warm_up, bool):
            raise InvalidArgumentError(f"warm_up must be bool, got {self.warm_up!r}")

        if not isinstance(self.unknown_code_policy, (UnknownCodePolicy, str)):
            raise InvalidArgumentError(
                f"unknown_code_policy must be str, got {self.unknown_code_policy!r}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SensorConfig':
        """
        dict에서 설정 생성

        Raises:
            InvalidArgumentError: 알 수 없는 키 또는 잘못된 값
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidArgumentError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'SensorConfig':
        """
        YAML 파일에서 설정 로드

        'sds011' 섹션이 있으면 해당 섹션만 사용
        """
        path = Path(path)
        with path.open(encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise InvalidArgumentError(f"Config file must contain a mapping: {path}")

        if isinstance(data.get('sds011'), dict):
            data = data['sds011']

        logger.debug(f"Loaded config from {path}")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['unknown_code_policy'] = self.unknown_code_policy.value
        return data


def load_config(path: Optional[Union[str, Path]] = None, **overrides) -> SensorConfig:
    """
    설정 로드 헬퍼 함수

    Args:
        path: YAML 파일 경로 (None이면 기본값)
        overrides: None이 아닌 값만 파일 설정을 덮어씀
    """
    config = SensorConfig.from_yaml(path) if path is not None else SensorConfig()
    data = config.to_dict()
    data.update({key: value for key, value in overrides.items() if value is not None})
    return SensorConfig.from_dict(data)
