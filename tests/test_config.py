"""
SensorConfig Unit Tests

설정 테스트:
- 기본값
- dict / YAML 로드
- 잘못된 값 검증
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from sds011.config import SensorConfig, load_config
from sds011.exceptions import InvalidArgumentError
from sds011.protocol import UnknownCodePolicy


class TestDefaults:
    """기본값"""

    def test_defaults(self):
        config = SensorConfig()

        assert config.port is None
        assert config.baudrate == 9600
        assert config.allowed_retries == 10
        assert config.retry_interval == 0.15
        assert config.unknown_code_policy is UnknownCodePolicy.IGNORE
        assert config.warm_up is True


class TestFromDict:
    """dict에서 생성"""

    def test_policy_from_string(self):
        config = SensorConfig.from_dict({'unknown_code_policy': 'PROPAGATE'})
        assert config.unknown_code_policy is UnknownCodePolicy.PROPAGATE

    def test_unknown_key(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            SensorConfig.from_dict({'port': 'COM5', 'parity': 'E'})
        assert "parity" in str(exc_info.value)

    def test_invalid_policy(self):
        with pytest.raises(InvalidArgumentError):
            SensorConfig.from_dict({'unknown_code_policy': 'crash'})

    @pytest.mark.parametrize('key, value', [
        ('baudrate', 0),
        ('allowed_retries', 0),
        ('retry_interval', 0),
        ('timeout', -1),
    ])
    def test_invalid_values(self, key, value):
        with pytest.raises(InvalidArgumentError):
            SensorConfig.from_dict({key: value})

    @pytest.mark.parametrize('key, value', [
        ('allowed_retries', 'ten'),
        ('allowed_retries', 2.5),
        ('allowed_retries', True),
        ('baudrate', '9600'),
        ('retry_interval', '0.1'),
        ('timeout', None),
        ('warm_up', 'no'),
        ('warm_up', 1),
        ('unknown_code_policy', 1),
        ('port', 5),
    ])
    def test_invalid_types(self, key, value):
        """잘못된 타입은 TypeError가 아닌 InvalidArgumentError"""
        with pytest.raises(InvalidArgumentError) as exc_info:
            SensorConfig.from_dict({key: value})
        assert key in str(exc_info.value)

    def test_integer_interval_accepted(self):
        config = SensorConfig.from_dict({'retry_interval': 1, 'timeout': 2})
        assert config.retry_interval == 1

    def test_to_dict_round_trip(self):
        config = SensorConfig(port='COM5', allowed_retries=3)
        assert SensorConfig.from_dict(config.to_dict()) == config


class TestFromYaml:
    """YAML 파일 로드"""

    def test_load(self, tmp_path):
        path = tmp_path / 'sensor.yaml'
        path.write_text(
            "port: /dev/ttyUSB0\n"
            "allowed_retries: 5\n"
            "retry_interval: 0.5\n"
            "unknown_code_policy: propagate\n",
            encoding='utf-8'
        )

        config = SensorConfig.from_yaml(path)

        assert config.port == '/dev/ttyUSB0'
        assert config.allowed_retries == 5
        assert config.retry_interval == 0.5
        assert config.unknown_code_policy is UnknownCodePolicy.PROPAGATE

    def test_sds011_section(self, tmp_path):
        path = tmp_path / 'app.yaml'
        path.write_text("sds011:\n  port: COM5\n  warm_up: false\n", encoding='utf-8')

        config = SensorConfig.from_yaml(str(path))

        assert config.port == 'COM5'
        assert config.warm_up is False

    def test_quoted_bool_rejected(self, tmp_path):
        path = tmp_path / 'sensor.yaml'
        path.write_text("warm_up: 'no'\n", encoding='utf-8')

        with pytest.raises(InvalidArgumentError):
            SensorConfig.from_yaml(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text("", encoding='utf-8')

        assert SensorConfig.from_yaml(path) == SensorConfig()

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text("- COM5\n", encoding='utf-8')

        with pytest.raises(InvalidArgumentError):
            SensorConfig.from_yaml(path)


class TestLoadConfig:
    """load_config 헬퍼"""

    def test_without_file(self):
        assert load_config(port='COM5').port == 'COM5'

    def test_overrides(self, tmp_path):
        path = tmp_path / 'sensor.yaml'
        path.write_text("port: COM3\nallowed_retries: 4\n", encoding='utf-8')

        config = load_config(path, port='COM7', retry_interval=None)

        assert config.port == 'COM7'
        assert config.allowed_retries == 4
        assert config.retry_interval == 0.15


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
