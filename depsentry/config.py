"""
depsentry/config.py
===================
센서 설정 (SensorConfig) 및 YAML 로더

설계 원칙:
1. 설정은 불변 스냅샷 - 변경은 merged()로 새 객체 생성
2. 프로세스 전역 설정 없음 - 각 센서 인스턴스에 명시적으로 전달
3. 파일 형식: <project>/.depsentry/config.yaml

예:
    sensor:
      monitoring_interval_ms: 200
      sensitivity: 0.8
      max_retries: 3
      buffer_size: 1000
"""

import logging
from dataclasses import dataclass, fields, replace, asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = ".depsentry"
CONFIG_FILE = "config.yaml"


class ConfigError(ValueError):
    """잘못된 센서 설정"""


_INT_FIELDS = ("monitoring_interval_ms", "max_retries", "buffer_size", "retry_base_delay_ms")


@dataclass(frozen=True)
class SensorConfig:
    """센서 설정 스냅샷"""
    monitoring_interval_ms: int = 100
    sensitivity: float = 0.8
    max_retries: int = 3
    buffer_size: int = 1000
    retry_base_delay_ms: int = 1000
    enabled: bool = True

    def __post_init__(self):
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer: {value!r}")
        if isinstance(self.sensitivity, bool) or not isinstance(self.sensitivity, (int, float)):
            raise ConfigError(f"sensitivity must be a number: {self.sensitivity!r}")
        if not isinstance(self.enabled, bool):
            raise ConfigError(f"enabled must be true or false: {self.enabled!r}")
        object.__setattr__(self, "sensitivity", float(self.sensitivity))

        if self.monitoring_interval_ms <= 0:
            raise ConfigError(f"monitoring_interval_ms must be positive: {self.monitoring_interval_ms}")
        if not 0.0 <= self.sensitivity <= 1.0:
            raise ConfigError(f"sensitivity must be within [0, 1]: {self.sensitivity}")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must not be negative: {self.max_retries}")
        if self.buffer_size < 1:
            raise ConfigError(f"buffer_size must be at least 1: {self.buffer_size}")
        if self.retry_base_delay_ms < 0:
            raise ConfigError(f"retry_base_delay_ms must not be negative: {self.retry_base_delay_ms}")

    @property
    def interval_seconds(self) -> float:
        return self.monitoring_interval_ms / 1000.0

    @property
    def failure_threshold(self) -> float:
        """허용 실패율 (sensitivity가 높을수록 엄격)"""
        return 1.0 - self.sensitivity

    def backoff_seconds(self, attempt: int) -> float:
        """attempt(0부터)번째 실패 후 대기 시간: base * 2^attempt"""
        return self.retry_base_delay_ms * (2 ** attempt) / 1000.0

    def merged(self, **changes: Any) -> "SensorConfig":
        """변경 사항을 병합한 새 설정 반환"""
        unknown = set(changes) - _FIELD_NAMES
        if unknown:
            raise ConfigError(f"Unknown sensor config keys: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional["SensorConfig"] = None) -> "SensorConfig":
        return (base or cls()).merged(**data)


_FIELD_NAMES = {f.name for f in fields(SensorConfig)}

DEFAULT_SENSOR_CONFIG = SensorConfig()


def default_config_path(project_path: Path) -> Path:
    return Path(project_path) / CONFIG_DIR / CONFIG_FILE


def load_sensor_config(
    config_path: Path,
    base: Optional[SensorConfig] = None
) -> SensorConfig:
    """
    YAML 파일에서 센서 설정 로드

    파일이 없으면 기본값(base)을 그대로 반환.
    최상위 `sensor:` 섹션이 있으면 그 아래를, 없으면 최상위 매핑을 사용.

    Raises:
        ConfigError: YAML 파싱 실패, 알 수 없는 키, 범위 밖 값
    """
    base = base or DEFAULT_SENSOR_CONFIG
    config_path = Path(config_path)

    if not config_path.exists():
        logger.debug("No sensor config at %s, using defaults", config_path)
        return base

    try:
        with open(config_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {config_path}")

    section = data.get("sensor", data)
    if not isinstance(section, dict):
        raise ConfigError(f"'sensor' section in {config_path} must be a mapping")

    config = SensorConfig.from_dict(section, base=base)
    logger.info("Loaded sensor config from %s", config_path)
    return config


def save_sensor_config(config: SensorConfig, config_path: Path):
    """센서 설정을 YAML로 저장"""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.dump({"sensor": config.to_dict()}, f, default_flow_style=False,
                  allow_unicode=True, sort_keys=False)


__all__ = [
    'ConfigError',
    'SensorConfig',
    'DEFAULT_SENSOR_CONFIG',
    'default_config_path',
    'load_sensor_config',
    'save_sensor_config',
]
