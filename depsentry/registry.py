"""
depsentry/registry.py
=====================
센서 레지스트리

센서 종류(SensorType)당 하나의 센서를 등록하고
일괄 시작/중지/모니터링 및 건강 요약을 제공
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .models import SensorType, SensorStatus, SensorResult, ResultStatus
from .sensor import BaseSensor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryConfig:
    """레지스트리 설정"""
    auto_start: bool = True
    max_sensors: int = 10


@dataclass
class SensorRegistration:
    """등록 정보"""
    sensor: BaseSensor
    registered_at: float = field(default_factory=time.time)
    priority: int = 1


@dataclass
class RegistryHealth:
    """레지스트리 건강 요약"""
    total_sensors: int = 0
    active_sensors: int = 0
    healthy_sensors: int = 0
    unhealthy_sensors: int = 0
    average_response_time: float = 0.0
    checked_at: float = 0.0

    @property
    def all_healthy(self) -> bool:
        return self.unhealthy_sensors == 0

    def to_dict(self) -> Dict:
        return {
            "total_sensors": self.total_sensors,
            "active_sensors": self.active_sensors,
            "healthy_sensors": self.healthy_sensors,
            "unhealthy_sensors": self.unhealthy_sensors,
            "average_response_time": self.average_response_time,
            "checked_at": self.checked_at,
        }


class SensorRegistry:
    """
    센서 중앙 레지스트리

    사용 예:
        registry = SensorRegistry(RegistryConfig(auto_start=False))
        registry.register_sensor(DependencySensor())
        results = registry.monitor_all()
    """

    def __init__(self, config: Optional[RegistryConfig] = None):
        self.config = config or RegistryConfig()
        self._sensors: Dict[SensorType, SensorRegistration] = {}

    def register_sensor(self, sensor: BaseSensor, priority: int = 1):
        """
        센서 등록 (auto_start면 모니터링 시작)

        Raises:
            ValueError: 같은 종류가 이미 등록됨 / 최대 센서 수 초과
        """
        if sensor.type in self._sensors:
            raise ValueError(f"Sensor {sensor.type.value} is already registered")
        if len(self._sensors) >= self.config.max_sensors:
            raise ValueError(f"Maximum number of sensors ({self.config.max_sensors}) reached")

        self._sensors[sensor.type] = SensorRegistration(sensor=sensor, priority=priority)

        if self.config.auto_start:
            sensor.start_monitoring()

        logger.info("Registered %s sensor (priority: %d)", sensor.type.value, priority)

    def unregister_sensor(self, sensor_type: SensorType) -> bool:
        """센서 제거 (모니터링 중지 후), 없으면 False"""
        registration = self._sensors.pop(sensor_type, None)
        if registration is None:
            return False

        registration.sensor.stop_monitoring()
        logger.info("Unregistered %s sensor", sensor_type.value)
        return True

    def get_sensor(self, sensor_type: SensorType) -> Optional[BaseSensor]:
        registration = self._sensors.get(sensor_type)
        return registration.sensor if registration else None

    def get_all_sensors(self) -> List[BaseSensor]:
        """우선순위 높은 순"""
        ordered = sorted(self._sensors.values(), key=lambda r: -r.priority)
        return [r.sensor for r in ordered]

    def start_all(self):
        sensors = self.get_all_sensors()
        for sensor in sensors:
            sensor.start_monitoring()
        logger.info("Started %d sensors", len(sensors))

    def stop_all(self):
        for sensor in self.get_all_sensors():
            sensor.stop_monitoring()
        logger.info("Stopped all sensors")

    def monitor_all(self) -> Dict[SensorType, SensorResult]:
        """
        모든 센서 1회 모니터링

        실패한 센서는 예외 대신 error=1 메트릭을 가진 CRITICAL 결과로 보고
        """
        results: Dict[SensorType, SensorResult] = {}

        for sensor in self.get_all_sensors():
            try:
                results[sensor.type] = sensor.monitor()
            except Exception as e:
                logger.error("%s sensor monitoring failed: %s", sensor.type.value, e)
                results[sensor.type] = SensorResult(
                    timestamp=time.time(),
                    status=ResultStatus.CRITICAL,
                    metrics={"error": 1.0}
                )

        return results

    def get_health(self) -> RegistryHealth:
        sensors = self.get_all_sensors()
        health = RegistryHealth(total_sensors=len(sensors), checked_at=time.time())

        total_response_time = 0.0
        for sensor in sensors:
            if sensor.get_status() is SensorStatus.ACTIVE:
                health.active_sensors += 1
            if sensor.is_healthy():
                health.healthy_sensors += 1
            else:
                health.unhealthy_sensors += 1
            total_response_time += sensor.get_metrics().average_response_time

        if sensors:
            health.average_response_time = total_response_time / len(sensors)
        return health

    def shutdown(self):
        """모든 센서 중지 후 등록 해제"""
        self.stop_all()
        self._sensors.clear()

    def __len__(self) -> int:
        return len(self._sensors)

    def __contains__(self, sensor_type: SensorType) -> bool:
        return sensor_type in self._sensors


__all__ = [
    'RegistryConfig',
    'RegistryHealth',
    'SensorRegistration',
    'SensorRegistry',
]
