"""
depsentry/sensor.py
===================
센서 생명주기 코어 (BaseSensor)

기능:
- start/stop 멱등 생명주기 (INACTIVE ↔ ACTIVE)
- 주기적 모니터링 트리거 (daemon thread + Event)
- 메트릭 집계 (사이클 수, 성공/실패, 평균 응답 시간)
- 고정 크기 결과 링 버퍼 (오래된 결과부터 제거)
- 지수 백오프 기반 실패 복구 (유한 루프, 재귀 없음)

동시성 모델:
- _lock (RLock): 센서당 단일 임계 구역. 모니터링 사이클, 복구 프로브,
  하위 클래스의 상태 변경(그래프 수정 등)이 모두 이 락으로 직렬화됨
- _state_lock (Lock): 상태/메트릭/버퍼의 짧은 갱신 전용.
  락 순서는 항상 _lock → _state_lock
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Dict, Iterable, List, Optional

from .models import (
    SensorType, SensorStatus, SensorResult, SensorMetrics, FailureRecord,
    ComputationalIssue, determine_status
)
from .config import SensorConfig, DEFAULT_SENSOR_CONFIG

logger = logging.getLogger(__name__)

# 건강 판정에 사용하는 최근 사이클 수
HEALTH_WINDOW = 10
# 복구 실패 후 건강 상태로 돌아오기 위한 연속 성공 횟수
HEALTH_RECOVERY_RUN = 3
# 평균 응답 시간 지수 이동 평균 계수
RESPONSE_TIME_ALPHA = 0.1


class BaseSensor(ABC):
    """
    모든 센서의 추상 기본 클래스

    하위 클래스는 perform_monitoring()만 구현하면 됨.
    필요 시 perform_recovery()를 재정의하여 복구 로직 제공.
    """

    def __init__(
        self,
        sensor_type: SensorType,
        config: Optional[SensorConfig] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.type = sensor_type
        self._config = config or DEFAULT_SENSOR_CONFIG
        self._status = SensorStatus.INACTIVE
        self._metrics = SensorMetrics()
        self._results: Deque[SensorResult] = deque(maxlen=self._config.buffer_size)

        # 건강 판정용 (True=성공, False=실패)
        self._outcomes: Deque[bool] = deque(maxlen=HEALTH_WINDOW)
        self._consecutive_successes = 0
        self._recovery_exhausted = False

        self._sleep = sleep
        self._lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._trigger_stop: Optional[threading.Event] = None
        self._trigger_thread: Optional[threading.Thread] = None

    # =========================================================================
    # 생명주기
    # =========================================================================

    def start_monitoring(self):
        """주기적 모니터링 시작 (이미 ACTIVE면 아무것도 하지 않음)"""
        with self._state_lock:
            if self._status is SensorStatus.ACTIVE:
                return
            if not self._config.enabled:
                logger.info("%s sensor is disabled, not starting", self.type.value)
                return
            self._status = SensorStatus.ACTIVE
            self._arm_trigger()

        logger.info("%s sensor started monitoring (interval=%dms)",
                    self.type.value, self._config.monitoring_interval_ms)

    def stop_monitoring(self):
        """
        주기적 모니터링 중지 (이미 INACTIVE면 아무것도 하지 않음)

        진행 중인 사이클은 끝까지 실행됨 - 이후 예약된 사이클만 막음
        """
        with self._state_lock:
            if self._status is SensorStatus.INACTIVE:
                return
            self._disarm_trigger()
            self._status = SensorStatus.INACTIVE

        logger.info("%s sensor stopped monitoring", self.type.value)

    @property
    def is_monitoring(self) -> bool:
        return self._status is SensorStatus.ACTIVE

    def get_status(self) -> SensorStatus:
        return self._status

    # =========================================================================
    # 모니터링 사이클
    # =========================================================================

    def monitor(self) -> SensorResult:
        """
        모니터링 사이클 1회 실행

        Returns:
            SensorResult (링 버퍼에도 추가됨)

        Raises:
            perform_monitoring()이 던진 예외 (failed_cycles 증가 후 그대로 전파)
        """
        with self._lock:
            started = time.perf_counter()
            try:
                result = self.perform_monitoring()
            except Exception as e:
                self._record_failure(e)
                raise

            elapsed_ms = (time.perf_counter() - started) * 1000.0
            self._record_success(result, elapsed_ms)
            return result

    @abstractmethod
    def perform_monitoring(self) -> SensorResult:
        """센서별 탐지 로직 (하위 클래스 구현)"""

    def perform_recovery(self):
        """센서별 복구 로직 (기본: 아무것도 하지 않음)"""

    def handle_failure(self, error: BaseException, *, rearm: bool = True) -> bool:
        """
        실패 후 복구 시도 (지수 백오프)

        최대 max_retries회 시도. 각 시도는 perform_recovery() 후
        perform_monitoring()으로 검증하며, 실패하면
        retry_base_delay_ms * 2^attempt 만큼 대기 후 재시도.

        Args:
            error: 원인 예외
            rearm: 복구 성공 시 트리거를 다시 무장할지 여부
                   (주기 트리거 스레드에서 호출할 때는 False)

        Returns:
            복구 성공 여부 (예외를 던지지 않음)
        """
        logger.error("%s sensor failure: %s", self.type.value, error)

        with self._state_lock:
            if self._metrics.last_failure is None:
                self._metrics.last_failure = FailureRecord(
                    timestamp=time.time(), error=_describe(error)
                )

        max_retries = self._config.max_retries
        for attempt in range(max_retries):
            try:
                with self._lock:
                    self.perform_recovery()
                    self.perform_monitoring()
            except Exception as recovery_error:
                with self._state_lock:
                    if self._metrics.last_failure is not None:
                        self._metrics.last_failure.retry_count = attempt + 1
                logger.warning("%s sensor recovery attempt %d/%d failed: %s",
                               self.type.value, attempt + 1, max_retries, recovery_error)
                if attempt + 1 < max_retries:
                    self._sleep(self._config.backoff_seconds(attempt))
                continue

            self._mark_recovered()
            logger.info("%s sensor recovered after %d attempt(s)",
                        self.type.value, attempt + 1)
            if rearm:
                self.start_monitoring()
            return True

        with self._state_lock:
            self._recovery_exhausted = True
            self._consecutive_successes = 0
        logger.error("%s sensor recovery failed after %d attempts",
                     self.type.value, max_retries)
        return False

    # =========================================================================
    # 건강/메트릭/결과 조회
    # =========================================================================

    def is_healthy(self) -> bool:
        """
        최근 사이클 결과 기반 건강 여부

        - 복구 재시도 소진 후에는 연속 성공 HEALTH_RECOVERY_RUN회 전까지 False
        - 최근 HEALTH_WINDOW 사이클의 실패율이 (1 - sensitivity)를 넘으면 False
        """
        with self._state_lock:
            if self._recovery_exhausted:
                return False
            if not self._outcomes:
                return True
            failure_ratio = self._outcomes.count(False) / len(self._outcomes)
            return failure_ratio - self._config.failure_threshold <= 1e-9

    def get_metrics(self) -> SensorMetrics:
        """메트릭 복사본 반환"""
        with self._state_lock:
            m = self._metrics
            last_failure = None
            if m.last_failure is not None:
                last_failure = FailureRecord(
                    timestamp=m.last_failure.timestamp,
                    error=m.last_failure.error,
                    retry_count=m.last_failure.retry_count
                )
            return SensorMetrics(
                total_monitoring_cycles=m.total_monitoring_cycles,
                successful_cycles=m.successful_cycles,
                failed_cycles=m.failed_cycles,
                average_response_time=m.average_response_time,
                last_successful_monitoring=m.last_successful_monitoring,
                last_failure=last_failure
            )

    def reset_metrics(self):
        """메트릭 및 건강 판정 이력 초기화"""
        with self._state_lock:
            self._metrics = SensorMetrics()
            self._outcomes.clear()
            self._consecutive_successes = 0
            self._recovery_exhausted = False

    def get_recent_results(self, count: int = 10) -> List[SensorResult]:
        """최근 결과 최대 count개 (오래된 것부터)"""
        if count <= 0:
            return []
        with self._state_lock:
            return list(self._results)[-count:]

    # =========================================================================
    # 설정
    # =========================================================================

    def get_config(self) -> SensorConfig:
        return self._config

    def update_config(self, **changes) -> SensorConfig:
        """
        설정 병합

        ACTIVE 상태에서 monitoring_interval_ms가 바뀌면 상태 변경 없이
        트리거만 다시 무장함. buffer_size가 바뀌면 최신 결과를 유지한 채
        버퍼 크기 조정.

        Raises:
            ConfigError: 알 수 없는 키 또는 범위 밖 값
        """
        new_config = self._config.merged(**changes)

        with self._state_lock:
            old_config = self._config
            self._config = new_config

            if new_config.buffer_size != old_config.buffer_size:
                self._results = deque(self._results, maxlen=new_config.buffer_size)

            rearmed = (self._status is SensorStatus.ACTIVE
                       and new_config.monitoring_interval_ms != old_config.monitoring_interval_ms)
            if rearmed:
                self._disarm_trigger()
                self._arm_trigger()

        if rearmed:
            logger.info("%s sensor trigger rearmed (interval=%dms)",
                        self.type.value, new_config.monitoring_interval_ms)
        return new_config

    # =========================================================================
    # 결과 생성 헬퍼
    # =========================================================================

    def create_sensor_result(
        self,
        issues: Iterable[ComputationalIssue] = (),
        custom_metrics: Optional[Dict[str, float]] = None
    ) -> SensorResult:
        """표준 SensorResult 생성 (상태는 이슈 집합에서 도출)"""
        issues = tuple(issues)

        with self._state_lock:
            m = self._metrics
            success_rate = (m.successful_cycles / m.total_monitoring_cycles
                            if m.total_monitoring_cycles > 0 else 1.0)
            metrics: Dict[str, float] = {
                "response_time": m.average_response_time,
                "success_rate": success_rate,
            }

        metrics.update(custom_metrics or {})
        return SensorResult(
            timestamp=time.time(),
            status=determine_status(issues),
            issues=issues,
            metrics=metrics
        )

    # =========================================================================
    # 내부 구현
    # =========================================================================

    def _arm_trigger(self):
        # _state_lock 보유 상태에서 호출
        stop = threading.Event()
        thread = threading.Thread(
            target=self._trigger_loop,
            args=(stop,),
            name=f"{self.type.value.lower()}-sensor-trigger",
            daemon=True
        )
        self._trigger_stop = stop
        self._trigger_thread = thread
        thread.start()

    def _disarm_trigger(self):
        # _state_lock 보유 상태에서 호출
        if self._trigger_stop is not None:
            self._trigger_stop.set()
        self._trigger_stop = None
        self._trigger_thread = None

    def _trigger_loop(self, stop: threading.Event):
        while not stop.wait(self._config.interval_seconds):
            self._run_scheduled_cycle()

    def _run_scheduled_cycle(self):
        """예약된 사이클 실행 (이전 사이클이 진행 중이면 다음 틱으로 미룸)"""
        if not self._lock.acquire(blocking=False):
            logger.debug("%s sensor cycle still running, deferring tick", self.type.value)
            return

        failure: Optional[Exception] = None
        try:
            self.monitor()
        except Exception as e:
            failure = e
        finally:
            self._lock.release()

        if failure is not None:
            self.handle_failure(failure, rearm=False)

    def _record_success(self, result: SensorResult, elapsed_ms: float):
        with self._state_lock:
            m = self._metrics
            m.total_monitoring_cycles += 1
            m.successful_cycles += 1
            m.last_successful_monitoring = time.time()
            if m.successful_cycles == 1:
                m.average_response_time = elapsed_ms
            else:
                m.average_response_time = (m.average_response_time * (1 - RESPONSE_TIME_ALPHA)
                                           + elapsed_ms * RESPONSE_TIME_ALPHA)

            self._results.append(result)
            self._outcomes.append(True)
            self._consecutive_successes += 1

            if self._recovery_exhausted and self._consecutive_successes >= HEALTH_RECOVERY_RUN:
                self._recovery_exhausted = False
                logger.info("%s sensor healthy again after %d successful cycles",
                            self.type.value, self._consecutive_successes)

    def _record_failure(self, error: BaseException):
        with self._state_lock:
            m = self._metrics
            m.total_monitoring_cycles += 1
            m.failed_cycles += 1
            m.last_failure = FailureRecord(timestamp=time.time(), error=_describe(error))
            self._outcomes.append(False)
            self._consecutive_successes = 0

    def _mark_recovered(self):
        with self._state_lock:
            self._outcomes.clear()
            self._consecutive_successes = 0
            self._recovery_exhausted = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.type.value}, status={self._status.value})"


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


__all__ = [
    'BaseSensor',
    'HEALTH_WINDOW',
    'HEALTH_RECOVERY_RUN',
]
