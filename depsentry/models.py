"""
depsentry/models.py
===================
공통 타입 정의

설계 원칙:
- 외부 의존성 없음 (순수 Python 표준 라이브러리만)
- 순환 import 방지 (이 모듈은 다른 모듈을 import하지 않음)
- 센서 결과(SensorResult)는 불변이며 그래프 내부 객체를 참조하지 않음
"""

from enum import Enum
from collections.abc import Mapping as _Mapping
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Tuple, Mapping, Iterable, FrozenSet


# =============================================================================
# 열거형 (Enums)
# =============================================================================

class SensorType(Enum):
    """센서 종류"""
    SYNTAX = "SYNTAX"
    SEMANTIC = "SEMANTIC"
    DEPENDENCY = "DEPENDENCY"
    RESOURCE = "RESOURCE"
    NETWORK = "NETWORK"
    CONFIGURATION = "CONFIGURATION"
    SECURITY = "SECURITY"
    PERFORMANCE = "PERFORMANCE"
    ARCHITECTURE = "ARCHITECTURE"
    DEPLOYMENT = "DEPLOYMENT"


class SensorStatus(Enum):
    """센서 생명주기 상태 (건강 여부와는 별개)"""
    INACTIVE = "INACTIVE"
    ACTIVE = "ACTIVE"


class ResultStatus(Enum):
    """모니터링 사이클 결과 상태"""
    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class ProblemType(Enum):
    """탐지된 문제 유형"""
    SYNTAX_ERROR = "SYNTAX_ERROR"
    SEMANTIC_ERROR = "SEMANTIC_ERROR"
    DEPENDENCY_MISSING = "DEPENDENCY_MISSING"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    PERFORMANCE_BOTTLENECK = "PERFORMANCE_BOTTLENECK"
    SECURITY_VULNERABILITY = "SECURITY_VULNERABILITY"
    ARCHITECTURAL_INCONSISTENCY = "ARCHITECTURAL_INCONSISTENCY"
    UNKNOWN = "UNKNOWN"


class Severity(Enum):
    """이슈 심각도 (서열 비교는 rank 사용)"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
    BLOCKING = "blocking"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
    Severity.BLOCKING: 5,
}


class EdgeType(Enum):
    """의존성 엣지 유형"""
    IMPORT = "IMPORT"
    TYPE_IMPORT = "TYPE_IMPORT"
    DYNAMIC_IMPORT = "DYNAMIC_IMPORT"
    REQUIRE = "REQUIRE"
    EXPORT = "EXPORT"


# =============================================================================
# 이슈 데이터 클래스
# =============================================================================

@dataclass(frozen=True)
class ProblemContext:
    """이슈 발생 위치 (에디터의 jump-to-location 용)"""
    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    scope: Tuple[str, ...] = ()
    related_files: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "scope": list(self.scope),
            "related_files": list(self.related_files),
        }


@dataclass(frozen=True)
class ProblemMetadata:
    """탐지 메타데이터"""
    detected_at: float
    detected_by: SensorType
    confidence: float = 1.0
    tags: Tuple[str, ...] = ()

    def __post_init__(self):
        # confidence는 항상 [0, 1]
        object.__setattr__(self, "confidence", min(1.0, max(0.0, float(self.confidence))))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detected_at": self.detected_at,
            "detected_by": self.detected_by.value,
            "confidence": self.confidence,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class ComputationalIssue:
    """센서가 탐지한 문제"""
    id: str
    type: ProblemType
    severity: Severity
    context: ProblemContext
    metadata: ProblemMetadata
    message: str = ""
    suggestions: Tuple[str, ...] = ()

    def has_tag(self, tag: str) -> bool:
        return tag in self.metadata.tags

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "context": self.context.to_dict(),
            "metadata": self.metadata.to_dict(),
            "suggestions": list(self.suggestions),
        }


def determine_status(issues: Iterable[ComputationalIssue]) -> ResultStatus:
    """
    이슈 집합 → 결과 상태 (순수 함수)

    - 이슈 없음 → HEALTHY
    - 최고 심각도 LOW/MEDIUM → WARNING
    - 최고 심각도 HIGH 이상 → CRITICAL
    """
    highest = max((issue.severity.rank for issue in issues), default=0)
    if highest == 0:
        return ResultStatus.HEALTHY
    if highest >= Severity.HIGH.rank:
        return ResultStatus.CRITICAL
    return ResultStatus.WARNING


# =============================================================================
# 센서 결과/메트릭
# =============================================================================

class ResultMetrics(_Mapping):
    """
    읽기 전용 이름 → 숫자 매핑

    일반 dict를 감싸므로 pickle / deepcopy 가능 (프로세스 경계 통과용).
    """

    def __init__(self, values: Optional[Mapping[str, float]] = None):
        self._values: Dict[str, float] = dict(values or {})

    def __getitem__(self, key: str) -> float:
        return self._values[key]

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ResultMetrics({self._values!r})"


@dataclass(frozen=True)
class SensorResult:
    """모니터링 사이클 1회의 결과 (생성 후 불변)"""
    timestamp: float
    status: ResultStatus
    issues: Tuple[ComputationalIssue, ...] = ()
    metrics: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "issues", tuple(self.issues))
        object.__setattr__(self, "metrics", ResultMetrics(self.metrics))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "status": self.status.value,
            "issues": [i.to_dict() for i in self.issues],
            "metrics": dict(self.metrics),
        }


@dataclass
class FailureRecord:
    """마지막 실패 정보"""
    timestamp: float
    error: str
    retry_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "error": self.error,
            "retry_count": self.retry_count,
        }


@dataclass
class SensorMetrics:
    """센서 성능 메트릭"""
    total_monitoring_cycles: int = 0
    successful_cycles: int = 0
    failed_cycles: int = 0
    average_response_time: float = 0.0  # ms
    last_successful_monitoring: Optional[float] = None
    last_failure: Optional[FailureRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_monitoring_cycles": self.total_monitoring_cycles,
            "successful_cycles": self.successful_cycles,
            "failed_cycles": self.failed_cycles,
            "average_response_time": self.average_response_time,
            "last_successful_monitoring": self.last_successful_monitoring,
            "last_failure": self.last_failure.to_dict() if self.last_failure else None,
        }


# =============================================================================
# 의존성 그래프 관련 데이터 클래스
# =============================================================================

@dataclass
class PackageInfo:
    """manifest 스냅샷 (호스트가 제공)"""
    name: str
    version: str = "0.0.0"
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    peer_dependencies: Dict[str, str] = field(default_factory=dict)

    def declares(self, package: str) -> bool:
        return (package in self.dependencies
                or package in self.dev_dependencies
                or package in self.peer_dependencies)

    def all_dependencies(self) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        merged.update(self.peer_dependencies)
        merged.update(self.dev_dependencies)
        merged.update(self.dependencies)
        return merged

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageInfo":
        """package.json 형식(camelCase) 또는 snake_case 키 모두 허용"""
        return cls(
            name=data.get("name", ""),
            version=data.get("version", "0.0.0"),
            dependencies=dict(data.get("dependencies") or {}),
            dev_dependencies=dict(data.get("devDependencies") or data.get("dev_dependencies") or {}),
            peer_dependencies=dict(data.get("peerDependencies") or data.get("peer_dependencies") or {}),
        )


@dataclass(frozen=True)
class DependencyEdge:
    """파일 → 모듈 지정자 엣지"""
    source: str
    target: str
    type: EdgeType = EdgeType.IMPORT
    line: int = 1
    column: int = 1
    is_external: bool = True

    def __str__(self) -> str:
        return f"{self.source}:{self.line}:{self.column} -> {self.target} ({self.type.value})"


@dataclass
class FileNode:
    """추적 중인 파일 (그래프가 독점 소유)"""
    path: str
    content: str
    edges: List[DependencyEdge] = field(default_factory=list)
    last_analyzed: float = 0.0


@dataclass
class ResolutionResult:
    """지정자 해석 결과 (실패도 예외가 아니라 데이터)"""
    specifier: str
    resolved: bool
    resolved_path: Optional[str] = None
    error: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)


@dataclass
class CycleInfo:
    """순환 의존성 정보"""
    path: List[str]
    length: int = 0

    def __post_init__(self):
        if self.length == 0:
            self.length = len(set(self.path))

    @property
    def members(self) -> FrozenSet[str]:
        return frozenset(self.path)

    def to_dict(self) -> Dict:
        return {"path": self.path, "length": self.length}

    def __str__(self) -> str:
        return " → ".join(self.path)
