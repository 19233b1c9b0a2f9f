"""
depsentry/dependency_sensor.py
==============================
의존성 센서 (DependencySensor)

각 모니터링 사이클:
1. 추적 중인 모든 파일의 엣지를 지정자 해석
   → 해석 실패한 비상대 지정자는 DEPENDENCY_MISSING 이슈
2. 내부 엣지 그래프에서 순환 탐지
   → 순환마다 ARCHITECTURAL_INCONSISTENCY 이슈
3. 이슈 집합에서 상태 도출 후 SensorResult 반환

파일 변경(add/update/remove)과 사이클은 모두 센서의 _lock으로 직렬화됨
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set, Tuple

from .models import (
    SensorType, SensorResult, ComputationalIssue, ProblemType, ProblemContext,
    ProblemMetadata, Severity, PackageInfo, DependencyEdge, FileNode, CycleInfo
)
from .config import SensorConfig
from .sensor import BaseSensor
from .extensions import AnalyzerRegistry, LanguageAnalyzer, default_analyzers
from .graph import FileGraph, CycleDetector, create_cycle_issue

logger = logging.getLogger(__name__)

MISSING_DEPENDENCY_CONFIDENCE = 0.95


@dataclass
class _DependencyAnalysis:
    """사이클 1회의 분석 스냅샷 (이슈와 통계가 공유)"""
    edges: List[DependencyEdge]
    unresolved: List[Tuple[DependencyEdge, List[str]]]
    cycles: List[CycleInfo]


class DependencySensor(BaseSensor):
    """
    파일 의존성 센서

    사용 예:
        sensor = DependencySensor(package_info=PackageInfo(name="app", dependencies={"react": "^18"}))
        sensor.add_file("src/a.ts", "import React from 'react';")
        result = sensor.monitor()
    """

    def __init__(
        self,
        config: Optional[SensorConfig] = None,
        package_info: Optional[PackageInfo] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        super().__init__(SensorType.DEPENDENCY, config, sleep=sleep)
        self.package_info = package_info
        self.registry = AnalyzerRegistry(default_analyzers(package_info))
        self.graph = FileGraph(self.registry)

    # =========================================================================
    # 설정/분석기
    # =========================================================================

    def set_package_info(self, package_info: Optional[PackageInfo]):
        """manifest 스냅샷 교체 (다음 사이클부터 적용)"""
        with self._lock:
            self.package_info = package_info
            for analyzer in self.registry.analyzers():
                analyzer.set_package_info(package_info)

    def register_analyzer(self, analyzer: LanguageAnalyzer):
        """
        언어 분석기 등록 (같은 확장자의 기존 분석기를 대체)

        이미 추적 중인 파일은 다음 update_file 또는 복구 시 새 분석기로 재추출됨
        """
        with self._lock:
            analyzer.set_package_info(self.package_info)
            self.registry.register(analyzer)

    # =========================================================================
    # 파일 추적
    # =========================================================================

    def add_file(self, path: str, content: str) -> FileNode:
        with self._lock:
            node = self.graph.add_file(path, content)
        logger.debug("Tracking %s (%d edges)", node.path, len(node.edges))
        return node

    def update_file(self, path: str, content: str) -> FileNode:
        with self._lock:
            node = self.graph.update_file(path, content)
        logger.debug("Updated %s (%d edges)", node.path, len(node.edges))
        return node

    def remove_file(self, path: str) -> bool:
        with self._lock:
            removed = self.graph.remove_file(path)
        if removed:
            logger.debug("Stopped tracking %s", path)
        return removed

    def has_file(self, path: str) -> bool:
        with self._lock:
            return self.graph.has_file(path)

    def get_file(self, path: str) -> Optional[FileNode]:
        with self._lock:
            return self.graph.get_node(path)

    def tracked_files(self) -> List[str]:
        with self._lock:
            return self.graph.files()

    # =========================================================================
    # 분석
    # =========================================================================

    def get_dependency_issues(self) -> List[ComputationalIssue]:
        """누락 의존성 이슈 + 순환 의존성 이슈"""
        with self._lock:
            return self._build_issues(self._analyze(), time.time())

    def get_dependency_stats(self) -> Dict[str, int]:
        """추적 파일 수, 엣지 수, 외부 엣지 수, 누락 지정자 수, 순환 수"""
        with self._lock:
            return self._build_stats(self._analyze())

    def perform_monitoring(self) -> SensorResult:
        started = time.perf_counter()
        with self._lock:
            analysis = self._analyze()
            issues = self._build_issues(analysis, time.time())
            stats = self._build_stats(analysis)
        analysis_ms = (time.perf_counter() - started) * 1000.0

        metrics: Dict[str, float] = {key: float(value) for key, value in stats.items()}
        metrics["analysis_time"] = analysis_ms
        return self.create_sensor_result(issues, metrics)

    def perform_recovery(self):
        """추적 중인 모든 파일의 엣지 재추출"""
        with self._lock:
            count = self.graph.reanalyze()
        logger.info("Re-analyzed %d tracked files", count)

    # =========================================================================
    # 내부 구현
    # =========================================================================

    def _analyze(self) -> "_DependencyAnalysis":
        """엣지 해석과 순환 탐지를 한 번만 수행 (호출자가 _lock 보유)"""
        edges = self.graph.edges()
        return _DependencyAnalysis(
            edges=edges,
            unresolved=self._unresolved_edges(edges),
            cycles=CycleDetector(self.graph.internal_adjacency()).find_cycles()
        )

    def _build_issues(self, analysis: "_DependencyAnalysis", detected_at: float) -> List[ComputationalIssue]:
        issues = self._missing_dependency_issues(analysis.unresolved, detected_at)
        for cycle in analysis.cycles:
            issues.append(create_cycle_issue(cycle, detected_at))
        return issues

    def _build_stats(self, analysis: "_DependencyAnalysis") -> Dict[str, int]:
        return {
            "total_files": self.graph.file_count,
            "total_dependencies": len(analysis.edges),
            "external_dependencies": sum(1 for e in analysis.edges if e.is_external),
            "missing_dependencies": len(analysis.unresolved),
            "circular_dependencies": len(analysis.cycles),
        }

    def _unresolved_edges(self, edges: List[DependencyEdge]) -> List[Tuple[DependencyEdge, List[str]]]:
        """(file, specifier)당 첫 번째 미해석 엣지와 제안 목록"""
        seen: Set[Tuple[str, str]] = set()
        unresolved: List[Tuple[DependencyEdge, List[str]]] = []

        for edge in edges:
            if not edge.is_external:
                continue
            key = (edge.source, edge.target)
            if key in seen:
                continue

            resolution = self.registry.resolve(edge.target, edge.source)
            if resolution is None or resolution.resolved:
                continue

            seen.add(key)
            unresolved.append((edge, resolution.suggestions))

        return unresolved

    def _missing_dependency_issues(
        self,
        unresolved: List[Tuple[DependencyEdge, List[str]]],
        detected_at: float
    ) -> List[ComputationalIssue]:
        issues: List[ComputationalIssue] = []

        for edge, suggestions in unresolved:
            issues.append(ComputationalIssue(
                id=f"missing-dep:{edge.source}:{edge.line}:{edge.target}",
                type=ProblemType.DEPENDENCY_MISSING,
                severity=Severity.HIGH,
                message=f"Cannot resolve module '{edge.target}'",
                context=ProblemContext(
                    file=edge.source,
                    line=edge.line,
                    column=edge.column,
                    scope=("imports",)
                ),
                metadata=ProblemMetadata(
                    detected_at=detected_at,
                    detected_by=SensorType.DEPENDENCY,
                    confidence=MISSING_DEPENDENCY_CONFIDENCE,
                    tags=("missing-dependency", edge.target, edge.type.value.lower())
                ),
                suggestions=tuple(suggestions)
            ))

        return issues


__all__ = ['DependencySensor']
