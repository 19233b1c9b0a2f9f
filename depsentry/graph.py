"""
depsentry/graph.py
==================
파일 의존성 그래프 및 순환 탐지

기능:
- 파일 경로 → FileNode 맵 (증분 add/update/remove)
- 내부(상대) 엣지를 추적 중인 파일 경로로 매핑
- O(V + E) 순환 탐지 (DFS 색상 기반)
- 순환 → ARCHITECTURAL_INCONSISTENCY 이슈 변환

엣지는 소스 노드에만 저장되므로 파일 제거 시 다른 곳의 정리가 필요 없음
(들어오는 엣지는 항상 현재 노드를 스캔해서 계산)
"""

import time
from dataclasses import replace
from enum import Enum
from typing import Dict, List, Set, Optional, Iterable

from .models import (
    DependencyEdge, FileNode, CycleInfo, ComputationalIssue, ProblemType,
    ProblemContext, ProblemMetadata, Severity, SensorType
)
from .extensions import AnalyzerRegistry
from .resolver import normalize_path


def _copy_node(node: FileNode) -> FileNode:
    return replace(node, edges=list(node.edges))


class _VisitState(Enum):
    """노드 방문 상태 (순환 탐지용)"""
    WHITE = 0  # 미방문
    GRAY = 1   # 방문 중 (현재 DFS 경로에 있음)
    BLACK = 2  # 방문 완료


# =============================================================================
# 파일 그래프
# =============================================================================

class FileGraph:
    """
    파일 의존성 그래프

    내부 구조:
    - _nodes: {정규화된 경로: FileNode}
    - 엣지는 FileNode.edges에만 존재 (원본 지정자 그대로)

    외부로는 FileNode 복사본만 반환함.
    """

    def __init__(self, registry: AnalyzerRegistry):
        self.registry = registry
        self._nodes: Dict[str, FileNode] = {}

    # =========================================================================
    # 변경
    # =========================================================================

    def add_file(self, path: str, content: str) -> FileNode:
        """파일 추가 (이미 있으면 update와 동일하게 전체 교체)"""
        key = normalize_path(path)
        node = FileNode(
            path=key,
            content=content,
            edges=self.registry.extract_edges(content, key),
            last_analyzed=time.time()
        )
        self._nodes[key] = node
        return _copy_node(node)

    def update_file(self, path: str, content: str) -> FileNode:
        """파일 내용 갱신 (엣지는 병합하지 않고 전체 교체)"""
        return self.add_file(path, content)

    def remove_file(self, path: str) -> bool:
        """파일 제거 (없는 경로면 False)"""
        return self._nodes.pop(normalize_path(path), None) is not None

    def reanalyze(self) -> int:
        """추적 중인 모든 파일의 엣지 재추출, 파일 수 반환"""
        for node in list(self._nodes.values()):
            self.add_file(node.path, node.content)
        return len(self._nodes)

    def clear(self):
        self._nodes.clear()

    # =========================================================================
    # 조회
    # =========================================================================

    def has_file(self, path: str) -> bool:
        return normalize_path(path) in self._nodes

    def get_node(self, path: str) -> Optional[FileNode]:
        """FileNode 복사본 (그래프 내부 객체는 공유하지 않음)"""
        node = self._nodes.get(normalize_path(path))
        if node is None:
            return None
        return _copy_node(node)

    def files(self) -> List[str]:
        return list(self._nodes.keys())

    def edges(self) -> List[DependencyEdge]:
        """모든 노드의 나가는 엣지"""
        return [edge for node in self._nodes.values() for edge in node.edges]

    @property
    def file_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(node.edges) for node in self._nodes.values())

    # =========================================================================
    # 내부 엣지 매핑
    # =========================================================================

    def internal_target(self, edge: DependencyEdge) -> Optional[str]:
        """
        내부 엣지가 가리키는 추적 중인 파일 경로

        ./b 는 b.ts, b/index.ts 등 분석기가 제시하는 후보 순으로 탐색.
        외부 엣지이거나 대응하는 노드가 없으면 None.
        """
        if edge.is_external:
            return None

        analyzer = self.registry.analyzer_for(edge.source)
        if analyzer is None:
            return None

        resolution = analyzer.resolve_specifier(edge.target, edge.source)
        if not resolution.resolved or not resolution.resolved_path:
            return None

        for candidate in analyzer.candidate_paths(resolution.resolved_path):
            candidate = normalize_path(candidate)
            if candidate in self._nodes:
                return candidate
        return None

    def internal_adjacency(self) -> Dict[str, List[str]]:
        """내부 엣지만으로 구성한 인접 리스트 (모든 노드 포함)"""
        adjacency: Dict[str, List[str]] = {}

        for path, node in self._nodes.items():
            targets: List[str] = []
            for edge in node.edges:
                target = self.internal_target(edge)
                if target is not None and target not in targets:
                    targets.append(target)
            adjacency[path] = targets

        return adjacency

    def get_dependents(self, path: str) -> List[str]:
        """path를 내부적으로 import하는 파일들"""
        key = normalize_path(path)
        return sorted(source for source, targets in self.internal_adjacency().items()
                      if key in targets)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, path: str) -> bool:
        return self.has_file(path)

    def __repr__(self) -> str:
        return f"FileGraph(files={self.file_count}, edges={self.edge_count})"


# =============================================================================
# 순환 탐지 (Cycle Detection)
# =============================================================================

class CycleDetector:
    """
    인접 리스트 스냅샷에 대한 순환 탐지기

    노드와 이웃을 정렬된 순서로 방문하므로 같은 스냅샷이면 같은 결과를 냄.
    """

    def __init__(self, adjacency: Dict[str, Iterable[str]]):
        self._adjacency: Dict[str, List[str]] = {
            node: sorted(set(targets)) for node, targets in adjacency.items()
        }

    def find_cycles(self) -> List[CycleInfo]:
        """
        모든 순환 의존성 찾기

        알고리즘: DFS + 색상 기반 방문 추적
        - WHITE: 미방문
        - GRAY: 현재 DFS 경로에 있음
        - BLACK: 방문 완료

        GRAY 노드를 다시 만나면 순환 발견.
        경로는 시작 노드로 닫힘 (a → b → a).

        재귀 대신 (노드, 이웃 iterator) 스택을 사용하므로
        import 체인 깊이가 재귀 한도를 넘어도 동작함.

        Returns:
            CycleInfo 목록 (구성 파일 집합 기준 중복 제거)
        """
        cycles: List[CycleInfo] = []
        state = {n: _VisitState.WHITE for n in self._adjacency}
        path: List[str] = []
        position: Dict[str, int] = {}

        for root in sorted(self._adjacency):
            if state[root] != _VisitState.WHITE:
                continue

            state[root] = _VisitState.GRAY
            position[root] = len(path)
            path.append(root)
            stack = [(root, iter(self._adjacency.get(root, [])))]

            while stack:
                node, neighbors = stack[-1]
                advanced = False

                for neighbor in neighbors:
                    neighbor_state = state.get(neighbor, _VisitState.WHITE)
                    if neighbor_state == _VisitState.GRAY:
                        # 순환 발견: path에서 neighbor부터 현재까지
                        cycle_start = position[neighbor]
                        cycles.append(CycleInfo(
                            path=path[cycle_start:] + [neighbor],
                            length=len(path) - cycle_start
                        ))
                    elif neighbor_state == _VisitState.WHITE:
                        state[neighbor] = _VisitState.GRAY
                        position[neighbor] = len(path)
                        path.append(neighbor)
                        stack.append((neighbor, iter(self._adjacency.get(neighbor, []))))
                        advanced = True
                        break

                if not advanced:
                    stack.pop()
                    path.pop()
                    del position[node]
                    state[node] = _VisitState.BLACK

        return self._deduplicate_cycles(cycles)

    def _deduplicate_cycles(self, cycles: List[CycleInfo]) -> List[CycleInfo]:
        """중복 순환 제거 (a→b→a 와 b→a→b 는 하나)"""
        seen: Set[frozenset] = set()
        unique: List[CycleInfo] = []

        for cycle in cycles:
            if cycle.members not in seen:
                seen.add(cycle.members)
                unique.append(cycle)

        return unique

    def has_cycle(self) -> bool:
        """순환 존재 여부 (빠른 확인)"""
        state = {n: _VisitState.WHITE for n in self._adjacency}

        for root in sorted(self._adjacency):
            if state[root] != _VisitState.WHITE:
                continue

            state[root] = _VisitState.GRAY
            stack = [(root, iter(self._adjacency.get(root, [])))]

            while stack:
                node, neighbors = stack[-1]
                advanced = False

                for neighbor in neighbors:
                    neighbor_state = state.get(neighbor, _VisitState.WHITE)
                    if neighbor_state == _VisitState.GRAY:
                        return True
                    elif neighbor_state == _VisitState.WHITE:
                        state[neighbor] = _VisitState.GRAY
                        stack.append((neighbor, iter(self._adjacency.get(neighbor, []))))
                        advanced = True
                        break

                if not advanced:
                    stack.pop()
                    state[node] = _VisitState.BLACK

        return False

    def cyclic_files(self) -> Set[str]:
        """순환에 참여하는 모든 파일"""
        files: Set[str] = set()
        for cycle in self.find_cycles():
            files |= cycle.members
        return files


def cycle_severity(cycle: CycleInfo) -> Severity:
    """2개 이하 파일 순환 → HIGH, 더 긴 순환 → CRITICAL"""
    return Severity.HIGH if cycle.length <= 2 else Severity.CRITICAL


def create_cycle_issue(cycle: CycleInfo, detected_at: Optional[float] = None) -> ComputationalIssue:
    """순환 → ARCHITECTURAL_INCONSISTENCY 이슈"""
    members = sorted(cycle.members)

    return ComputationalIssue(
        id=f"circular-dep:{'|'.join(members)}",
        type=ProblemType.ARCHITECTURAL_INCONSISTENCY,
        severity=cycle_severity(cycle),
        message=f"Circular dependency detected: {cycle}",
        context=ProblemContext(
            file=cycle.path[0],
            scope=("imports",),
            related_files=tuple(members)
        ),
        metadata=ProblemMetadata(
            detected_at=detected_at if detected_at is not None else time.time(),
            detected_by=SensorType.DEPENDENCY,
            confidence=0.9,
            tags=("circular-dependency", "architecture")
        ),
        suggestions=(
            "Extract the shared code into a separate module",
            "Invert one of the imports (dependency injection or lazy import)",
        )
    )


__all__ = [
    'FileGraph',
    'CycleDetector',
    'cycle_severity',
    'create_cycle_issue',
]
