"""
depsentry/reporters.py
======================
센서 결과 리포터

지원 형식:
- Console: ANSI 색상 지원 터미널 출력
- JSON: 기계 판독용 JSON (SensorResult.to_dict())
"""

import json
import sys
import os
from typing import IO, Optional, Dict, List
from abc import ABC, abstractmethod

from .models import SensorResult, ComputationalIssue, Severity, ResultStatus


# =============================================================================
# ANSI 색상 코드
# =============================================================================

class Colors:
    """ANSI 색상 코드"""
    RED = "\033[91m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    GREEN = "\033[92m"
    GRAY = "\033[90m"
    WHITE = "\033[97m"
    CYAN = "\033[96m"
    MAGENTA = "\033[95m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


# 리포트 요약에 표시할 메트릭 (순서대로)
SUMMARY_METRICS = [
    ("total_files", "Files"),
    ("total_dependencies", "Dependencies"),
    ("external_dependencies", "External"),
    ("missing_dependencies", "Missing"),
    ("circular_dependencies", "Cycles"),
]


# =============================================================================
# 기본 리포터
# =============================================================================

class BaseReporter(ABC):
    """리포터 기본 클래스"""

    def __init__(self, output: Optional[IO[str]] = None):
        self.output = output or sys.stdout

    def write(self, text: str):
        self.output.write(text)

    def writeln(self, text: str = ""):
        self.output.write(text + "\n")

    @abstractmethod
    def report(self, result: SensorResult, project: Optional[str] = None):
        """센서 결과 출력"""


# =============================================================================
# 콘솔 리포터
# =============================================================================

class ConsoleReporter(BaseReporter):
    """
    콘솔 출력 리포터 (ANSI 색상 지원)

    리포트 구조:
    1. 헤더 - 프로젝트, 상태
    2. 요약 - 파일/엣지/누락/순환 수
    3. 이슈 목록 - 심각도 높은 순
    """

    SEVERITY_COLORS: Dict[Severity, str] = {
        Severity.BLOCKING: Colors.MAGENTA,
        Severity.CRITICAL: Colors.RED,
        Severity.HIGH: Colors.YELLOW,
        Severity.MEDIUM: Colors.BLUE,
        Severity.LOW: Colors.GRAY,
    }

    STATUS_COLORS: Dict[ResultStatus, str] = {
        ResultStatus.HEALTHY: Colors.GREEN,
        ResultStatus.WARNING: Colors.YELLOW,
        ResultStatus.CRITICAL: Colors.RED,
    }

    def __init__(
        self,
        output: Optional[IO[str]] = None,
        use_color: bool = True,
        verbose: bool = False
    ):
        super().__init__(output)
        self.verbose = verbose

        # 색상 사용 여부 결정
        self.use_color = use_color
        if os.getenv("NO_COLOR"):
            self.use_color = False
        if hasattr(self.output, 'isatty') and not self.output.isatty():
            self.use_color = False

    def color(self, text: str, color: str) -> str:
        if self.use_color:
            return f"{color}{text}{Colors.RESET}"
        return text

    def report(self, result: SensorResult, project: Optional[str] = None):
        self._report_header(result, project)
        self._report_summary(result)

        if result.issues:
            self._report_issues(list(result.issues))
        else:
            self.writeln(f"  {self.color('✓', Colors.GREEN)} No dependency issues found")
            self.writeln()

    def _report_header(self, result: SensorResult, project: Optional[str]):
        status_color = self.STATUS_COLORS.get(result.status, Colors.WHITE)

        self.writeln()
        self.writeln(self.color("=" * 60, Colors.CYAN))
        self.writeln(self.color("  depsentry Dependency Report", Colors.BOLD))
        self.writeln(self.color("=" * 60, Colors.CYAN))
        if project:
            self.writeln(f"  Project: {project}")
        self.writeln(f"  Status: {self.color(result.status.value, status_color)}")
        self.writeln()

    def _report_summary(self, result: SensorResult):
        self.writeln(self.color("--- Summary ---", Colors.BOLD))
        for key, label in SUMMARY_METRICS:
            if key in result.metrics:
                self.writeln(f"  {label}: {int(result.metrics[key])}")

        if self.verbose and "analysis_time" in result.metrics:
            self.writeln(f"  Analysis time: {result.metrics['analysis_time']:.1f}ms")
        self.writeln()

    def _report_issues(self, issues: List[ComputationalIssue]):
        sorted_issues = sorted(issues, key=lambda i: (-i.severity.rank, i.context.file, i.id))

        self.writeln(self.color(f"--- Issues ({len(issues)}) ---", Colors.BOLD))
        for issue in sorted_issues:
            self._report_issue(issue)
        self.writeln()

    def _report_issue(self, issue: ComputationalIssue):
        color = self.SEVERITY_COLORS.get(issue.severity, Colors.WHITE)
        label = issue.severity.value.upper()

        self.writeln()
        self.writeln(f"  [{self.color(label, color)}] {issue.message or issue.id}")
        self.writeln(f"    Type: {issue.type.value}")
        self.writeln(f"    Location: {_format_location(issue)}")

        if issue.context.related_files:
            self.writeln("    Files:")
            for path in issue.context.related_files[:5]:  # 최대 5개
                self.writeln(f"      • {path}")

        if issue.suggestions:
            self.writeln("    Suggestions:")
            for suggestion in issue.suggestions:
                self.writeln(f"      • {suggestion}")

        if self.verbose:
            self.writeln(f"    Tags: {', '.join(issue.metadata.tags)}")
            self.writeln(f"    Confidence: {issue.metadata.confidence:.2f}")


def _format_location(issue: ComputationalIssue) -> str:
    ctx = issue.context
    if ctx.line is None:
        return ctx.file
    if ctx.column is None:
        return f"{ctx.file}:{ctx.line}"
    return f"{ctx.file}:{ctx.line}:{ctx.column}"


# =============================================================================
# JSON 리포터
# =============================================================================

class JsonReporter(BaseReporter):
    """JSON 형식 리포터"""

    def __init__(self, output: Optional[IO[str]] = None, indent: int = 2):
        super().__init__(output)
        self.indent = indent

    def report(self, result: SensorResult, project: Optional[str] = None):
        data = result.to_dict()
        if project:
            data["project"] = project
        self.writeln(json.dumps(data, indent=self.indent, ensure_ascii=False))


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    'Colors',
    'BaseReporter',
    'ConsoleReporter',
    'JsonReporter',
]
