"""
depsentry - 소스 의존성 모니터링 센서
=====================================

기능:
1. 센서 생명주기: start/stop, 주기적 모니터링, 메트릭, 결과 링 버퍼
2. 실패 복구: 지수 백오프 기반 유한 재시도
3. 언어 분석기 플러그인: TypeScript/JavaScript, Python
4. 지정자 해석: 내장 모듈, 상대 경로, manifest 조회, 대체 패키지 제안
5. 구조 분석: 누락 의존성, 순환 의존성

사용법:
    # CLI
    python -m depsentry check ./my-project
    python -m depsentry imports ./src/App.tsx

    # Python API
    from depsentry import DependencySensor, PackageInfo

    sensor = DependencySensor(package_info=PackageInfo(name="app", dependencies={"react": "^18"}))
    sensor.add_file("src/a.ts", "import React from 'react';")
    result = sensor.monitor()
    for issue in result.issues:
        print(f"[{issue.severity.value}] {issue.message}")
"""

__version__ = "0.1.0"

# 모델
from .models import (
    # Enums
    SensorType, SensorStatus, ResultStatus, ProblemType, Severity, EdgeType,

    # Data classes
    ProblemContext, ProblemMetadata, ComputationalIssue, SensorResult,
    FailureRecord, SensorMetrics, PackageInfo, DependencyEdge, FileNode,
    ResolutionResult, CycleInfo,

    determine_status,
)

# 설정
from .config import (
    ConfigError, SensorConfig, DEFAULT_SENSOR_CONFIG,
    load_sensor_config, save_sensor_config, default_config_path,
)

# 센서
from .sensor import BaseSensor
from .dependency_sensor import DependencySensor
from .registry import SensorRegistry, RegistryConfig, RegistryHealth

# 해석/분석기
from .resolver import SpecifierResolver, NODE_BUILTINS, DEPRECATED_PACKAGES
from .extensions import (
    LanguageAnalyzer, AnalyzerRegistry, TypeScriptAnalyzer, PythonAnalyzer,
    default_analyzers, load_package_info, PYTHON_STDLIB,
)

# 그래프
from .graph import FileGraph, CycleDetector, create_cycle_issue

# 리포터
from .reporters import ConsoleReporter, JsonReporter

# CLI
from .cli import main as cli_main

__all__ = [
    # Version
    '__version__',

    # Enums
    'SensorType', 'SensorStatus', 'ResultStatus', 'ProblemType', 'Severity', 'EdgeType',

    # Models
    'ProblemContext', 'ProblemMetadata', 'ComputationalIssue', 'SensorResult',
    'FailureRecord', 'SensorMetrics', 'PackageInfo', 'DependencyEdge', 'FileNode',
    'ResolutionResult', 'CycleInfo', 'determine_status',

    # Config
    'ConfigError', 'SensorConfig', 'DEFAULT_SENSOR_CONFIG',
    'load_sensor_config', 'save_sensor_config', 'default_config_path',

    # Sensors
    'BaseSensor', 'DependencySensor',
    'SensorRegistry', 'RegistryConfig', 'RegistryHealth',

    # Resolution / analyzers
    'SpecifierResolver', 'NODE_BUILTINS', 'DEPRECATED_PACKAGES',
    'LanguageAnalyzer', 'AnalyzerRegistry', 'TypeScriptAnalyzer', 'PythonAnalyzer',
    'default_analyzers', 'load_package_info', 'PYTHON_STDLIB',

    # Graph
    'FileGraph', 'CycleDetector', 'create_cycle_issue',

    # Reporters
    'ConsoleReporter', 'JsonReporter',

    # CLI
    'cli_main',
]
