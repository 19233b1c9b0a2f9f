#!/usr/bin/env python3
"""
depsentry/cli.py
================
depsentry CLI

Usage:
    python -m depsentry check ./my-project
    python -m depsentry check . --format json --verbose
    python -m depsentry imports ./src/App.tsx
    python -m depsentry init .
"""

import argparse
import json
import logging
import re
import sys
from collections import defaultdict
from pathlib import Path
from typing import Iterator, Iterable, Optional

from . import __version__
from .config import (
    ConfigError, DEFAULT_SENSOR_CONFIG, default_config_path,
    load_sensor_config, save_sensor_config
)
from .dependency_sensor import DependencySensor
from .extensions import (
    AnalyzerRegistry, PythonAnalyzer, default_analyzers,
    load_package_info, scan_local_python_packages
)
from .models import ResultStatus
from .reporters import ConsoleReporter, JsonReporter

logger = logging.getLogger(__name__)

# 스캔하지 않는 디렉토리
SKIP_DIRS = {
    'node_modules', '__pycache__', '.git', 'dist', 'build',
    '.history', '.vscode', '.idea', '.cache', '.next', '.nuxt',
    'coverage', '.tox', '.eggs', 'venv', '.venv', 'env', '.env',
    'site-packages', '.depsentry',
}

# 스캔하지 않는 파일
SKIP_FILE_PATTERNS = [
    re.compile(r'.*\.min\.js$'),
    re.compile(r'.*\.bundle\.js$'),
    re.compile(r'.*\.d\.ts$'),  # TypeScript 선언 파일
]


def iter_source_files(project: Path, extensions: Iterable[str]) -> Iterator[Path]:
    """분석 대상 소스 파일 (SKIP_DIRS 하위 제외, 정렬 순서)"""
    exts = {e.lower() for e in extensions}

    for path in sorted(project.rglob('*')):
        if not path.is_file() or path.suffix.lower() not in exts:
            continue
        rel_parts = path.relative_to(project).parts
        if any(part in SKIP_DIRS or part.endswith('.egg-info') for part in rel_parts[:-1]):
            continue
        if any(p.match(path.name) for p in SKIP_FILE_PATTERNS):
            continue
        yield path


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def print_header(text: str):
    print(f"\n{'=' * 60}")
    print(f"  {text}")
    print('=' * 60)


# =============================================================================
# Commands
# =============================================================================

def build_sensor(project: Path, config_path: Optional[Path] = None) -> DependencySensor:
    """
    프로젝트 디렉토리 → 파일이 모두 등록된 DependencySensor

    Raises:
        ConfigError: 센서 설정 파일 오류
        ValueError: package.json 파싱 실패
    """
    config = load_sensor_config(config_path or default_config_path(project))
    sensor = DependencySensor(config=config, package_info=load_package_info(project))

    python_analyzer = sensor.registry.analyzer_for("__init__.py")
    if isinstance(python_analyzer, PythonAnalyzer):
        for name in scan_local_python_packages(project, SKIP_DIRS):
            python_analyzer.add_local_package(name)

    count = 0
    for path in iter_source_files(project, sensor.registry.extensions):
        content = path.read_text(encoding='utf-8', errors='ignore')
        sensor.add_file(path.relative_to(project).as_posix(), content)
        count += 1

    logger.info("Scanned %d source files under %s", count, project)
    return sensor


def cmd_check(args):
    """프로젝트 의존성 검사 (모니터링 사이클 1회)"""
    project = Path(args.path).resolve()

    if not project.is_dir():
        print(f"Error: Directory not found: {project}", file=sys.stderr)
        return 2

    try:
        sensor = build_sensor(project, Path(args.config) if args.config else None)
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        result = sensor.monitor()
    except Exception as e:
        if not sensor.handle_failure(e, rearm=False):
            print(f"Error: dependency check failed: {e}", file=sys.stderr)
            return 2
        try:
            result = sensor.monitor()
        except Exception as retry_error:
            print(f"Error: dependency check failed after recovery: {retry_error}", file=sys.stderr)
            return 2

    if args.format == "json":
        reporter = JsonReporter()
    else:
        reporter = ConsoleReporter(
            use_color=not args.no_color,
            verbose=args.verbose
        )

    reporter.report(result, project=str(project))

    # 종료 코드: CRITICAL 상태면 1
    return 1 if result.status is ResultStatus.CRITICAL else 0


def cmd_imports(args):
    """파일에서 의존성 엣지 추출"""
    path = Path(args.file).resolve()

    if not path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1

    registry = AnalyzerRegistry(default_analyzers())
    if path.name not in registry:
        print(f"Error: No analyzer for {path.suffix or path.name}", file=sys.stderr)
        return 1

    edges = registry.extract_edges(path.read_text(encoding='utf-8', errors='ignore'), path.name)

    if args.json:
        data = [{"specifier": e.target, "type": e.type.value, "line": e.line,
                 "column": e.column, "external": e.is_external} for e in edges]
        print(json.dumps(data, indent=2))
        return 0

    print_header(f"Imports: {path.name}")
    print(f"Total: {len(edges)}")

    # 타입별 그룹화
    by_type = defaultdict(list)
    for edge in edges:
        by_type[edge.type.value].append(edge)

    for edge_type, group in sorted(by_type.items()):
        print(f"\n[{edge_type}] ({len(group)})")
        for edge in group:
            extra = "" if edge.is_external else " (relative)"
            print(f"  • {edge.target}{extra}  line {edge.line}:{edge.column}")

    print()
    return 0


def cmd_init(args):
    """기본 센서 설정 파일 생성"""
    project = Path(args.path).resolve()
    config_path = default_config_path(project)

    if config_path.exists() and not args.force:
        print(f"Config already exists: {config_path} (use --force to overwrite)")
        return 1

    save_sensor_config(DEFAULT_SENSOR_CONFIG, config_path)
    print(f"Wrote {config_path}")
    return 0


# =============================================================================
# Main
# =============================================================================

def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='depsentry',
        description='소스 의존성 모니터링 센서'
    )
    parser.add_argument('--version', action='version', version=__version__)

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # check
    p_check = subparsers.add_parser('check', help='프로젝트 의존성 검사')
    p_check.add_argument('path', help='프로젝트 경로')
    p_check.add_argument('--format', '-f', choices=['console', 'json'],
                         default='console', help='출력 형식')
    p_check.add_argument('--config', '-c', help='센서 설정 파일 (기본: .depsentry/config.yaml)')
    p_check.add_argument('--verbose', action='store_true', help='상세 출력')
    p_check.add_argument('--no-color', action='store_true', help='색상 비활성화')

    # imports
    p_imports = subparsers.add_parser('imports', help='파일 import 추출')
    p_imports.add_argument('file', help='파일 경로')
    p_imports.add_argument('--json', action='store_true', help='JSON 출력')
    p_imports.add_argument('--verbose', action='store_true')

    # init
    p_init = subparsers.add_parser('init', help='기본 설정 파일 생성')
    p_init.add_argument('path', nargs='?', default='.', help='프로젝트 경로')
    p_init.add_argument('--force', action='store_true', help='기존 파일 덮어쓰기')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(getattr(args, 'verbose', False))

    commands = {
        'check': cmd_check,
        'imports': cmd_imports,
        'init': cmd_init,
    }

    return commands[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
