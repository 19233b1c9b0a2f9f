"""
depsentry/extensions.py
=======================
언어별 의존성 분석기 플러그인 및 레지스트리

핵심 기능:
1. LanguageAnalyzer 인터페이스 (extract_edges + resolve_specifier)
2. 확장자 → 분석기 레지스트리 (추출 실패는 경계에서 흡수)
3. TypeScript/JavaScript 분석기 (기본)
4. Python 분석기
5. manifest 로더 (package.json, requirements.txt)

알려진 한계:
- 정규식 기반 추출이므로 문자열 리터럴이나 블록 주석 안의 import 구문도
  엣지로 잡힐 수 있음 (`//` 로 시작하는 줄만 건너뜀)
"""

import json
import logging
import posixpath
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Iterable

from .models import DependencyEdge, EdgeType, PackageInfo, ResolutionResult
from .resolver import (
    SpecifierResolver, is_relative_specifier, normalize_path
)

logger = logging.getLogger(__name__)


# =============================================================================
# Python 표준 라이브러리 / 별칭
# =============================================================================

# Python 3.8+ 표준 라이브러리 (주요 모듈)
PYTHON_STDLIB = {
    'abc', 'aifc', 'argparse', 'array', 'ast', 'asynchat', 'asyncio', 'asyncore',
    'atexit', 'audioop', 'base64', 'bdb', 'binascii', 'bisect',
    'builtins', 'bz2', 'calendar', 'cgi', 'cgitb', 'chunk', 'cmath', 'cmd',
    'code', 'codecs', 'codeop', 'collections', 'colorsys', 'compileall',
    'concurrent', 'configparser', 'contextlib', 'contextvars', 'copy', 'copyreg',
    'cProfile', 'crypt', 'csv', 'ctypes', 'curses', 'dataclasses', 'datetime',
    'dbm', 'decimal', 'difflib', 'dis', 'distutils', 'doctest', 'email',
    'encodings', 'enum', 'errno', 'faulthandler', 'fcntl', 'filecmp', 'fileinput',
    'fnmatch', 'fractions', 'ftplib', 'functools', 'gc', 'getopt',
    'getpass', 'gettext', 'glob', 'graphlib', 'grp', 'gzip', 'hashlib', 'heapq',
    'hmac', 'html', 'http', 'imaplib', 'imghdr', 'imp', 'importlib',
    'inspect', 'io', 'ipaddress', 'itertools', 'json', 'keyword', 'lib2to3',
    'linecache', 'locale', 'logging', 'lzma', 'mailbox', 'mailcap', 'marshal',
    'math', 'mimetypes', 'mmap', 'modulefinder', 'multiprocessing', 'netrc',
    'nntplib', 'numbers', 'operator', 'optparse', 'os', 'ossaudiodev',
    'pathlib', 'pdb', 'pickle', 'pickletools', 'pipes', 'pkgutil',
    'platform', 'plistlib', 'poplib', 'posix', 'posixpath', 'pprint', 'profile',
    'pstats', 'pty', 'pwd', 'py_compile', 'pyclbr', 'pydoc', 'queue', 'quopri',
    'random', 're', 'readline', 'reprlib', 'resource', 'rlcompleter', 'runpy',
    'sched', 'secrets', 'select', 'selectors', 'shelve', 'shlex', 'shutil',
    'signal', 'site', 'smtplib', 'sndhdr', 'socket', 'socketserver',
    'spwd', 'sqlite3', 'ssl', 'stat', 'statistics', 'string', 'stringprep',
    'struct', 'subprocess', 'sunau', 'symtable', 'sys', 'sysconfig',
    'syslog', 'tabnanny', 'tarfile', 'telnetlib', 'tempfile', 'termios', 'test',
    'textwrap', 'threading', 'time', 'timeit', 'tkinter', 'token', 'tokenize',
    'tomllib', 'trace', 'traceback', 'tracemalloc', 'tty', 'turtle', 'types',
    'typing', 'unicodedata', 'unittest', 'urllib', 'uu',
    'uuid', 'venv', 'warnings', 'wave', 'weakref', 'webbrowser', 'winreg',
    'winsound', 'wsgiref', 'xdrlib', 'xml', 'xmlrpc', 'zipapp', 'zipfile',
    'zipimport', 'zlib', 'zoneinfo',
    '_thread', '__future__', '_collections_abc',
}

# import 이름 → PyPI 패키지명
KNOWN_PYTHON_ALIASES: Dict[str, str] = {
    "pil": "pillow",
    "cv2": "opencv-python",
    "sklearn": "scikit-learn",
    "skimage": "scikit-image",
    "yaml": "pyyaml",
    "bs4": "beautifulsoup4",
    "dateutil": "python-dateutil",
    "dotenv": "python-dotenv",
    "jwt": "pyjwt",
    "magic": "python-magic",
    "serial": "pyserial",
    "usb": "pyusb",
    "gi": "pygobject",
    "wx": "wxpython",
    "googleapiclient": "google-api-python-client",
}

# 폐기된 Python 패키지 → 대안
DEPRECATED_PYTHON_PACKAGES: Dict[str, List[str]] = {
    'imp': ['importlib'],
    'nose': ['pytest'],
    'mock': ['unittest.mock'],
    'pycrypto': ['pycryptodome', 'cryptography'],
    'crypto': ['pycryptodome', 'cryptography'],
    'simplejson': ['json'],
    'pytz': ['zoneinfo'],
}


def normalize_package_name(name: str) -> str:
    """
    Python 패키지명 정규화 (PEP 503)

    pydantic-settings → pydantic_settings
    """
    return name.lower().replace('-', '_').replace('.', '_')


def get_file_extension(path: str) -> str:
    """소문자 확장자 (.ts, .py, ...)"""
    return posixpath.splitext(normalize_path(path))[1].lower()


# =============================================================================
# 분석기 인터페이스
# =============================================================================

class LanguageAnalyzer(ABC):
    """
    언어별 의존성 분석기 인터페이스

    새 언어는 이 클래스를 구현하여 AnalyzerRegistry에 등록.
    """

    language: str = ""
    extensions: Tuple[str, ...] = ()

    @abstractmethod
    def extract_edges(self, content: str, file_path: str) -> List[DependencyEdge]:
        """소스 내용에서 의존성 엣지 추출"""

    @abstractmethod
    def resolve_specifier(self, specifier: str, from_file: str) -> ResolutionResult:
        """지정자 해석"""

    def set_package_info(self, package_info: Optional[PackageInfo]):
        """manifest 스냅샷 갱신 (기본: 무시)"""

    def candidate_paths(self, resolved_path: str) -> List[str]:
        """해석된 상대 경로가 가리킬 수 있는 파일 경로 후보 (우선순위 순)"""
        return [resolved_path]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(language={self.language!r})"


# =============================================================================
# 분석기 레지스트리
# =============================================================================

class AnalyzerRegistry:
    """
    확장자 → 분석기 매핑

    - 등록은 단순 upsert (같은 확장자면 나중 등록이 우선)
    - 등록되지 않은 확장자는 엣지 0개 (에러 아님)
    - 분석기 예외는 여기서 로그 후 엣지 0개로 처리
    """

    def __init__(self, analyzers: Iterable[LanguageAnalyzer] = ()):
        self._by_extension: Dict[str, LanguageAnalyzer] = {}
        for analyzer in analyzers:
            self.register(analyzer)

    def register(self, analyzer: LanguageAnalyzer):
        """분석기 등록"""
        for ext in analyzer.extensions:
            self._by_extension[ext.lower()] = analyzer
        logger.info("Registered %s dependency analyzer for %s",
                    analyzer.language, ", ".join(analyzer.extensions))

    def unregister(self, language: str) -> int:
        """언어 태그로 분석기 제거, 제거된 확장자 수 반환"""
        removed = [ext for ext, a in self._by_extension.items() if a.language == language]
        for ext in removed:
            del self._by_extension[ext]
        return len(removed)

    def analyzer_for(self, file_path: str) -> Optional[LanguageAnalyzer]:
        return self._by_extension.get(get_file_extension(file_path))

    def analyzers(self) -> List[LanguageAnalyzer]:
        """등록된 분석기 목록 (중복 제거)"""
        unique: List[LanguageAnalyzer] = []
        for analyzer in self._by_extension.values():
            if not any(analyzer is a for a in unique):
                unique.append(analyzer)
        return unique

    @property
    def extensions(self) -> Set[str]:
        return set(self._by_extension)

    def extract_edges(self, content: str, file_path: str) -> List[DependencyEdge]:
        """파일에서 엣지 추출 (실패해도 예외를 던지지 않음)"""
        analyzer = self.analyzer_for(file_path)
        if analyzer is None:
            logger.debug("No analyzer registered for %s", file_path)
            return []

        try:
            return list(analyzer.extract_edges(content, file_path))
        except Exception:
            logger.warning("Dependency extraction failed for %s (%s analyzer)",
                           file_path, analyzer.language, exc_info=True)
            return []

    def resolve(self, specifier: str, from_file: str) -> Optional[ResolutionResult]:
        """from_file 담당 분석기로 지정자 해석 (분석기 없으면 None)"""
        analyzer = self.analyzer_for(from_file)
        if analyzer is None:
            return None
        return analyzer.resolve_specifier(specifier, from_file)

    def __contains__(self, file_path: str) -> bool:
        return self.analyzer_for(file_path) is not None


# =============================================================================
# Import 패턴
# =============================================================================

_QUOTED = r'''['"`]([^'"`]+)['"`]'''


class Patterns:
    """Import 패턴 정규식"""
    # JavaScript/TypeScript (우선순위 순)
    TYPE_IMPORT = re.compile(r'\bimport\s+type\s+[\w$*{}\s,]+?\s+from\s+' + _QUOTED)
    EXPORT_FROM = re.compile(
        r'\bexport\s+(?:type\s+)?(?:\*(?:\s+as\s+[\w$]+)?|\{[^}]*\})\s+from\s+' + _QUOTED)
    DYNAMIC = re.compile(r'\bimport\s*\(\s*(?:/\*[^*]*\*/\s*)?' + _QUOTED + r'\s*\)')
    STATIC = re.compile(r'\bimport\s+(?:[\w$*{}\s,]+?\s+from\s+)?' + _QUOTED)
    REQUIRE = re.compile(r'\brequire\s*\(\s*' + _QUOTED + r'\s*\)')

    # 여러 줄에 걸친 import/export { ... } from '...'
    MULTILINE_OPEN = re.compile(r'^\s*(import|export)\s+(type\s+)?(?:[\w$]+\s*,\s*)?\{[^}]*$')
    MULTILINE_CLOSE = re.compile(r'^[^{]*\}\s*from\s+' + _QUOTED)

    # Python
    PY_IMPORT = re.compile(r'^\s*import\s+([\w.]+(?:\s+as\s+\w+)?(?:\s*,\s*[\w.]+(?:\s+as\s+\w+)?)*)')
    PY_FROM_IMPORT = re.compile(r'^\s*from\s+(\.+[\w.]*|[\w.]+)\s+import\s+(.+)$')
    PY_DUNDER_IMPORT = re.compile(r'''__import__\s*\(\s*['"]([^'"]+)['"]''')
    PY_IMPORTLIB = re.compile(r'''import_module\s*\(\s*['"]([^'"]+)['"]''')


# =============================================================================
# TypeScript / JavaScript 분석기
# =============================================================================

class TypeScriptAnalyzer(LanguageAnalyzer):
    """
    TypeScript/JavaScript 분석기 (정규식 기반, 줄 단위)

    인식 형식:
    - import x from 'm' / import { a } from 'm' / import * as ns from 'm'
    - import 'm' (side-effect)
    - import type { T } from 'm'
    - import('m') (dynamic)
    - require('m')
    - export * from 'm' / export { a } from 'm'
    """

    language = "typescript"
    extensions = ('.ts', '.tsx', '.js', '.jsx', '.mjs', '.cjs')
    index_files = ('index',)

    def __init__(self, package_info: Optional[PackageInfo] = None):
        self.resolver = SpecifierResolver(package_info=package_info)

        self.patterns = [
            (Patterns.TYPE_IMPORT, EdgeType.TYPE_IMPORT),
            (Patterns.EXPORT_FROM, EdgeType.EXPORT),
            (Patterns.DYNAMIC, EdgeType.DYNAMIC_IMPORT),
            (Patterns.STATIC, EdgeType.IMPORT),
            (Patterns.REQUIRE, EdgeType.REQUIRE),
        ]

    def set_package_info(self, package_info: Optional[PackageInfo]):
        self.resolver.package_info = package_info

    def extract_edges(self, content: str, file_path: str) -> List[DependencyEdge]:
        edges: List[DependencyEdge] = []
        pending: Optional[Tuple[EdgeType, int, int]] = None

        for line_num, line in enumerate(content.split('\n'), 1):
            if line.lstrip().startswith('//'):
                continue

            if pending is not None:
                close = Patterns.MULTILINE_CLOSE.match(line)
                if close:
                    edge_type, start_line, start_col = pending
                    edges.append(self._edge(file_path, close.group(1), edge_type,
                                            start_line, start_col))
                    pending = None
                    continue
                if ';' in line:
                    pending = None

            edges.extend(self._extract_line(line, line_num, file_path))

            opened = Patterns.MULTILINE_OPEN.match(line)
            if opened:
                pending = (self._multiline_type(opened), line_num, opened.start(1) + 1)

        return edges

    def _extract_line(self, line: str, line_num: int, file_path: str) -> List[DependencyEdge]:
        edges: List[DependencyEdge] = []
        # 지정자 리터럴 위치당 엣지 1개 (우선순위가 높은 패턴이 차지)
        claimed: Set[int] = set()

        for pattern, edge_type in self.patterns:
            for match in pattern.finditer(line):
                if match.start(1) in claimed:
                    continue
                claimed.add(match.start(1))
                edges.append(self._edge(file_path, match.group(1), edge_type,
                                        line_num, match.start() + 1))

        edges.sort(key=lambda e: e.column)
        return edges

    @staticmethod
    def _multiline_type(match) -> EdgeType:
        if match.group(1) == 'export':
            return EdgeType.EXPORT
        return EdgeType.TYPE_IMPORT if match.group(2) else EdgeType.IMPORT

    @staticmethod
    def _edge(file_path: str, specifier: str, edge_type: EdgeType,
              line: int, column: int) -> DependencyEdge:
        return DependencyEdge(
            source=file_path,
            target=specifier,
            type=edge_type,
            line=line,
            column=column,
            is_external=not is_relative_specifier(specifier)
        )

    def resolve_specifier(self, specifier: str, from_file: str) -> ResolutionResult:
        return self.resolver.resolve(specifier, from_file)

    def candidate_paths(self, resolved_path: str) -> List[str]:
        """./b → b, b.ts, b.tsx, ..., b/index.ts, ... (./b.js → b.ts 도 허용)"""
        stem, ext = posixpath.splitext(resolved_path)
        candidates = [resolved_path]

        if ext.lower() in self.extensions:
            candidates.extend(stem + e for e in self.extensions if e != ext.lower())

        candidates.extend(resolved_path + e for e in self.extensions)
        for index in self.index_files:
            candidates.extend(f"{resolved_path}/{index}{e}" for e in self.extensions)
        return candidates


# =============================================================================
# Python 분석기
# =============================================================================

def _python_package_name(specifier: str) -> Optional[str]:
    if specifier.startswith('.'):
        return None
    return specifier.split('.')[0]


def _python_is_relative(specifier: str) -> bool:
    return specifier.startswith('.')


def _python_join_relative(from_file: str, specifier: str) -> str:
    """from ..pkg.mod → 상위 디렉토리의 pkg/mod"""
    dots = len(specifier) - len(specifier.lstrip('.'))
    rest = specifier[dots:]

    base = posixpath.dirname(normalize_path(from_file))
    for _ in range(dots - 1):
        base = posixpath.dirname(base)
    if rest:
        base = posixpath.join(base, *rest.split('.'))
    return normalize_path(base) or '.'


def _python_manifest_lookup(package: str, info: PackageInfo) -> bool:
    declared = {normalize_package_name(name) for name in info.all_dependencies()}
    candidates = {normalize_package_name(package)}
    alias = KNOWN_PYTHON_ALIASES.get(package.lower())
    if alias:
        candidates.add(normalize_package_name(alias))
    return bool(candidates & declared)


class PythonAnalyzer(LanguageAnalyzer):
    """
    Python 분석기 (정규식 기반)

    인식 형식:
    - import a.b, c as d
    - from x.y import z
    - from .mod import z / from . import a, b (상대)
    - __import__('m'), importlib.import_module('m') (dynamic)

    local_packages: 프로젝트 내부 최상위 패키지 (manifest 없이 해석됨)
    """

    language = "python"
    extensions = ('.py', '.pyi')

    def __init__(
        self,
        package_info: Optional[PackageInfo] = None,
        local_packages: Iterable[str] = ()
    ):
        self.local_packages: Set[str] = set(local_packages)
        self.resolver = SpecifierResolver(
            package_info=package_info,
            builtins=PYTHON_STDLIB,
            builtin_prefix="python:",
            deprecated=DEPRECATED_PYTHON_PACKAGES,
            is_relative=_python_is_relative,
            relative_join=_python_join_relative,
            package_name=_python_package_name,
            manifest_lookup=_python_manifest_lookup,
            manifest_hint="requirements.txt or pyproject.toml",
            vendor_dir="site-packages"
        )

    def set_package_info(self, package_info: Optional[PackageInfo]):
        self.resolver.package_info = package_info

    def add_local_package(self, name: str):
        self.local_packages.add(name)

    def extract_edges(self, content: str, file_path: str) -> List[DependencyEdge]:
        edges: List[DependencyEdge] = []

        for line_num, line in enumerate(content.split('\n'), 1):
            stripped = line.lstrip()
            if not stripped or stripped.startswith('#'):
                continue
            column = len(line) - len(stripped) + 1

            from_match = Patterns.PY_FROM_IMPORT.match(line)
            if from_match:
                module, names = from_match.group(1), from_match.group(2)
                for specifier in self._from_import_targets(module, names):
                    edges.append(self._edge(file_path, specifier, EdgeType.IMPORT,
                                            line_num, column))
                continue

            import_match = Patterns.PY_IMPORT.match(line)
            if import_match:
                for part in import_match.group(1).split(','):
                    module = part.strip().split()[0]
                    edges.append(self._edge(file_path, module, EdgeType.IMPORT,
                                            line_num, column))
                continue

            for pattern in (Patterns.PY_DUNDER_IMPORT, Patterns.PY_IMPORTLIB):
                for match in pattern.finditer(line):
                    edges.append(self._edge(file_path, match.group(1),
                                            EdgeType.DYNAMIC_IMPORT,
                                            line_num, match.start() + 1))

        return edges

    @staticmethod
    def _from_import_targets(module: str, names: str) -> List[str]:
        """from . import a, b 는 .a, .b 로 펼침"""
        if module.strip('.'):
            return [module]

        targets = []
        for name in names.split('#')[0].strip().strip('()\\').split(','):
            name = name.strip().split(' ')[0]
            if name and name != '*' and name.isidentifier():
                targets.append(module + name)
        return targets or [module]

    @staticmethod
    def _edge(file_path: str, specifier: str, edge_type: EdgeType,
              line: int, column: int) -> DependencyEdge:
        return DependencyEdge(
            source=file_path,
            target=specifier,
            type=edge_type,
            line=line,
            column=column,
            is_external=not _python_is_relative(specifier)
        )

    def resolve_specifier(self, specifier: str, from_file: str) -> ResolutionResult:
        top = _python_package_name(specifier.strip())
        if top and top in self.local_packages and top not in PYTHON_STDLIB:
            return ResolutionResult(
                specifier=specifier,
                resolved=True,
                resolved_path=specifier.replace('.', '/')
            )
        return self.resolver.resolve(specifier, from_file)

    def candidate_paths(self, resolved_path: str) -> List[str]:
        return [
            resolved_path + '.py',
            resolved_path + '.pyi',
            f"{resolved_path}/__init__.py",
            resolved_path,
        ]


def default_analyzers(package_info: Optional[PackageInfo] = None) -> List[LanguageAnalyzer]:
    """기본 분석기 목록"""
    return [TypeScriptAnalyzer(package_info), PythonAnalyzer(package_info)]


# =============================================================================
# Manifest 로더
# =============================================================================

_REQUIREMENT_NAME = re.compile(r'^([A-Za-z0-9][A-Za-z0-9._-]*)')


def parse_requirements_txt(path: Path) -> Dict[str, str]:
    """requirements.txt 파싱 → {패키지명: 버전 명시자}"""
    deps: Dict[str, str] = {}

    for line in Path(path).read_text(encoding='utf-8', errors='ignore').split('\n'):
        line = line.split('#')[0].strip()

        # 빈 줄, 옵션(-r, -e), URL 형식 무시
        if not line or line.startswith('-') or '://' in line:
            continue

        match = _REQUIREMENT_NAME.match(line)
        if not match:
            continue
        name = match.group(1)
        version_spec = line[len(name):].split(";")[0].strip()
        deps[name] = version_spec or "*"

    return deps


def load_package_info(project_path: Path) -> Optional[PackageInfo]:
    """
    프로젝트 manifest → PackageInfo

    package.json을 우선 읽고, requirements.txt / requirements-dev.txt가 있으면
    각각 dependencies / dev_dependencies에 병합. 아무 파일도 없으면 None.

    Raises:
        ValueError: package.json이 올바른 JSON이 아닐 때
    """
    project = Path(project_path)
    info: Optional[PackageInfo] = None

    pkg_json = project / "package.json"
    if pkg_json.exists():
        try:
            with open(pkg_json, encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid package.json at {pkg_json}: {e}") from e
        info = PackageInfo.from_dict(data)
        if not info.name:
            info.name = project.name

    for req_file, dev in (("requirements.txt", False), ("requirements-dev.txt", True)):
        req_path = project / req_file
        if not req_path.exists():
            continue
        if info is None:
            info = PackageInfo(name=project.name)
        target = info.dev_dependencies if dev else info.dependencies
        target.update(parse_requirements_txt(req_path))

    if info is not None:
        logger.info("Loaded package info for %s (%d dependencies)",
                    info.name, len(info.all_dependencies()))
    return info


def scan_local_python_packages(project_path: Path, skip_dirs: Iterable[str] = ()) -> Set[str]:
    """프로젝트 최상위의 Python 패키지/모듈 이름 스캔"""
    skip = set(skip_dirs)
    local: Set[str] = set()

    for child in Path(project_path).iterdir():
        if child.name in skip or child.name.startswith('.'):
            continue
        if child.is_dir() and (child / "__init__.py").exists():
            local.add(child.name)
        elif child.is_file() and child.suffix == '.py':
            local.add(child.stem)

        # src 레이아웃
        if child.is_dir() and child.name == 'src':
            local.update(scan_local_python_packages(child, skip))

    return local


__all__ = [
    'PYTHON_STDLIB',
    'KNOWN_PYTHON_ALIASES',
    'DEPRECATED_PYTHON_PACKAGES',
    'LanguageAnalyzer',
    'AnalyzerRegistry',
    'TypeScriptAnalyzer',
    'PythonAnalyzer',
    'Patterns',
    'default_analyzers',
    'normalize_package_name',
    'get_file_extension',
    'parse_requirements_txt',
    'load_package_info',
    'scan_local_python_packages',
]
