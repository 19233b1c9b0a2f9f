"""
depsentry/resolver.py
=====================
모듈 지정자(specifier) 해석 엔진

해석 순서:
1. 빈 지정자 → 실패 (error 설정)
2. 내장 모듈 (fs, node:fs, fs/promises, ...) → "node:<이름>"
3. 상대 경로 (./, ../) → from_file 디렉토리 기준 정규화 경로
   (대상 파일 존재 여부는 확인하지 않음)
4. 최상위 패키지명을 manifest (dependencies ∪ dev ∪ peer)에서 조회
   → 없으면 "Cannot resolve module" + 대체 패키지 제안
"""

import posixpath
from typing import Dict, List, Optional, Set, Callable

from .models import PackageInfo, ResolutionResult


# =============================================================================
# 내장 모듈 / 폐기된 패키지 목록
# =============================================================================

NODE_BUILTINS = {
    # Node.js core modules
    'assert', 'async_hooks', 'buffer', 'child_process', 'cluster', 'console',
    'constants', 'crypto', 'dgram', 'diagnostics_channel', 'dns', 'domain',
    'events', 'fs', 'http', 'http2', 'https', 'inspector', 'module', 'net',
    'os', 'path', 'perf_hooks', 'process', 'punycode', 'querystring', 'readline',
    'repl', 'stream', 'string_decoder', 'sys', 'timers', 'tls', 'trace_events',
    'tty', 'url', 'util', 'v8', 'vm', 'wasi', 'worker_threads', 'zlib',
}

# 폐기/이름 변경된 패키지 → 현대적 대안
DEPRECATED_PACKAGES: Dict[str, List[str]] = {
    'moment': ['dayjs', 'date-fns', 'luxon'],
    'request': ['axios', 'node-fetch', 'got'],
    'request-promise': ['axios', 'got'],
    'node-sass': ['sass'],
    'tslint': ['eslint', '@typescript-eslint/eslint-plugin'],
    'left-pad': ['String.prototype.padStart'],
    'babel-core': ['@babel/core'],
    'babel-eslint': ['@babel/eslint-parser'],
    '@babel/polyfill': ['core-js', 'regenerator-runtime'],
    'istanbul': ['nyc', 'c8'],
    'querystring-es3': ['URLSearchParams'],
    'uuid-v4': ['uuid'],
    'node-uuid': ['uuid'],
    'lodash.debounce': ['lodash-es', 'lodash'],
}

RELATIVE_PREFIXES = ('./', '../')


def is_relative_specifier(specifier: str) -> bool:
    """상대 경로 지정자인지 (./x, ../x, ., ..)"""
    return specifier in ('.', '..') or specifier.startswith(RELATIVE_PREFIXES)


def normalize_path(path: str) -> str:
    """그래프 노드 키용 경로 정규화 (POSIX 구분자)"""
    if not path:
        return path
    return posixpath.normpath(path.replace('\\', '/'))


def join_relative(from_file: str, specifier: str) -> str:
    """from_file의 디렉토리 기준으로 상대 지정자 결합"""
    base_dir = posixpath.dirname(normalize_path(from_file))
    return normalize_path(posixpath.join(base_dir, specifier))


def get_js_package(specifier: str) -> Optional[str]:
    """
    JS 지정자에서 최상위 패키지명 추출

    예: lodash/debounce → lodash, @babel/core/lib → @babel/core
    """
    if not specifier or is_relative_specifier(specifier) or specifier.startswith('/'):
        return None

    if specifier.startswith('@'):
        parts = specifier.split('/')
        return f"{parts[0]}/{parts[1]}" if len(parts) >= 2 and parts[1] else None

    return specifier.split('/')[0]


# =============================================================================
# 해석기
# =============================================================================

class SpecifierResolver:
    """
    지정자 해석기

    기본 설정은 Node.js 규칙. 다른 언어 분석기는 내장 목록,
    상대 경로 판정, 패키지명 추출 함수를 바꿔서 재사용함.
    """

    def __init__(
        self,
        package_info: Optional[PackageInfo] = None,
        builtins: Optional[Set[str]] = None,
        builtin_prefix: str = "node:",
        deprecated: Optional[Dict[str, List[str]]] = None,
        is_relative: Callable[[str], bool] = is_relative_specifier,
        relative_join: Callable[[str, str], str] = join_relative,
        package_name: Callable[[str], Optional[str]] = get_js_package,
        manifest_lookup: Optional[Callable[[str, PackageInfo], bool]] = None,
        manifest_hint: str = "package.json dependencies",
        vendor_dir: str = "node_modules"
    ):
        self.package_info = package_info
        self.builtins = NODE_BUILTINS if builtins is None else builtins
        self.builtin_prefix = builtin_prefix
        self.deprecated = DEPRECATED_PACKAGES if deprecated is None else deprecated
        self.is_relative = is_relative
        self.relative_join = relative_join
        self.package_name = package_name
        self.manifest_lookup = manifest_lookup or (lambda name, info: info.declares(name))
        self.manifest_hint = manifest_hint
        self.vendor_dir = vendor_dir

    def resolve(self, specifier: str, from_file: str) -> ResolutionResult:
        """지정자 해석 (실패는 예외가 아니라 resolved=False)"""
        specifier = (specifier or "").strip()

        if not specifier:
            return ResolutionResult(
                specifier=specifier,
                resolved=False,
                error="Empty module specifier"
            )

        builtin = self.builtin_name(specifier)
        if builtin:
            return ResolutionResult(
                specifier=specifier,
                resolved=True,
                resolved_path=f"{self.builtin_prefix}{builtin}"
            )

        if self.is_relative(specifier):
            return ResolutionResult(
                specifier=specifier,
                resolved=True,
                resolved_path=self.relative_join(from_file, specifier)
            )

        if specifier.startswith('/'):
            return ResolutionResult(
                specifier=specifier,
                resolved=True,
                resolved_path=normalize_path(specifier)
            )

        package = self.package_name(specifier) or specifier
        if self.package_info is not None and self.manifest_lookup(package, self.package_info):
            return ResolutionResult(
                specifier=specifier,
                resolved=True,
                resolved_path=f"{self.vendor_dir}/{package}"
            )

        return ResolutionResult(
            specifier=specifier,
            resolved=False,
            error=f"Cannot resolve module '{specifier}'",
            suggestions=self.suggest(package)
        )

    def builtin_name(self, specifier: str) -> Optional[str]:
        """내장 모듈이면 정규 이름 반환 (node:fs/promises → fs/promises)"""
        name = specifier
        if self.builtin_prefix and name.startswith(self.builtin_prefix):
            name = name[len(self.builtin_prefix):]
            # node: 접두사는 목록에 없어도 내장 모듈로 간주
            return name or None

        base = self.package_name(name) or name
        if base in self.builtins:
            return name
        return None

    def suggest(self, package: str) -> List[str]:
        """해석 실패 시 제안 목록 (대체 패키지 + manifest 추가 안내)"""
        suggestions = list(self.deprecated.get(package, []))
        suggestions.append(f'Add "{package}" to {self.manifest_hint}')
        return suggestions


__all__ = [
    'NODE_BUILTINS',
    'DEPRECATED_PACKAGES',
    'SpecifierResolver',
    'is_relative_specifier',
    'normalize_path',
    'join_relative',
    'get_js_package',
]
