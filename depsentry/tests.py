#!/usr/bin/env python3
"""
depsentry/tests.py
==================
통합 테스트

실행:
    python -m depsentry.tests
"""

import copy
import io
import json
import pickle
import sys
import tempfile
import threading
import unittest
from unittest import mock
from contextlib import redirect_stdout, redirect_stderr
from pathlib import Path

from .models import (
    SensorType, SensorStatus, ResultStatus, ProblemType, Severity, EdgeType,
    ProblemContext, ProblemMetadata, ComputationalIssue, SensorResult,
    PackageInfo, DependencyEdge, CycleInfo, determine_status
)
from .config import (
    ConfigError, SensorConfig, DEFAULT_SENSOR_CONFIG, default_config_path,
    load_sensor_config, save_sensor_config
)
from .sensor import BaseSensor, HEALTH_RECOVERY_RUN
from .resolver import SpecifierResolver, normalize_path, get_js_package
from .extensions import (
    LanguageAnalyzer, AnalyzerRegistry, TypeScriptAnalyzer, PythonAnalyzer,
    default_analyzers, load_package_info, parse_requirements_txt,
    scan_local_python_packages
)
from .graph import FileGraph, CycleDetector, cycle_severity, create_cycle_issue
from .dependency_sensor import DependencySensor
from .registry import SensorRegistry, RegistryConfig
from .reporters import ConsoleReporter, JsonReporter
from .cli import main


# 트리거가 테스트 중에 끼어들지 않도록 긴 주기 + 백오프 없음
FAST = SensorConfig(monitoring_interval_ms=60000, retry_base_delay_ms=0)


def make_issue(severity: Severity, issue_id: str = "x") -> ComputationalIssue:
    return ComputationalIssue(
        id=issue_id,
        type=ProblemType.UNKNOWN,
        severity=severity,
        context=ProblemContext(file="a.ts", line=1, column=1),
        metadata=ProblemMetadata(detected_at=0.0, detected_by=SensorType.SYNTAX)
    )


class FakeSensor(BaseSensor):
    """테스트용 센서 (fail 플래그로 실패 제어)"""

    def __init__(self, config=None, sensor_type=SensorType.SYNTAX):
        self.sleeps = []
        super().__init__(sensor_type, config or FAST, sleep=self.sleeps.append)
        self.fail = False
        self.issues = []
        self.recoveries = 0
        self.recover_after = None
        self.cycle_event = threading.Event()

    def perform_monitoring(self):
        self.cycle_event.set()
        if self.fail:
            raise RuntimeError("boom")
        return self.create_sensor_result(self.issues)

    def perform_recovery(self):
        self.recoveries += 1
        if self.recover_after is not None and self.recoveries >= self.recover_after:
            self.fail = False


class FailingAnalyzer(LanguageAnalyzer):
    language = "broken"
    extensions = ('.broken',)

    def extract_edges(self, content, file_path):
        raise ValueError("cannot parse")

    def resolve_specifier(self, specifier, from_file):
        return SpecifierResolver().resolve(specifier, from_file)


class LineAnalyzer(LanguageAnalyzer):
    """한 줄에 지정자 하나씩 적힌 텍스트 파일"""
    language = "lines"
    extensions = ('.txt',)

    def __init__(self):
        self.resolver = SpecifierResolver()

    def set_package_info(self, package_info):
        self.resolver.package_info = package_info

    def extract_edges(self, content, file_path):
        return [DependencyEdge(source=file_path, target=line.strip(), line=i)
                for i, line in enumerate(content.split('\n'), 1) if line.strip()]

    def resolve_specifier(self, specifier, from_file):
        return self.resolver.resolve(specifier, from_file)


# =============================================================================
# 모델
# =============================================================================

class TestStatusClassification(unittest.TestCase):
    """상태 분류 테스트"""

    def test_no_issues_is_healthy(self):
        self.assertEqual(determine_status([]), ResultStatus.HEALTHY)

    def test_low_and_medium_are_warning(self):
        self.assertEqual(determine_status([make_issue(Severity.LOW)]), ResultStatus.WARNING)
        self.assertEqual(
            determine_status([make_issue(Severity.LOW), make_issue(Severity.MEDIUM)]),
            ResultStatus.WARNING
        )

    def test_high_and_above_are_critical(self):
        for severity in (Severity.HIGH, Severity.CRITICAL, Severity.BLOCKING):
            issues = [make_issue(Severity.LOW), make_issue(severity)]
            self.assertEqual(determine_status(issues), ResultStatus.CRITICAL)

    def test_severity_rank_order(self):
        ranks = [s.rank for s in (Severity.LOW, Severity.MEDIUM, Severity.HIGH,
                                  Severity.CRITICAL, Severity.BLOCKING)]
        self.assertEqual(ranks, sorted(ranks))


class TestModels(unittest.TestCase):
    """데이터 클래스 테스트"""

    def test_confidence_clamped(self):
        high = ProblemMetadata(detected_at=0.0, detected_by=SensorType.DEPENDENCY, confidence=1.5)
        low = ProblemMetadata(detected_at=0.0, detected_by=SensorType.DEPENDENCY, confidence=-0.2)
        self.assertEqual(high.confidence, 1.0)
        self.assertEqual(low.confidence, 0.0)

    def test_sensor_result_is_read_only(self):
        result = SensorResult(timestamp=1.0, status=ResultStatus.HEALTHY,
                              issues=[make_issue(Severity.LOW)], metrics={"a": 1.0})
        self.assertIsInstance(result.issues, tuple)
        with self.assertRaises(TypeError):
            result.metrics["a"] = 2.0

    def test_sensor_result_serializable(self):
        result = SensorResult(timestamp=1.0, status=ResultStatus.WARNING,
                              issues=[make_issue(Severity.MEDIUM)], metrics={"a": 1.0})
        data = json.loads(json.dumps(result.to_dict()))
        self.assertEqual(data["status"], "WARNING")
        self.assertEqual(data["issues"][0]["severity"], "medium")
        self.assertEqual(data["issues"][0]["context"]["file"], "a.ts")

    def test_sensor_result_pickle_and_deepcopy(self):
        """결과는 프로세스 경계를 넘을 수 있어야 함"""
        result = SensorResult(timestamp=1.0, status=ResultStatus.WARNING,
                              issues=[make_issue(Severity.MEDIUM)], metrics={"a": 1.0})

        restored = pickle.loads(pickle.dumps(result))
        copied = copy.deepcopy(result)

        self.assertEqual(restored, result)
        self.assertEqual(copied, result)
        self.assertEqual(dict(copied.metrics), {"a": 1.0})
        with self.assertRaises(TypeError):
            restored.metrics["a"] = 2.0

    def test_package_info_from_package_json(self):
        info = PackageInfo.from_dict({
            "name": "app",
            "dependencies": {"react": "^18"},
            "devDependencies": {"jest": "^29"},
            "peerDependencies": {"react-dom": "^18"},
        })
        self.assertTrue(info.declares("react"))
        self.assertTrue(info.declares("jest"))
        self.assertTrue(info.declares("react-dom"))
        self.assertFalse(info.declares("vue"))

    def test_cycle_info_length(self):
        cycle = CycleInfo(path=["a", "b", "a"])
        self.assertEqual(cycle.length, 2)
        self.assertEqual(cycle.members, frozenset({"a", "b"}))


# =============================================================================
# 설정
# =============================================================================

class TestSensorConfig(unittest.TestCase):
    """센서 설정 테스트"""

    def test_defaults(self):
        config = SensorConfig()
        self.assertEqual(config.monitoring_interval_ms, 100)
        self.assertEqual(config.sensitivity, 0.8)
        self.assertEqual(config.max_retries, 3)
        self.assertEqual(config.buffer_size, 1000)

    def test_merged_returns_new_snapshot(self):
        config = SensorConfig()
        merged = config.merged(sensitivity=0.5)
        self.assertEqual(merged.sensitivity, 0.5)
        self.assertEqual(config.sensitivity, 0.8)

    def test_invalid_values(self):
        with self.assertRaises(ConfigError):
            SensorConfig(sensitivity=1.5)
        with self.assertRaises(ConfigError):
            SensorConfig(monitoring_interval_ms=0)
        with self.assertRaises(ConfigError):
            SensorConfig(buffer_size=0)

    def test_unknown_key(self):
        with self.assertRaises(ConfigError):
            SensorConfig().merged(interval=5)

    def test_wrong_value_types(self):
        for bad in ({"sensitivity": "high"}, {"monitoring_interval_ms": None},
                    {"max_retries": True}, {"buffer_size": 2.5}, {"enabled": "no"}):
            with self.subTest(bad=bad):
                with self.assertRaises(ConfigError):
                    SensorConfig().merged(**bad)

        self.assertEqual(SensorConfig(sensitivity=1).sensitivity, 1.0)

    def test_load_wrong_value_type(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yaml"
            for body in ("sensor:\n  sensitivity: high\n",
                         "sensor:\n  monitoring_interval_ms: null\n",
                         'sensor:\n  enabled: "no"\n'):
                path.write_text(body)
                with self.subTest(body=body):
                    with self.assertRaises(ConfigError):
                        load_sensor_config(path)

    def test_backoff(self):
        config = SensorConfig(retry_base_delay_ms=1000)
        self.assertEqual(config.backoff_seconds(0), 1.0)
        self.assertEqual(config.backoff_seconds(2), 4.0)

    def test_load_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = load_sensor_config(Path(tmpdir) / "nope.yaml")
            self.assertEqual(config, DEFAULT_SENSOR_CONFIG)

    def test_load_sensor_section(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yaml"
            path.write_text("sensor:\n  monitoring_interval_ms: 250\n  max_retries: 5\n")

            config = load_sensor_config(path)
            self.assertEqual(config.monitoring_interval_ms, 250)
            self.assertEqual(config.max_retries, 5)
            self.assertEqual(config.sensitivity, 0.8)

    def test_load_invalid_yaml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yaml"
            path.write_text("sensor: [unclosed\n")
            with self.assertRaises(ConfigError):
                load_sensor_config(path)

    def test_load_unknown_key(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yaml"
            path.write_text("sensor:\n  polling: 3\n")
            with self.assertRaises(ConfigError):
                load_sensor_config(path)

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = default_config_path(Path(tmpdir))
            config = SensorConfig(monitoring_interval_ms=500, sensitivity=0.6)
            save_sensor_config(config, path)

            self.assertTrue(path.exists())
            self.assertEqual(load_sensor_config(path), config)


# =============================================================================
# 센서 생명주기
# =============================================================================

class TestSensorLifecycle(unittest.TestCase):
    """센서 생명주기 테스트"""

    def setUp(self):
        self.sensor = FakeSensor()
        self.addCleanup(self.sensor.stop_monitoring)

    def test_initial_state(self):
        self.assertEqual(self.sensor.get_status(), SensorStatus.INACTIVE)
        self.assertTrue(self.sensor.is_healthy())
        self.assertEqual(self.sensor.get_metrics().total_monitoring_cycles, 0)

    def test_start_is_idempotent(self):
        self.sensor.start_monitoring()
        thread = self.sensor._trigger_thread
        self.sensor.start_monitoring()

        self.assertEqual(self.sensor.get_status(), SensorStatus.ACTIVE)
        self.assertIs(self.sensor._trigger_thread, thread)

    def test_stop_when_inactive_is_noop(self):
        self.sensor.stop_monitoring()
        self.assertEqual(self.sensor.get_status(), SensorStatus.INACTIVE)

    def test_start_then_stop(self):
        self.sensor.start_monitoring()
        self.sensor.stop_monitoring()
        self.assertEqual(self.sensor.get_status(), SensorStatus.INACTIVE)
        self.assertIsNone(self.sensor._trigger_thread)

    def test_disabled_sensor_does_not_start(self):
        sensor = FakeSensor(config=FAST.merged(enabled=False))
        sensor.start_monitoring()
        self.assertEqual(sensor.get_status(), SensorStatus.INACTIVE)

    def test_successful_cycle_updates_metrics(self):
        result = self.sensor.monitor()
        metrics = self.sensor.get_metrics()

        self.assertEqual(result.status, ResultStatus.HEALTHY)
        self.assertEqual(metrics.total_monitoring_cycles, 1)
        self.assertEqual(metrics.successful_cycles, 1)
        self.assertEqual(metrics.failed_cycles, 0)
        self.assertIsNotNone(metrics.last_successful_monitoring)
        self.assertGreaterEqual(metrics.average_response_time, 0.0)
        self.assertIn("response_time", result.metrics)
        self.assertIn("success_rate", result.metrics)

    def test_failed_cycle_raises_and_counts(self):
        self.sensor.fail = True
        with self.assertRaises(RuntimeError):
            self.sensor.monitor()

        metrics = self.sensor.get_metrics()
        self.assertEqual(metrics.successful_cycles, 0)
        self.assertEqual(metrics.failed_cycles, 1)
        self.assertEqual(metrics.total_monitoring_cycles, 1)
        self.assertEqual(metrics.last_failure.error, "boom")

    def test_recent_results_bounded_and_ordered(self):
        sensor = FakeSensor(config=FAST.merged(buffer_size=3))
        produced = [sensor.monitor() for _ in range(5)]

        recent = sensor.get_recent_results(10)
        self.assertEqual(len(recent), 3)
        self.assertEqual(recent, produced[-3:])
        timestamps = [r.timestamp for r in recent]
        self.assertEqual(timestamps, sorted(timestamps))

        self.assertEqual(sensor.get_recent_results(2), produced[-2:])
        self.assertEqual(sensor.get_recent_results(0), [])

    def test_reset_metrics(self):
        self.sensor.monitor()
        self.sensor.fail = True
        with self.assertRaises(RuntimeError):
            self.sensor.monitor()

        self.sensor.reset_metrics()
        metrics = self.sensor.get_metrics()
        self.assertEqual(metrics.total_monitoring_cycles, 0)
        self.assertEqual(metrics.successful_cycles, 0)
        self.assertEqual(metrics.failed_cycles, 0)
        self.assertEqual(metrics.average_response_time, 0.0)
        self.assertIsNone(metrics.last_failure)
        self.assertIsNone(metrics.last_successful_monitoring)

    def test_get_metrics_returns_copy(self):
        self.sensor.monitor()
        metrics = self.sensor.get_metrics()
        metrics.successful_cycles = 99
        self.assertEqual(self.sensor.get_metrics().successful_cycles, 1)

    def test_result_status_from_issues(self):
        self.sensor.issues = [make_issue(Severity.HIGH)]
        self.assertEqual(self.sensor.monitor().status, ResultStatus.CRITICAL)


class TestSensorHealth(unittest.TestCase):
    """건강 판정 테스트"""

    def test_failure_ratio_threshold(self):
        sensor = FakeSensor()  # sensitivity 0.8 → 허용 실패율 0.2
        for _ in range(4):
            sensor.monitor()
        sensor.fail = True
        with self.assertRaises(RuntimeError):
            sensor.monitor()
        self.assertTrue(sensor.is_healthy())  # 1/5

        with self.assertRaises(RuntimeError):
            sensor.monitor()
        self.assertFalse(sensor.is_healthy())  # 2/6

    def test_update_config_sensitivity(self):
        sensor = FakeSensor()
        sensor.monitor()
        sensor.fail = True
        with self.assertRaises(RuntimeError):
            sensor.monitor()
        self.assertFalse(sensor.is_healthy())

        sensor.update_config(sensitivity=0.4)
        self.assertTrue(sensor.is_healthy())


class TestFailureRecovery(unittest.TestCase):
    """실패 복구 테스트"""

    def test_recovery_returns_to_active_and_healthy(self):
        sensor = FakeSensor()
        self.addCleanup(sensor.stop_monitoring)
        sensor.fail = True
        with self.assertRaises(RuntimeError) as ctx:
            sensor.monitor()

        sensor.recover_after = 1
        self.assertTrue(sensor.handle_failure(ctx.exception))

        self.assertEqual(sensor.get_status(), SensorStatus.ACTIVE)
        self.assertTrue(sensor.is_healthy())
        self.assertEqual(sensor.get_metrics().failed_cycles, 1)

    def test_recovery_backoff_between_attempts(self):
        sensor = FakeSensor(config=FAST.merged(retry_base_delay_ms=50))
        self.addCleanup(sensor.stop_monitoring)
        sensor.fail = True
        sensor.recover_after = 2

        self.assertTrue(sensor.handle_failure(RuntimeError("boom")))
        self.assertEqual(sensor.recoveries, 2)
        self.assertEqual(sensor.sleeps, [0.05])

    def test_recovery_exhausted(self):
        sensor = FakeSensor(config=FAST.merged(retry_base_delay_ms=100, max_retries=3))
        sensor.fail = True

        self.assertFalse(sensor.handle_failure(RuntimeError("boom")))

        self.assertEqual(sensor.recoveries, 3)
        self.assertEqual(sensor.sleeps, [0.1, 0.2])
        self.assertEqual(sensor.get_status(), SensorStatus.INACTIVE)
        self.assertFalse(sensor.is_healthy())
        self.assertEqual(sensor.get_metrics().last_failure.retry_count, 3)

    def test_exhausted_sensor_stays_active_if_it_was(self):
        sensor = FakeSensor(config=FAST.merged(max_retries=1))
        self.addCleanup(sensor.stop_monitoring)
        sensor.start_monitoring()
        sensor.fail = True

        self.assertFalse(sensor.handle_failure(RuntimeError("boom")))
        self.assertEqual(sensor.get_status(), SensorStatus.ACTIVE)
        self.assertFalse(sensor.is_healthy())

    def test_healthy_after_successful_run(self):
        sensor = FakeSensor(config=FAST.merged(max_retries=1))
        sensor.fail = True
        sensor.handle_failure(RuntimeError("boom"))
        sensor.fail = False

        for _ in range(HEALTH_RECOVERY_RUN - 1):
            sensor.monitor()
            self.assertFalse(sensor.is_healthy())

        sensor.monitor()
        self.assertTrue(sensor.is_healthy())

    def test_zero_retries(self):
        sensor = FakeSensor(config=FAST.merged(max_retries=0))
        self.assertFalse(sensor.handle_failure(RuntimeError("boom")))
        self.assertEqual(sensor.recoveries, 0)


class TestScheduling(unittest.TestCase):
    """주기 트리거 테스트"""

    def test_trigger_runs_cycles(self):
        sensor = FakeSensor(config=SensorConfig(monitoring_interval_ms=10))
        self.addCleanup(sensor.stop_monitoring)
        sensor.start_monitoring()

        self.assertTrue(sensor.cycle_event.wait(2.0))

    def test_tick_skipped_while_cycle_running(self):
        sensor = FakeSensor()
        holding = threading.Event()
        release = threading.Event()

        def hold():
            with sensor._lock:
                holding.set()
                release.wait(5.0)

        holder = threading.Thread(target=hold)
        holder.start()
        self.assertTrue(holding.wait(5.0))

        sensor._run_scheduled_cycle()
        release.set()
        holder.join(5.0)

        self.assertEqual(sensor.get_metrics().total_monitoring_cycles, 0)

    def test_scheduled_failure_is_handled(self):
        sensor = FakeSensor()
        sensor.fail = True
        sensor.recover_after = 1

        sensor._run_scheduled_cycle()

        self.assertEqual(sensor.get_metrics().failed_cycles, 1)
        self.assertEqual(sensor.recoveries, 1)
        # 트리거 스레드에서의 복구는 재무장하지 않음
        self.assertEqual(sensor.get_status(), SensorStatus.INACTIVE)

    def test_update_interval_rearms_trigger(self):
        sensor = FakeSensor()
        self.addCleanup(sensor.stop_monitoring)
        sensor.start_monitoring()
        old_thread = sensor._trigger_thread

        sensor.update_config(monitoring_interval_ms=30000)

        self.assertEqual(sensor.get_status(), SensorStatus.ACTIVE)
        self.assertIsNot(sensor._trigger_thread, old_thread)
        self.assertEqual(sensor.get_config().monitoring_interval_ms, 30000)

    def test_update_buffer_keeps_newest(self):
        sensor = FakeSensor(config=FAST.merged(buffer_size=5))
        produced = [sensor.monitor() for _ in range(5)]

        sensor.update_config(buffer_size=2)
        self.assertEqual(sensor.get_recent_results(10), produced[-2:])

    def test_update_config_rejects_unknown_key(self):
        sensor = FakeSensor()
        with self.assertRaises(ConfigError):
            sensor.update_config(speed=3)


# =============================================================================
# 지정자 해석
# =============================================================================

class TestResolver(unittest.TestCase):
    """지정자 해석 테스트"""

    def setUp(self):
        self.resolver = SpecifierResolver(
            package_info=PackageInfo(name="app", dependencies={"react": "^18"},
                                     dev_dependencies={"@babel/core": "^7"})
        )

    def test_builtin(self):
        result = self.resolver.resolve("fs", "src/a.ts")
        self.assertTrue(result.resolved)
        self.assertEqual(result.resolved_path, "node:fs")

    def test_builtin_subpath_and_prefix(self):
        self.assertEqual(self.resolver.resolve("fs/promises", "a.ts").resolved_path,
                         "node:fs/promises")
        self.assertEqual(self.resolver.resolve("node:path", "a.ts").resolved_path,
                         "node:path")

    def test_relative(self):
        result = self.resolver.resolve("../lib/util", "src/app/main.ts")
        self.assertTrue(result.resolved)
        self.assertEqual(result.resolved_path, "src/lib/util")

    def test_declared_package(self):
        result = self.resolver.resolve("react", "a.ts")
        self.assertTrue(result.resolved)
        self.assertEqual(result.resolved_path, "node_modules/react")

    def test_scoped_subpath_package(self):
        result = self.resolver.resolve("@babel/core/lib/index", "a.ts")
        self.assertTrue(result.resolved)
        self.assertEqual(result.resolved_path, "node_modules/@babel/core")

    def test_deprecated_package_suggestions(self):
        result = self.resolver.resolve("moment", "a.ts")
        self.assertFalse(result.resolved)
        self.assertIn("Cannot resolve module", result.error)
        self.assertIn("dayjs", result.suggestions)

    def test_unknown_without_package_info(self):
        result = SpecifierResolver().resolve("react", "a.ts")
        self.assertFalse(result.resolved)
        self.assertTrue(result.suggestions[-1].startswith('Add "react"'))

    def test_empty_specifier(self):
        result = self.resolver.resolve("", "a.ts")
        self.assertFalse(result.resolved)
        self.assertIsNotNone(result.error)

    def test_helpers(self):
        self.assertEqual(get_js_package("lodash/debounce"), "lodash")
        self.assertEqual(get_js_package("@scope/pkg/sub"), "@scope/pkg")
        self.assertIsNone(get_js_package("./local"))
        self.assertEqual(normalize_path("src\\a\\..\\b.ts"), "src/b.ts")


# =============================================================================
# 분석기
# =============================================================================

class TestTypeScriptAnalyzer(unittest.TestCase):
    """TypeScript/JavaScript 추출 테스트"""

    def setUp(self):
        self.analyzer = TypeScriptAnalyzer()

    def extract(self, content):
        return self.analyzer.extract_edges(content, "src/a.ts")

    def test_import_forms(self):
        content = "\n".join([
            "import React from 'react';",
            "import { useState, useEffect } from 'react';",
            "import * as path from 'path';",
            "import './styles.css';",
            "import Default, { named } from \"lib\";",
        ])
        edges = self.extract(content)

        self.assertEqual([e.target for e in edges],
                         ['react', 'react', 'path', './styles.css', 'lib'])
        self.assertTrue(all(e.type == EdgeType.IMPORT for e in edges))

    def test_type_import(self):
        edges = self.extract("import type { Props } from './types';")
        self.assertEqual(len(edges), 1)
        self.assertEqual(edges[0].type, EdgeType.TYPE_IMPORT)
        self.assertFalse(edges[0].is_external)

    def test_dynamic_import(self):
        edges = self.extract("const m = await import(/* webpackChunkName: \"x\" */ './lazy');")
        self.assertEqual(len(edges), 1)
        self.assertEqual(edges[0].type, EdgeType.DYNAMIC_IMPORT)
        self.assertEqual(edges[0].target, './lazy')

    def test_require(self):
        edges = self.extract("const fs = require('fs');")
        self.assertEqual(edges[0].type, EdgeType.REQUIRE)
        self.assertTrue(edges[0].is_external)

    def test_reexports(self):
        edges = self.extract("export * from './utils';\nexport { a as b } from './a';")
        self.assertEqual([e.type for e in edges], [EdgeType.EXPORT, EdgeType.EXPORT])

    def test_line_and_column(self):
        edges = self.extract("const a = 1;\n  import x from 'y';")
        self.assertEqual((edges[0].line, edges[0].column), (2, 3))

    def test_multiple_on_one_line(self):
        edges = self.extract("import a from 'a'; const b = require('b');")
        self.assertEqual([(e.target, e.type) for e in edges],
                         [('a', EdgeType.IMPORT), ('b', EdgeType.REQUIRE)])

    def test_multiline_import(self):
        content = "import {\n  a,\n  b,\n} from './multi';\nimport c from 'c';"
        edges = self.extract(content)

        self.assertEqual([e.target for e in edges], ['./multi', 'c'])
        self.assertEqual(edges[0].line, 1)

    def test_line_comment_skipped(self):
        self.assertEqual(self.extract("// import x from 'y';"), [])

    def test_candidate_paths(self):
        candidates = self.analyzer.candidate_paths("src/b")
        self.assertIn("src/b.ts", candidates)
        self.assertIn("src/b/index.tsx", candidates)
        self.assertIn("src/b.ts", self.analyzer.candidate_paths("src/b.js"))


class TestPythonAnalyzer(unittest.TestCase):
    """Python 추출/해석 테스트"""

    def setUp(self):
        self.analyzer = PythonAnalyzer(
            package_info=PackageInfo(name="app", dependencies={"PyYAML": ">=6.0"}),
            local_packages={"myapp"}
        )

    def test_extraction(self):
        content = "\n".join([
            "import os",
            "import yaml, requests as rq",
            "from collections import OrderedDict",
            "from . import utils, helpers",
            "from .models import Thing",
            "from ..core.base import Base",
            "mod = importlib.import_module('plugins.extra')",
            "# import commented",
        ])
        edges = self.analyzer.extract_edges(content, "pkg/sub/mod.py")

        self.assertEqual([e.target for e in edges], [
            'os', 'yaml', 'requests', 'collections', '.utils', '.helpers',
            '.models', '..core.base', 'plugins.extra'
        ])
        self.assertEqual(edges[-1].type, EdgeType.DYNAMIC_IMPORT)
        self.assertFalse(edges[4].is_external)

    def test_stdlib(self):
        result = self.analyzer.resolve_specifier("os.path", "pkg/mod.py")
        self.assertTrue(result.resolved)
        self.assertEqual(result.resolved_path, "python:os.path")

    def test_relative_paths(self):
        self.assertEqual(
            self.analyzer.resolve_specifier(".models", "pkg/sub/mod.py").resolved_path,
            "pkg/sub/models")
        self.assertEqual(
            self.analyzer.resolve_specifier("..core.base", "pkg/sub/mod.py").resolved_path,
            "pkg/core/base")

    def test_import_name_alias(self):
        self.assertTrue(self.analyzer.resolve_specifier("yaml", "mod.py").resolved)

    def test_undeclared_package(self):
        result = self.analyzer.resolve_specifier("requests", "mod.py")
        self.assertFalse(result.resolved)
        self.assertIn("requirements.txt", result.suggestions[-1])

    def test_local_package(self):
        result = self.analyzer.resolve_specifier("myapp.core", "mod.py")
        self.assertTrue(result.resolved)
        self.assertEqual(result.resolved_path, "myapp/core")


class TestAnalyzerRegistry(unittest.TestCase):
    """분석기 레지스트리 테스트"""

    def test_lookup_by_extension(self):
        registry = AnalyzerRegistry(default_analyzers())
        self.assertEqual(registry.analyzer_for("src/App.TSX").language, "typescript")
        self.assertEqual(registry.analyzer_for("main.py").language, "python")
        self.assertIsNone(registry.analyzer_for("README.md"))

    def test_unknown_extension_gives_no_edges(self):
        registry = AnalyzerRegistry(default_analyzers())
        self.assertEqual(registry.extract_edges("import x from 'y'", "notes.md"), [])

    def test_extraction_failure_is_logged(self):
        registry = AnalyzerRegistry([FailingAnalyzer()])
        with self.assertLogs("depsentry.extensions", level="WARNING"):
            self.assertEqual(registry.extract_edges("x", "a.broken"), [])

    def test_register_is_upsert(self):
        registry = AnalyzerRegistry(default_analyzers())
        replacement = TypeScriptAnalyzer()
        registry.register(replacement)
        self.assertIs(registry.analyzer_for("a.ts"), replacement)

    def test_unregister(self):
        registry = AnalyzerRegistry(default_analyzers())
        self.assertEqual(registry.unregister("python"), 2)
        self.assertNotIn("a.py", registry)


class TestManifestLoading(unittest.TestCase):
    """manifest 로더 테스트"""

    def test_package_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            Path(tmpdir, "package.json").write_text(json.dumps({
                "name": "web",
                "dependencies": {"react": "^18"},
                "devDependencies": {"vitest": "^1"},
            }))
            info = load_package_info(Path(tmpdir))

            self.assertEqual(info.name, "web")
            self.assertTrue(info.declares("react"))
            self.assertTrue(info.declares("vitest"))

    def test_requirements_txt(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            Path(tmpdir, "requirements.txt").write_text(
                "requests>=2.0\n# comment\n-r other.txt\n"
                "PyYAML==6.0 ; python_version > '3'\nflask[async]>=2\n"
            )
            deps = parse_requirements_txt(Path(tmpdir, "requirements.txt"))
            self.assertEqual(set(deps), {"requests", "PyYAML", "flask"})

            info = load_package_info(Path(tmpdir))
            self.assertTrue(info.declares("requests"))

    def test_no_manifest(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            self.assertIsNone(load_package_info(Path(tmpdir)))

    def test_invalid_package_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            Path(tmpdir, "package.json").write_text("{not json")
            with self.assertRaises(ValueError):
                load_package_info(Path(tmpdir))

    def test_scan_local_python_packages(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "myapp").mkdir()
            (root / "myapp" / "__init__.py").write_text("")
            (root / "setup_helpers.py").write_text("")
            (root / "venv").mkdir()
            (root / "venv" / "__init__.py").write_text("")

            self.assertEqual(scan_local_python_packages(root, {"venv"}),
                             {"myapp", "setup_helpers"})


# =============================================================================
# 그래프 / 순환 탐지
# =============================================================================

class TestFileGraph(unittest.TestCase):
    """파일 그래프 테스트"""

    def setUp(self):
        self.graph = FileGraph(AnalyzerRegistry(default_analyzers()))

    def test_add_and_update_replaces_edges(self):
        self.graph.add_file("a.ts", "import x from 'x';\nimport y from 'y';")
        self.assertEqual(self.graph.edge_count, 2)

        self.graph.update_file("a.ts", "import z from 'z';")
        self.assertEqual([e.target for e in self.graph.get_node("a.ts").edges], ['z'])
        self.assertEqual(self.graph.file_count, 1)

    def test_remove(self):
        self.graph.add_file("a.ts", "")
        self.assertTrue(self.graph.remove_file("a.ts"))
        self.assertFalse(self.graph.remove_file("a.ts"))
        self.assertFalse(self.graph.has_file("a.ts"))

    def test_paths_normalized(self):
        self.graph.add_file("src\\a.ts", "")
        self.assertTrue(self.graph.has_file("src/a.ts"))
        self.assertTrue(self.graph.has_file("./src/a.ts"))

    def test_get_node_is_copy(self):
        self.graph.add_file("a.ts", "import x from 'x';")
        node = self.graph.get_node("a.ts")
        node.edges.clear()
        self.assertEqual(self.graph.edge_count, 1)

    def test_internal_target_probes_extensions(self):
        self.graph.add_file("src/a.ts", "import b from './b';\nimport c from './c';")
        self.graph.add_file("src/b.tsx", "")
        self.graph.add_file("src/c/index.ts", "")

        adjacency = self.graph.internal_adjacency()
        self.assertEqual(adjacency["src/a.ts"], ["src/b.tsx", "src/c/index.ts"])
        self.assertEqual(self.graph.get_dependents("src/b.tsx"), ["src/a.ts"])

    def test_external_edges_not_internal(self):
        self.graph.add_file("a.ts", "import react from 'react';")
        self.assertEqual(self.graph.internal_adjacency(), {"a.ts": []})


class TestCycleDetector(unittest.TestCase):
    """순환 탐지 테스트"""

    def test_three_file_cycle(self):
        cycles = CycleDetector({"a": ["b"], "b": ["c"], "c": ["a"]}).find_cycles()
        self.assertEqual(len(cycles), 1)
        self.assertEqual(cycles[0].members, frozenset({"a", "b", "c"}))
        self.assertEqual(cycles[0].path[0], cycles[0].path[-1])
        self.assertEqual(cycle_severity(cycles[0]), Severity.CRITICAL)

    def test_two_file_cycle_reported_once(self):
        cycles = CycleDetector({"a": ["b"], "b": ["a"]}).find_cycles()
        self.assertEqual(len(cycles), 1)
        self.assertEqual(cycle_severity(cycles[0]), Severity.HIGH)

    def test_self_import(self):
        cycles = CycleDetector({"a": ["a"]}).find_cycles()
        self.assertEqual(cycles[0].length, 1)
        self.assertEqual(cycle_severity(cycles[0]), Severity.HIGH)

    def test_no_cycle(self):
        detector = CycleDetector({"a": ["b"], "b": ["c"], "c": []})
        self.assertFalse(detector.has_cycle())
        self.assertEqual(detector.find_cycles(), [])

    def test_cycle_path_follows_sorted_order(self):
        cycles = CycleDetector({"c": ["a"], "b": ["c"], "a": ["b"]}).find_cycles()
        self.assertEqual(cycles[0].path, ["a", "b", "c", "a"])

    def test_chain_deeper_than_recursion_limit(self):
        count = sys.getrecursionlimit() + 1000
        chain = {f"m{i}": [f"m{i + 1}"] for i in range(count)}
        chain[f"m{count}"] = []

        detector = CycleDetector(chain)
        self.assertFalse(detector.has_cycle())
        self.assertEqual(detector.find_cycles(), [])

        chain[f"m{count}"] = ["m0"]
        detector = CycleDetector(chain)
        cycles = detector.find_cycles()
        self.assertTrue(detector.has_cycle())
        self.assertEqual(len(cycles), 1)
        self.assertEqual(cycles[0].length, count + 1)

    def test_cyclic_files_stable(self):
        adjacency = {"d": ["a"], "a": ["b"], "b": ["a", "c"], "c": []}
        reordered = {"c": [], "b": ["c", "a"], "a": ["b"], "d": ["a"]}
        self.assertEqual(CycleDetector(adjacency).cyclic_files(), {"a", "b"})
        self.assertEqual(CycleDetector(reordered).cyclic_files(), {"a", "b"})

    def test_cycle_issue(self):
        issue = create_cycle_issue(CycleInfo(path=["b.ts", "a.ts", "b.ts"]), detected_at=1.0)
        self.assertEqual(issue.type, ProblemType.ARCHITECTURAL_INCONSISTENCY)
        self.assertTrue(issue.has_tag("circular-dependency"))
        self.assertEqual(issue.id, "circular-dep:a.ts|b.ts")
        self.assertEqual(issue.context.related_files, ("a.ts", "b.ts"))


# =============================================================================
# 의존성 센서
# =============================================================================

class TestDependencySensor(unittest.TestCase):
    """의존성 센서 테스트"""

    def setUp(self):
        self.sensor = DependencySensor(
            config=FAST,
            package_info=PackageInfo(name="app", dependencies={"react": "^18"})
        )

    def missing(self, issues):
        return [i for i in issues if i.type == ProblemType.DEPENDENCY_MISSING]

    def cycles(self, issues):
        return [i for i in issues if i.type == ProblemType.ARCHITECTURAL_INCONSISTENCY]

    def test_missing_dependency(self):
        self.sensor.add_file("src/app.ts",
                             "import React from 'react';\nimport x from 'unknown-pkg';")
        missing = self.missing(self.sensor.get_dependency_issues())

        self.assertEqual(len(missing), 1)
        issue = missing[0]
        self.assertTrue(issue.has_tag("unknown-pkg"))
        self.assertTrue(issue.has_tag("missing-dependency"))
        self.assertEqual(issue.severity, Severity.HIGH)
        self.assertEqual(issue.metadata.confidence, 0.95)
        self.assertEqual((issue.context.file, issue.context.line), ("src/app.ts", 2))

    def test_missing_reported_once_per_file(self):
        self.sensor.add_file("a.ts", "import a from 'ghost';\nconst b = require('ghost');")
        self.sensor.add_file("b.ts", "import a from 'ghost';")
        self.assertEqual(len(self.missing(self.sensor.get_dependency_issues())), 2)

    def test_builtins_are_not_missing(self):
        self.sensor.add_file("a.ts", "import fs from 'fs';\nimport p from 'node:path';")
        self.assertEqual(self.sensor.get_dependency_issues(), [])

    def test_two_file_cycle(self):
        self.sensor.add_file("src/a.ts", "import { b } from './b';")
        self.sensor.add_file("src/b.ts", "import { a } from './a';")

        cycles = self.cycles(self.sensor.get_dependency_issues())
        self.assertEqual(len(cycles), 1)
        self.assertTrue(cycles[0].has_tag("circular-dependency"))
        self.assertEqual(set(cycles[0].context.related_files), {"src/a.ts", "src/b.ts"})

        self.sensor.add_file("src/c.ts", "import { a } from './a';")
        cycles = self.cycles(self.sensor.get_dependency_issues())
        self.assertEqual(len(cycles), 1)
        self.assertNotIn("src/c.ts", cycles[0].context.related_files)

    def test_removing_file_breaks_cycle(self):
        self.sensor.add_file("a.ts", "import b from './b';")
        self.sensor.add_file("b.ts", "import a from './a';")
        self.sensor.remove_file("b.ts")
        self.assertEqual(self.cycles(self.sensor.get_dependency_issues()), [])

    def test_python_cycle(self):
        self.sensor.add_file("pkg/a.py", "from . import b")
        self.sensor.add_file("pkg/b.py", "from .a import thing")
        cycles = self.cycles(self.sensor.get_dependency_issues())
        self.assertEqual(len(cycles), 1)

    def test_stats(self):
        self.sensor.add_file("a.ts", "import fs from 'fs';\nimport x from 'missing-pkg';\n"
                                     "import { b } from './b';")
        self.sensor.add_file("b.ts", "import { a } from './a';")

        self.assertEqual(self.sensor.get_dependency_stats(), {
            "total_files": 2,
            "total_dependencies": 4,
            "external_dependencies": 2,
            "missing_dependencies": 1,
            "circular_dependencies": 1,
        })

    def test_empty_sensor_is_healthy(self):
        sensor = DependencySensor(config=FAST)
        result = sensor.monitor()

        self.assertEqual(result.status, ResultStatus.HEALTHY)
        self.assertEqual(result.issues, ())
        self.assertEqual(result.metrics["total_files"], 0)
        self.assertEqual(result.metrics["total_dependencies"], 0)
        self.assertEqual(result.metrics["missing_dependencies"], 0)

    def test_monitor_result(self):
        self.sensor.add_file("a.ts", "import x from 'unknown-pkg';")
        result = self.sensor.monitor()

        self.assertEqual(result.status, ResultStatus.CRITICAL)
        self.assertEqual(result.metrics["missing_dependencies"], 1.0)
        self.assertIn("analysis_time", result.metrics)
        self.assertEqual(self.sensor.get_recent_results(1), [result])

    def test_monitor_result_crosses_process_boundary(self):
        self.sensor.add_file("a.ts", "import x from 'unknown-pkg';")
        result = self.sensor.monitor()

        self.assertEqual(pickle.loads(pickle.dumps(result)), result)
        self.assertEqual(copy.deepcopy(self.sensor.get_recent_results()), [result])

    def test_deep_import_chain(self):
        count = sys.getrecursionlimit() + 500
        for i in range(count):
            self.sensor.add_file(f"m{i}.ts", f"import {{ next }} from './m{i + 1}';")
        self.sensor.add_file(f"m{count}.ts", "export const next = 1;")

        result = self.sensor.monitor()
        self.assertEqual(result.status, ResultStatus.HEALTHY)
        self.assertEqual(result.metrics["total_files"], count + 1)
        self.assertEqual(result.metrics["circular_dependencies"], 0)

    def test_monitoring_analyzes_once(self):
        self.sensor.add_file("a.ts", "import x from 'unknown-pkg';\nimport { b } from './b';")
        self.sensor.add_file("b.ts", "import { a } from './a';")

        with mock.patch.object(CycleDetector, "find_cycles", autospec=True,
                               side_effect=CycleDetector.find_cycles) as find_cycles, \
                mock.patch.object(self.sensor.registry, "resolve",
                                  wraps=self.sensor.registry.resolve) as resolve:
            result = self.sensor.monitor()

        self.assertEqual(find_cycles.call_count, 1)
        self.assertEqual(resolve.call_count, 1)
        self.assertEqual(result.metrics["missing_dependencies"], 1.0)
        self.assertEqual(result.metrics["circular_dependencies"], 1.0)
        self.assertEqual(len(result.issues), 2)

    def test_set_package_info(self):
        sensor = DependencySensor(config=FAST)
        sensor.add_file("a.ts", "import React from 'react';")
        self.assertEqual(len(sensor.get_dependency_issues()), 1)

        sensor.set_package_info(PackageInfo(name="app", dependencies={"react": "^18"}))
        self.assertEqual(sensor.get_dependency_issues(), [])

    def test_unknown_extension_tracked_without_edges(self):
        node = self.sensor.add_file("README.md", "import x from 'y'")
        self.assertEqual(node.edges, [])
        self.assertTrue(self.sensor.has_file("README.md"))

    def test_recovery_reextracts_with_new_analyzer(self):
        self.sensor.add_file("deps.txt", "react\nleft-pad")
        self.assertEqual(self.sensor.get_file("deps.txt").edges, [])

        self.sensor.register_analyzer(LineAnalyzer())
        self.sensor.perform_recovery()

        self.assertEqual(len(self.sensor.get_file("deps.txt").edges), 2)
        missing = self.missing(self.sensor.get_dependency_issues())
        self.assertEqual([i.metadata.tags[1] for i in missing], ["left-pad"])

    def test_concurrent_mutation_and_monitoring(self):
        errors = []

        def writer(n):
            try:
                for i in range(20):
                    self.sensor.update_file(f"w{n}.ts", f"import x{i} from './w{(n + 1) % 3}';")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(3)]
        for t in threads:
            t.start()
        for _ in range(5):
            self.sensor.monitor()
        for t in threads:
            t.join(10.0)

        self.assertEqual(errors, [])
        self.assertEqual(self.sensor.get_metrics().failed_cycles, 0)


# =============================================================================
# 센서 레지스트리
# =============================================================================

class TestSensorRegistry(unittest.TestCase):
    """센서 레지스트리 테스트"""

    def setUp(self):
        self.registry = SensorRegistry(RegistryConfig(auto_start=False))
        self.addCleanup(self.registry.shutdown)

    def test_register_and_lookup(self):
        sensor = DependencySensor(config=FAST)
        self.registry.register_sensor(sensor)

        self.assertIs(self.registry.get_sensor(SensorType.DEPENDENCY), sensor)
        self.assertIn(SensorType.DEPENDENCY, self.registry)
        self.assertEqual(sensor.get_status(), SensorStatus.INACTIVE)

    def test_duplicate_type_rejected(self):
        self.registry.register_sensor(FakeSensor())
        with self.assertRaises(ValueError):
            self.registry.register_sensor(FakeSensor())

    def test_capacity(self):
        registry = SensorRegistry(RegistryConfig(auto_start=False, max_sensors=1))
        registry.register_sensor(FakeSensor())
        with self.assertRaises(ValueError):
            registry.register_sensor(FakeSensor(sensor_type=SensorType.NETWORK))

    def test_auto_start_and_unregister(self):
        registry = SensorRegistry()
        sensor = FakeSensor()
        registry.register_sensor(sensor)
        self.assertEqual(sensor.get_status(), SensorStatus.ACTIVE)

        self.assertTrue(registry.unregister_sensor(SensorType.SYNTAX))
        self.assertEqual(sensor.get_status(), SensorStatus.INACTIVE)
        self.assertFalse(registry.unregister_sensor(SensorType.SYNTAX))

    def test_monitor_all_reports_failures(self):
        failing = FakeSensor(sensor_type=SensorType.NETWORK)
        failing.fail = True
        self.registry.register_sensor(failing)
        self.registry.register_sensor(DependencySensor(config=FAST))

        results = self.registry.monitor_all()

        self.assertEqual(results[SensorType.NETWORK].status, ResultStatus.CRITICAL)
        self.assertEqual(results[SensorType.NETWORK].metrics["error"], 1.0)
        self.assertEqual(results[SensorType.DEPENDENCY].status, ResultStatus.HEALTHY)

    def test_health(self):
        self.registry.register_sensor(FakeSensor())
        self.registry.start_all()

        health = self.registry.get_health()
        self.assertEqual(health.total_sensors, 1)
        self.assertEqual(health.active_sensors, 1)
        self.assertTrue(health.all_healthy)

        self.registry.stop_all()
        self.assertEqual(self.registry.get_health().active_sensors, 0)


# =============================================================================
# 리포터 / CLI
# =============================================================================

class TestReporters(unittest.TestCase):
    """리포터 테스트"""

    def setUp(self):
        sensor = DependencySensor(config=FAST)
        sensor.add_file("a.ts", "import m from 'moment';")
        self.result = sensor.monitor()

    def test_console(self):
        out = io.StringIO()
        ConsoleReporter(output=out).report(self.result, project="demo")
        text = out.getvalue()

        self.assertIn("Status: CRITICAL", text)
        self.assertIn("[HIGH] Cannot resolve module 'moment'", text)
        self.assertIn("Location: a.ts:1:1", text)
        self.assertIn("dayjs", text)
        self.assertNotIn("\033[", text)  # StringIO는 tty가 아님

    def test_json(self):
        out = io.StringIO()
        JsonReporter(output=out).report(self.result, project="demo")
        data = json.loads(out.getvalue())

        self.assertEqual(data["status"], "CRITICAL")
        self.assertEqual(data["project"], "demo")
        self.assertEqual(data["issues"][0]["type"], "DEPENDENCY_MISSING")


class TestCli(unittest.TestCase):
    """CLI 통합 테스트"""

    def run_cli(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def make_project(self, root: Path, files):
        (root / "package.json").write_text(json.dumps({
            "name": "demo", "dependencies": {"react": "^18"}
        }))
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

    def test_check_healthy_project(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            self.make_project(Path(tmpdir), {
                "src/index.ts": "import React from 'react';\nimport { util } from './util';",
                "src/util.ts": "export const util = 1;",
                "node_modules/pkg/index.js": "require('not-declared');",
            })
            code, output = self.run_cli("check", tmpdir, "--format", "json")

            self.assertEqual(code, 0)
            data = json.loads(output)
            self.assertEqual(data["status"], "HEALTHY")
            self.assertEqual(data["metrics"]["total_files"], 2)

    def test_check_cycle_fails(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            self.make_project(Path(tmpdir), {
                "src/a.ts": "import { b } from './b';",
                "src/b.ts": "import { a } from './a';",
            })
            code, output = self.run_cli("check", tmpdir, "--format", "json")

            self.assertEqual(code, 1)
            types = [i["type"] for i in json.loads(output)["issues"]]
            self.assertIn("ARCHITECTURAL_INCONSISTENCY", types)

    def test_check_uses_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            self.make_project(root, {"a.ts": ""})
            code, _ = self.run_cli("init", tmpdir)
            self.assertEqual(code, 0)
            self.assertEqual(load_sensor_config(default_config_path(root)), DEFAULT_SENSOR_CONFIG)

            default_config_path(root).write_text("sensor:\n  sensitivity: 7\n")
            with redirect_stdout(io.StringIO()):
                self.assertEqual(main(["check", tmpdir]), 2)

    def test_check_wrong_config_type(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            self.make_project(root, {"a.ts": ""})
            path = default_config_path(root)
            path.parent.mkdir(parents=True)
            path.write_text("sensor:\n  sensitivity: high\n")

            err = io.StringIO()
            with redirect_stderr(err):
                code, _ = self.run_cli("check", tmpdir)

            self.assertEqual(code, 2)
            self.assertIn("sensitivity", err.getvalue())

    def test_check_fails_cleanly_when_retry_fails(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            self.make_project(Path(tmpdir), {"a.ts": ""})

            # 첫 사이클 실패, 복구 검증 성공, 재실행 실패
            outcomes = [RuntimeError("flaky"), None, RuntimeError("flaky again")]
            err = io.StringIO()
            with mock.patch.object(DependencySensor, "perform_monitoring", side_effect=outcomes), \
                    redirect_stderr(err):
                code, _ = self.run_cli("check", tmpdir)

            self.assertEqual(code, 2)
            self.assertIn("flaky again", err.getvalue())

    def test_imports_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir, "App.tsx")
            path.write_text("import React from 'react';\nconst x = require('./x');")
            code, output = self.run_cli("imports", str(path), "--json")

            self.assertEqual(code, 0)
            data = json.loads(output)
            self.assertEqual([d["specifier"] for d in data], ["react", "./x"])
            self.assertEqual(data[1]["type"], "REQUIRE")


def run_tests():
    """테스트 실행"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestStatusClassification))
    suite.addTests(loader.loadTestsFromTestCase(TestModels))
    suite.addTests(loader.loadTestsFromTestCase(TestSensorConfig))
    suite.addTests(loader.loadTestsFromTestCase(TestSensorLifecycle))
    suite.addTests(loader.loadTestsFromTestCase(TestSensorHealth))
    suite.addTests(loader.loadTestsFromTestCase(TestFailureRecovery))
    suite.addTests(loader.loadTestsFromTestCase(TestScheduling))
    suite.addTests(loader.loadTestsFromTestCase(TestResolver))
    suite.addTests(loader.loadTestsFromTestCase(TestTypeScriptAnalyzer))
    suite.addTests(loader.loadTestsFromTestCase(TestPythonAnalyzer))
    suite.addTests(loader.loadTestsFromTestCase(TestAnalyzerRegistry))
    suite.addTests(loader.loadTestsFromTestCase(TestManifestLoading))
    suite.addTests(loader.loadTestsFromTestCase(TestFileGraph))
    suite.addTests(loader.loadTestsFromTestCase(TestCycleDetector))
    suite.addTests(loader.loadTestsFromTestCase(TestDependencySensor))
    suite.addTests(loader.loadTestsFromTestCase(TestSensorRegistry))
    suite.addTests(loader.loadTestsFromTestCase(TestReporters))
    suite.addTests(loader.loadTestsFromTestCase(TestCli))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    exit(run_tests())
