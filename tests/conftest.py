"""
Pytest Configuration and Fixtures

This module provides:
- Custom test output formatting
- Timestamped result file generation
- Shared fixtures for all tests
"""

import pytest
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ideagen.backends import Backends, set_backends
from ideagen.services import MockLLMService, MockMailer
from ideagen.storage import MockAirtableStorage
from ideagen.workflow import MemoryCheckpointStore

# Import test configuration
from tests.doubles import ScriptedLLM, StaticSource
from tests.test_config import CONFIG, TEST_CATEGORIES, make_items


# =============================================================================
# TEST RESULT FILE CONFIGURATION
# =============================================================================

RESULTS_DIR = PROJECT_ROOT / "test_results"


def get_result_filename() -> str:
    """Generate timestamped result filename."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"test_results_{timestamp}.txt"


def ensure_results_dir():
    """Create results directory if it doesn't exist."""
    RESULTS_DIR.mkdir(exist_ok=True)


# =============================================================================
# PYTEST HOOKS FOR CUSTOM OUTPUT
# =============================================================================

class ResultCollector:
    """Collects test results for formatted output."""

    def __init__(self):
        self.results: List[Dict[str, Any]] = []
        self.start_time: datetime = None
        self.end_time: datetime = None
        self.categories: Dict[str, List[Dict]] = {}

    def add_result(self, nodeid: str, outcome: str, duration: float, message: str = ""):
        category = self._extract_category(nodeid)
        result = {
            "nodeid": nodeid,
            "name": self._extract_test_name(nodeid),
            "category": category,
            "outcome": outcome,
            "duration": duration,
            "message": message,
        }
        self.results.append(result)
        self.categories.setdefault(category, []).append(result)

    def _extract_category(self, nodeid: str) -> str:
        # nodeid format: tests/test_pipeline.py::TestClass::test_method
        filename = nodeid.split("::")[0].split("/")[-1]
        return filename.replace("test_", "", 1).replace(".py", "")

    def _extract_test_name(self, nodeid: str) -> str:
        method_name = nodeid.split("::")[-1]
        return method_name.replace("test_", "", 1).replace("_", " ").title()

    def get_summary(self) -> Dict[str, int]:
        return {
            "total": len(self.results),
            "passed": sum(1 for r in self.results if r["outcome"] == "passed"),
            "failed": sum(1 for r in self.results if r["outcome"] == "failed"),
            "skipped": sum(1 for r in self.results if r["outcome"] == "skipped"),
        }


# Global collector instance
_collector = ResultCollector()


def pytest_configure(config):
    """Register custom markers and start the collector."""
    config.addinivalue_line("markers", "source_gateway: Cache and fallback tests")
    config.addinivalue_line("markers", "pipeline: Workflow orchestration tests")
    config.addinivalue_line("markers", "cli_behavior: CLI interface tests")
    config.addinivalue_line("markers", "config_validation: Environment validation tests")

    _collector.start_time = datetime.now()
    ensure_results_dir()


def pytest_runtest_logreport(report):
    """Called after each test phase."""
    if report.when == "call":
        _collector.add_result(
            nodeid=report.nodeid,
            outcome=report.outcome,
            duration=report.duration,
            message=str(report.longrepr) if report.longrepr else "",
        )


def pytest_sessionfinish(session, exitstatus):
    """Called after all tests complete."""
    _collector.end_time = datetime.now()
    save_report(generate_formatted_report(_collector))
    print_summary(_collector)


def generate_formatted_report(collector: ResultCollector) -> str:
    """Generate a formatted test report."""
    summary = collector.get_summary()
    lines = [
        "=" * 80,
        "IDEA GENERATOR - TEST RESULTS REPORT",
        "=" * 80,
        "",
        f"Run Date:     {collector.start_time.strftime('%Y-%m-%d %H:%M:%S')}",
    ]
    if collector.end_time:
        duration = (collector.end_time - collector.start_time).total_seconds()
        lines.append(f"Duration:     {duration:.2f} seconds")

    lines.extend([
        "",
        "-" * 40,
        "SUMMARY",
        "-" * 40,
        f"Total Tests:  {summary['total']}",
        f"Passed:       {summary['passed']} ✓",
        f"Failed:       {summary['failed']} ✗",
        f"Skipped:      {summary['skipped']} ○",
        f"Pass Rate:    {(summary['passed'] / max(summary['total'], 1) * 100):.1f}%",
        "",
    ])

    for category, results in sorted(collector.categories.items()):
        info = TEST_CATEGORIES.get(category, {
            "name": category.replace("_", " ").title(),
            "description": "Test category",
            "protects_against": [],
        })
        passed = sum(1 for r in results if r["outcome"] == "passed")
        failed = sum(1 for r in results if r["outcome"] == "failed")

        lines.extend(["", f"{info['name']} ({passed} passed, {failed} failed)", f"  {info['description']}"])
        for protection in info.get("protects_against", []):
            lines.append(f"    • {protection}")

        for result in results:
            status = "✓" if result["outcome"] == "passed" else "✗" if result["outcome"] == "failed" else "○"
            lines.append(f"    {status} {result['name']:<55} ({result['duration'] * 1000:.0f}ms)")
            if result["outcome"] == "failed" and result["message"]:
                for msg_line in result["message"].split("\n")[:3]:
                    if msg_line.strip():
                        lines.append(f"      └─ {msg_line[:70]}")

    lines.extend(["", "=" * 80, "END OF REPORT", "=" * 80])
    return "\n".join(lines)


def save_report(report: str):
    """Save report to timestamped file."""
    filepath = RESULTS_DIR / get_result_filename()
    with open(filepath, "w") as f:
        f.write(report)
    print(f"\n📄 Test results saved to: {filepath}")


def print_summary(collector: ResultCollector):
    summary = collector.get_summary()
    print("\n" + "=" * 60)
    print("TEST RUN COMPLETE")
    print("=" * 60)
    print(f"Total: {summary['total']} | Passed: {summary['passed']} | Failed: {summary['failed']} | Skipped: {summary['skipped']}")
    print("=" * 60)


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def fixed_now():
    return CONFIG["fixed_now"]


@pytest.fixture
def clock(fixed_now):
    """Clock returning the fixed test time."""
    return lambda: fixed_now


@pytest.fixture
def store():
    """Fresh in-memory store."""
    return MockAirtableStorage()


@pytest.fixture
def sample_items(fixed_now):
    """The three sample posts for topic "startups", fetched at fixed_now."""
    return make_items(fetched_at=fixed_now)


@pytest.fixture
def static_source(sample_items):
    return StaticSource(sample_items)


@pytest.fixture
def scripted_llm():
    return ScriptedLLM()


@pytest.fixture
def mailer():
    return MockMailer()


@pytest.fixture
def checkpoints():
    return MemoryCheckpointStore()


@pytest.fixture
def backends(store, static_source, scripted_llm, mailer):
    """Backends wired to test doubles."""
    return Backends(store=store, source=static_source, llm=scripted_llm, mailer=mailer)


@pytest.fixture
def mock_backends(store, mailer):
    """Backends using the shipped mock LLM."""
    return Backends(store=store, source=StaticSource(), llm=MockLLMService(), mailer=mailer, mock_mode=True)


@pytest.fixture
def installed_backends(backends):
    """Install `backends` as the process-wide set for the duration of a test."""
    set_backends(backends)
    yield backends
    set_backends(None)
