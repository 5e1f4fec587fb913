"""
Shared test fixtures and utilities for searchbench tests.

This module provides sample projects, configurations that pin a specific
backend, and a telemetry collector, so individual tests stay short and
deterministic.
"""

import shutil
from pathlib import Path

import pytest

from searchbench import GrepSearch, SearchAnalyticsCollector, SearchConfig

# Test data constants
SAMPLE_README = """# Sample Project

TODO: write the installation guide
Some text without the marker.
"""

SAMPLE_PYTHON_CODE = """def main():
    # TODO refactor this function
    value = compute()
    return value


def compute():
    return 42
"""

SAMPLE_JAVASCRIPT_CODE = """function hello() {
  console.log("Hello World");
}
// todo: add tests
"""

SAMPLE_NOTES = "nothing interesting here\n"

HAS_GREP = shutil.which("grep") is not None
HAS_GIT = shutil.which("git") is not None


def write_file(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def temp_project_dir(tmp_path):
    """Create a temporary directory for test projects."""
    return tmp_path


@pytest.fixture
def sample_project(temp_project_dir):
    """A small project with matches in several file types and an ignored directory."""
    project_dir = temp_project_dir / "sample_project"
    write_file(project_dir / "README.md", SAMPLE_README)
    write_file(project_dir / "src" / "app.py", SAMPLE_PYTHON_CODE)
    write_file(project_dir / "src" / "web" / "hello.js", SAMPLE_JAVASCRIPT_CODE)
    write_file(project_dir / "notes.txt", SAMPLE_NOTES)
    write_file(project_dir / "node_modules" / "dep" / "index.js", "// TODO vendored\n")
    return project_dir


@pytest.fixture
def second_project(temp_project_dir):
    """Another workspace root with one match."""
    project_dir = temp_project_dir / "docs_root"
    write_file(project_dir / "guide.md", "Intro\nTODO: document the CLI\n")
    return project_dir


def fallback_only_config(target_dir: Path, **kwargs) -> SearchConfig:
    """Configuration that forces the in-process backend."""
    defaults = {
        "target_dir": str(target_dir),
        "enable_git_grep": False,
        "enable_system_grep": False,
        "parallel": False,  # deterministic tests
    }
    defaults.update(kwargs)
    return SearchConfig(**defaults)


@pytest.fixture
def fallback_config(sample_project):
    return fallback_only_config(sample_project)


@pytest.fixture
def analytics_collector(temp_project_dir):
    """An enabled telemetry collector writing next to the temp directory."""
    collector = SearchAnalyticsCollector(docs_path=temp_project_dir / "input-docs")
    collector.enable_analytics()
    return collector


@pytest.fixture
def fallback_tool(fallback_config):
    """A GrepSearch that always uses the in-process backend."""
    return GrepSearch(fallback_config)


# Markers for different test categories
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests that may take longer to run")
    config.addinivalue_line("markers", "api: API-related tests")
    config.addinivalue_line("markers", "cli: CLI-related tests")
    config.addinivalue_line("markers", "strategy: Search backend tests")
    config.addinivalue_line("markers", "analytics: Telemetry tests")
