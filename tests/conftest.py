"""
Shared test fixtures and configuration for pytest.
"""

import logging
import sys
from pathlib import Path

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from workspace_api.tools.mock_data_generator import CaptureOptions, capture_snapshot  # noqa: E402
from workspace_api.v1.latency import FixedLatency  # noqa: E402
from workspace_api.v1.mock_client import MockWorkspaceApi  # noqa: E402


logger = logging.getLogger(__name__)


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """
    Directory tree used by most tests:

        root/
            a.txt        (3 bytes)
            sub/
                b.txt    (5 bytes)
    """
    root = tmp_path / "root"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"abc")
    (root / "sub" / "b.txt").write_bytes(b"hello")
    return root


@pytest.fixture
def wide_tree(tmp_path: Path) -> Path:
    """Tree with names whose codepoint order differs from naive expectations."""
    root = tmp_path / "wide"
    root.mkdir()
    for name in ["b", "B", "a", "_x", "a!", "a.txt", "Z", "é", "10", "9"]:
        (root / name).write_text(name, encoding="utf-8")
    (root / "a_dir").mkdir()
    (root / "a_dir" / "inner.txt").write_text("inner", encoding="utf-8")
    return root


@pytest.fixture
def snapshot(sample_tree: Path):
    """Snapshot of sample_tree without embedded content."""
    return capture_snapshot(sample_tree)


@pytest.fixture
def embedded_snapshot(sample_tree: Path):
    """Snapshot of sample_tree with embedded content."""
    return capture_snapshot(sample_tree, CaptureOptions(embed_content=True))


@pytest.fixture
def engine(snapshot) -> MockWorkspaceApi:
    """Ready mock engine with zero latency."""
    return MockWorkspaceApi.from_snapshot(snapshot, latency=FixedLatency(0.0))


@pytest.fixture
def embedded_engine(embedded_snapshot) -> MockWorkspaceApi:
    """Ready mock engine over embedded content, zero latency."""
    return MockWorkspaceApi.from_snapshot(embedded_snapshot, latency=FixedLatency(0.0))
