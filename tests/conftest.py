"""Shared pytest fixtures for scriptfs tests."""

from __future__ import annotations

from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast tests with no external services")


@pytest.fixture
def registry():
    from scriptfs.primitives.registry import PrimitiveRegistry

    return PrimitiveRegistry()


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """A small source tree three directories deep."""
    root = tmp_path / "source"
    (root / "docs" / "guides" / "deep").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "readme.txt").write_text("hello\n", encoding="utf-8")
    (root / "docs" / "index.md").write_text("# index\n", encoding="utf-8")
    (root / "docs" / "guides" / "setup.md").write_text("setup\n", encoding="utf-8")
    (root / "docs" / "guides" / "deep" / "data.bin").write_bytes(bytes(range(256)))
    return root
