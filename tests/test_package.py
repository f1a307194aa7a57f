"""Tests for the package's public surface."""

import tomllib
from pathlib import Path

import filecabinet


def test_version_matches_project_metadata():
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    metadata = tomllib.loads(pyproject.read_text(encoding="utf-8"))

    assert filecabinet.__version__ == metadata["project"]["version"]


def test_exports_resolve():
    for name in filecabinet.__all__:
        assert hasattr(filecabinet, name)
