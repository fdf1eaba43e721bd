# tests/cli/conftest.py
"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """settings.yaml pointing the cm root and warehouse into tmp_path."""
    path = tmp_path / "settings.yaml"
    path.write_text(f"""
change_manager:
  enabled: true
  cm_root: {tmp_path / "cmroot"}
  retain_seconds: 86400
warehouse:
  root: {tmp_path / "warehouse"}
""")
    return path


@pytest.fixture
def disabled_settings_file(tmp_path: Path) -> Path:
    path = tmp_path / "disabled.yaml"
    path.write_text(f"""
change_manager:
  enabled: false
  cm_root: {tmp_path / "cmroot"}
""")
    return path
