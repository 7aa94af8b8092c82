"""Shared fixtures for the launcher tests."""

import pytest
from pathlib import Path

from mc_launcher.settings import Settings
from mc_launcher.fs_layout import build_layout, ensure_dirs


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary server directory (Forge server)."""
    return Settings(
        mc_dir=tmp_path / "minecraft",
        mc_version="",
        forge_version="1.12.2-14.23.5.2847",
        listeners_json=tmp_path / "listeners.json",
        java_args=[],
        skip_install=False,
        hash_workers=2,
    )


@pytest.fixture
def layout(settings):
    layout = build_layout(settings)
    ensure_dirs(layout)
    return layout


@pytest.fixture
def mod_dir(layout) -> Path:
    return layout.mods_dir
