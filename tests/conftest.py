"""Shared fixtures for the test suite."""

from pathlib import Path

import pytest

from nix_sysgen.config import Settings
from nix_sysgen.types import StorePath


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing all state into a temporary directory."""
    return Settings(
        flake_attr="systemConfigs",
        profile_dir=tmp_path / "profiles",
        profile_name="system-manager",
        gcroot_path=tmp_path / "gcroots" / "system-manager-current",
    )


@pytest.fixture
def store_dir(tmp_path) -> Path:
    """A stand-in for /nix/store."""
    path = tmp_path / "nix" / "store"
    path.mkdir(parents=True)
    return path.resolve()


@pytest.fixture
def make_store_path(store_dir):
    """Create a store object and return its StorePath."""

    def _make(name: str) -> StorePath:
        path = store_dir / name
        path.mkdir()
        return StorePath(str(path))

    return _make
