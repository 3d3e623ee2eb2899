"""Tests for generations/installer.py module.

Uses a fake profile manager that lays out links like nix-env.
"""

import os
from unittest.mock import patch

import pytest

from fakes import FakeProfileManager
from nix_sysgen.errors import GcRootError, InstallError
from nix_sysgen.generations.installer import (
    InstallResult,
    create_store_link,
    install_generation,
    register_gcroot,
    switch_profile,
)
from nix_sysgen.types import InstallState, StorePath


class TestSwitchProfile:
    """Tests for switch_profile function."""

    def test_creates_profile_dir(self, settings, make_store_path):
        """Should create the profile directory recursively."""
        store_path = make_store_path("abc-system")
        manager = FakeProfileManager()
        profile_path = settings.profile_dir / "nested" / "system-manager"

        switch_profile(manager, store_path, profile_path)

        assert profile_path.parent.is_dir()
        assert manager.calls == [(profile_path, store_path)]

    def test_existing_profile_dir(self, settings, make_store_path):
        """Should not fail when the directory already exists."""
        settings.profile_dir.mkdir(parents=True)
        switch_profile(
            FakeProfileManager(), make_store_path("abc"), settings.profile_path
        )
        assert settings.profile_path.is_symlink()

    def test_nonzero_exit(self, settings, make_store_path):
        """Should raise install-failure on a nonzero exit code."""
        with pytest.raises(InstallError) as exc_info:
            switch_profile(
                FakeProfileManager(exit_code=1),
                make_store_path("abc"),
                settings.profile_path,
            )
        assert exc_info.value.exit_code == 1
        assert exc_info.value.error_code == "install_failed"

    def test_directory_creation_failure(self, tmp_path, make_store_path):
        """Should raise install-failure when the directory cannot be made."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        manager = FakeProfileManager()

        with pytest.raises(InstallError):
            switch_profile(manager, make_store_path("abc"), blocker / "profile")

        assert manager.calls == []


class TestCreateStoreLink:
    """Tests for create_store_link function."""

    def test_creates_link(self, tmp_path, make_store_path):
        """Should create a symlink to the store path."""
        store_path = make_store_path("abc")
        link = tmp_path / "gcroots" / "current"

        create_store_link(store_path, link)

        assert os.readlink(link) == store_path.store_path

    def test_replaces_existing_link(self, tmp_path, make_store_path):
        """Should repoint an existing link without leaving temp files."""
        old = make_store_path("old")
        new = make_store_path("new")
        link = tmp_path / "current"
        create_store_link(old, link)

        create_store_link(new, link)

        assert os.readlink(link) == new.store_path
        assert sorted(p.name for p in tmp_path.iterdir() if p.is_symlink()) == [
            "current"
        ]

    def test_cleans_up_on_failure(self, tmp_path, make_store_path):
        """Should remove the temporary link when the rename fails."""
        link = tmp_path / "current"
        link.mkdir()
        (link / "occupied").touch()

        with pytest.raises(OSError):
            create_store_link(make_store_path("abc"), link)

        assert [p.name for p in tmp_path.iterdir() if p.is_symlink()] == []


class TestRegisterGcroot:
    """Tests for register_gcroot function."""

    def test_points_at_canonical_target(self, settings, make_store_path):
        """Should resolve the profile through every link."""
        store_path = make_store_path("abc-system")
        switch_profile(FakeProfileManager(), store_path, settings.profile_path)

        target = register_gcroot(
            settings.profile_path, settings.gcroot_path, store_path
        )

        assert target == store_path
        assert os.readlink(settings.gcroot_path) == store_path.store_path

    def test_dangling_profile(self, settings):
        """Should raise gcroot-failure when the profile cannot be resolved."""
        store_path = StorePath("/nonexistent/store/abc")
        with pytest.raises(GcRootError) as exc_info:
            register_gcroot(settings.profile_path, settings.gcroot_path, store_path)

        assert exc_info.value.state is InstallState.PROFILE_SWITCHED
        assert not settings.gcroot_path.exists()


    def test_symlink_loop(self, settings):
        """Should raise gcroot-failure when the profile links form a loop."""
        settings.profile_dir.mkdir(parents=True)
        settings.profile_path.symlink_to("a")
        (settings.profile_dir / "a").symlink_to(settings.profile_path)
        store_path = StorePath("/nix/store/abc")

        with pytest.raises(GcRootError) as exc_info:
            register_gcroot(settings.profile_path, settings.gcroot_path, store_path)

        assert exc_info.value.state is InstallState.PROFILE_SWITCHED
        assert not os.path.lexists(settings.gcroot_path)


class TestInstallGeneration:
    """Tests for install_generation function."""

    def test_success(self, settings, make_store_path):
        """Should switch the profile and protect the generation."""
        store_path = make_store_path("xyz-system")

        result = install_generation(
            store_path, settings=settings, manager=FakeProfileManager()
        )

        assert isinstance(result, InstallResult)
        assert result.state is InstallState.PROTECTED
        assert result.gcroot_target == store_path
        assert StorePath.from_link(settings.profile_path) == store_path
        assert StorePath.from_link(settings.gcroot_path) == store_path

    def test_second_generation_moves_gcroot(self, settings, make_store_path):
        """Should keep profile and GC root in step across installs."""
        manager = FakeProfileManager()
        first = make_store_path("first-system")
        second = make_store_path("second-system")

        install_generation(first, settings=settings, manager=manager)
        install_generation(second, settings=settings, manager=manager)

        assert StorePath.from_link(settings.profile_path) == second
        assert StorePath.from_link(settings.gcroot_path) == second

    def test_reinstall_same_path(self, settings, make_store_path):
        """Should be safe to repeat for the same store path."""
        manager = FakeProfileManager()
        store_path = make_store_path("xyz-system")

        install_generation(store_path, settings=settings, manager=manager)
        result = install_generation(store_path, settings=settings, manager=manager)

        assert result.state is InstallState.PROTECTED
        assert StorePath.from_link(settings.gcroot_path) == store_path

    def test_switch_failure_leaves_gcroot_alone(self, settings, make_store_path):
        """Should never touch the GC root if the profile switch fails."""
        old = make_store_path("old-system")
        install_generation(old, settings=settings, manager=FakeProfileManager())

        with pytest.raises(InstallError):
            install_generation(
                make_store_path("new-system"),
                settings=settings,
                manager=FakeProfileManager(exit_code=1),
            )

        assert StorePath.from_link(settings.profile_path) == old
        assert StorePath.from_link(settings.gcroot_path) == old

    def test_switch_failure_creates_no_gcroot(self, settings, make_store_path):
        """Should not create a GC root on a fresh system."""
        with pytest.raises(InstallError):
            install_generation(
                make_store_path("new-system"),
                settings=settings,
                manager=FakeProfileManager(exit_code=1),
            )

        assert not os.path.lexists(settings.gcroot_path)

    def test_gcroot_failure_leaves_generation_active(
        self, settings, make_store_path
    ):
        """Should report the active-but-unprotected state without rollback."""
        store_path = make_store_path("xyz-system")

        with (
            patch(
                "nix_sysgen.generations.installer.create_store_link",
                side_effect=PermissionError("denied"),
            ),
            pytest.raises(GcRootError) as exc_info,
        ):
            install_generation(
                store_path, settings=settings, manager=FakeProfileManager()
            )

        assert exc_info.value.state is InstallState.PROFILE_SWITCHED
        assert exc_info.value.store_path == store_path
        assert StorePath.from_link(settings.profile_path) == store_path
        assert not os.path.lexists(settings.gcroot_path)

    def test_logs_phases(self, settings, make_store_path, caplog):
        """Should log each installation phase."""
        with caplog.at_level("INFO", logger="nix_sysgen.generations.installer"):
            install_generation(
                make_store_path("xyz-system"),
                settings=settings,
                manager=FakeProfileManager(),
            )

        assert "Creating new generation from" in caplog.text
        assert "Registering GC root" in caplog.text
        assert "Done" in caplog.text
