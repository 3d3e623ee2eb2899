"""Generation installer.

Installing a generation is two ordered steps:

1. Switch the profile to the new store path with `nix-env --set`.
2. Point the GC root at whatever the profile now resolves to.

The steps are not a transaction. If step 1 fails nothing else is touched
and the previous generation stays active. If step 2 fails the new
generation is active but unprotected from garbage collection; this is
reported through GcRootError and is not rolled back.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from nix_sysgen.builds.runner import NixCommandRunner
from nix_sysgen.config import Settings, get_settings
from nix_sysgen.errors import GcRootError, InstallError
from nix_sysgen.types import InstallState, StorePath

if TYPE_CHECKING:
    from nix_sysgen.builds.runner import ProfileManager

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of a generation installation.

    Attributes:
        store_path: Store path that was requested.
        profile_path: Profile that was switched.
        gcroot_path: GC root that was registered.
        gcroot_target: Canonical store path the GC root points at.
        state: How far the installation got.
    """

    store_path: StorePath
    profile_path: Path
    gcroot_path: Path
    gcroot_target: StorePath | None = None
    state: InstallState = InstallState.PENDING


def switch_profile(
    manager: ProfileManager, store_path: StorePath, profile_path: Path
) -> None:
    """Make store_path the active generation of profile_path.

    Raises:
        InstallError: If the profile directory cannot be created or the
            profile manager exits nonzero.
    """
    try:
        profile_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InstallError(
            profile_path,
            f"Failed to create profile directory {profile_path.parent}: {e}",
        ) from e

    exit_code = manager.set_profile(profile_path, store_path)
    if exit_code != 0:
        raise InstallError(
            profile_path,
            f"Failed to set profile {profile_path} to {store_path} "
            f"(exit code {exit_code})",
            exit_code=exit_code,
        )


def create_store_link(store_path: StorePath, link_path: Path) -> None:
    """Create or replace a symlink at link_path pointing to store_path.

    A temporary sibling link is renamed over link_path, so the link is
    never observed missing or half-written.
    """
    logger.info("Creating symlink: %s -> %s", link_path, store_path)
    link_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = link_path.with_name(f".{link_path.name}.tmp-{os.getpid()}")
    if tmp_path.is_symlink():
        tmp_path.unlink()
    os.symlink(store_path.store_path, tmp_path)
    try:
        os.replace(tmp_path, link_path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def register_gcroot(
    profile_path: Path, gcroot_path: Path, store_path: StorePath
) -> StorePath:
    """Point the GC root at the canonical target of profile_path.

    Args:
        profile_path: Profile that was just switched.
        gcroot_path: Location of the GC root link.
        store_path: Store path that was installed, for error reporting.

    Returns:
        The canonical store path the GC root now points at.

    Raises:
        GcRootError: If the profile cannot be resolved or the link cannot
            be written.
    """
    try:
        target = StorePath.from_link(profile_path)
        create_store_link(target, gcroot_path)
    except OSError as e:
        raise GcRootError(
            gcroot_path, store_path, str(e), state=InstallState.PROFILE_SWITCHED
        ) from e
    return target


def install_generation(
    store_path: StorePath,
    *,
    settings: Settings | None = None,
    manager: ProfileManager | None = None,
) -> InstallResult:
    """Activate store_path and protect it from garbage collection.

    Args:
        store_path: Store path of the generation to activate.
        settings: Optional settings; uses defaults if not provided.
        manager: Optional profile manager; shells out to nix-env if not provided.

    Returns:
        InstallResult in state PROTECTED.

    Raises:
        InstallError: If the profile switch fails. Nothing was changed.
        GcRootError: If the GC root registration fails. The generation is
            active but unprotected.
    """
    if settings is None:
        settings = get_settings()
    if manager is None:
        manager = NixCommandRunner.from_settings(settings)

    result = InstallResult(
        store_path=store_path,
        profile_path=settings.profile_path,
        gcroot_path=settings.gcroot_path,
    )

    logger.info("Creating new generation from %s", store_path)
    switch_profile(manager, store_path, result.profile_path)
    result.state = InstallState.PROFILE_SWITCHED

    logger.info("Registering GC root...")
    result.gcroot_target = register_gcroot(
        result.profile_path, result.gcroot_path, store_path
    )
    result.state = InstallState.PROTECTED

    logger.info("Done")
    return result


__all__ = [
    "InstallResult",
    "create_store_link",
    "install_generation",
    "register_gcroot",
    "switch_profile",
]
