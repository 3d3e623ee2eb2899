"""Shared type definitions for nix_sysgen.

This module contains dataclasses and enums shared across subpackages
to avoid circular imports.
"""

from __future__ import annotations

import errno
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class LogLevel(str, Enum):
    """Accepted logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class InstallState(str, Enum):
    """Progress of a generation installation.

    PROFILE_SWITCHED is the window in which the new generation is active
    but not yet protected by a GC root.
    """

    PENDING = "pending"
    PROFILE_SWITCHED = "profile_switched"
    PROTECTED = "protected"


@dataclass(frozen=True)
class StorePath:
    """Immutable reference to a content-addressed Nix store object.

    Attributes:
        store_path: The store path string, e.g. /nix/store/<hash>-<name>.
    """

    store_path: str

    def __str__(self) -> str:
        return self.store_path

    @property
    def path(self) -> Path:
        """Return the store path as a filesystem path."""
        return Path(self.store_path)

    @classmethod
    def from_link(cls, link: str | os.PathLike[str]) -> StorePath:
        """Follow every symlink in front of a store object.

        Args:
            link: Path to a profile, GC root or any chain of links.

        Returns:
            StorePath for the canonical target.

        Raises:
            OSError: If the link or its target does not exist, or the links
                form a loop.
        """
        try:
            resolved = Path(link).resolve(strict=True)
        except RuntimeError as e:
            # Python < 3.13 reports symlink loops as RuntimeError.
            raise OSError(errno.ELOOP, str(e), str(link)) from e
        return cls(str(resolved))


__all__ = ["InstallState", "LogLevel", "StorePath"]
