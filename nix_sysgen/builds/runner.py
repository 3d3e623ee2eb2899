"""Runner for the external Nix commands.

This module handles:
- Composing `nix eval`, `nix build` and `nix-env --set` commands
- Executing them with subprocess, blocking until they exit
- Translating failures to start a command into domain errors

The rest of the package only talks to the narrow Evaluator, Builder and
ProfileManager interfaces, so tests can substitute in-memory fakes.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from nix_sysgen.errors import CommandExecutionError

if TYPE_CHECKING:
    from pathlib import Path

    from nix_sysgen.config import Settings
    from nix_sysgen.types import StorePath

logger = logging.getLogger(__name__)


@dataclass
class BuildProcessResult:
    """Raw result of a `nix build --json` invocation.

    Attributes:
        exit_code: Process exit code.
        stdout: Captured structured output (undecoded).
        stderr: Captured diagnostics, empty when stderr went to the terminal.
    """

    exit_code: int
    stdout: bytes
    stderr: bytes = b""

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class Evaluator(Protocol):
    """Checks whether a flake attribute evaluates."""

    def eval_attr(self, flake_uri: str, flake_attr: str) -> bool: ...


class Builder(Protocol):
    """Builds a flake attribute and returns the raw structured output."""

    def build_attr(self, flake_uri: str, flake_attr: str) -> BuildProcessResult: ...


class ProfileManager(Protocol):
    """Points a profile at a store path, returning the exit code."""

    def set_profile(self, profile_path: Path, store_path: StorePath) -> int: ...


def flake_ref(flake_uri: str, flake_attr: str) -> str:
    """Join a flake URI and attribute into an installable reference."""
    return f"{flake_uri}#{flake_attr}"


def compose_eval_command(nix_bin: str, flake_uri: str, flake_attr: str) -> list[str]:
    """Compose the `nix eval` probe command."""
    return [nix_bin, "eval", flake_ref(flake_uri, flake_attr), "--json"]


def compose_build_command(nix_bin: str, flake_uri: str, flake_attr: str) -> list[str]:
    """Compose the `nix build` command requesting JSON output."""
    return [nix_bin, "build", flake_ref(flake_uri, flake_attr), "--json"]


def compose_profile_set_command(
    nix_env_bin: str, profile_path: Path, store_path: StorePath
) -> list[str]:
    """Compose the `nix-env --set` command that switches a profile."""
    return [nix_env_bin, "--profile", str(profile_path), "--set", str(store_path)]


class NixCommandRunner:
    """Evaluator, Builder and ProfileManager backed by the real Nix CLI."""

    def __init__(self, nix_bin: str = "nix", nix_env_bin: str = "nix-env") -> None:
        self.nix_bin = nix_bin
        self.nix_env_bin = nix_env_bin

    @classmethod
    def from_settings(cls, settings: Settings) -> NixCommandRunner:
        return cls(nix_bin=settings.nix_bin, nix_env_bin=settings.nix_env_bin)

    def eval_attr(self, flake_uri: str, flake_attr: str) -> bool:
        """Probe a flake attribute, discarding all of its output.

        Any nonzero exit code counts as "attribute absent".
        """
        cmd = compose_eval_command(self.nix_bin, flake_uri, flake_attr)
        logger.debug("Executing probe: %s", shlex.join(cmd))
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as e:
            raise CommandExecutionError(shlex.join(cmd), str(e)) from e
        return result.returncode == 0

    def build_attr(self, flake_uri: str, flake_attr: str) -> BuildProcessResult:
        """Run `nix build`, capturing stdout only.

        Nix reports progress on stderr and the result on stdout, so stderr
        is left attached to the terminal.
        """
        cmd = compose_build_command(self.nix_bin, flake_uri, flake_attr)
        logger.info("Executing build: %s", shlex.join(cmd))
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=None,
                check=False,
            )
        except OSError as e:
            raise CommandExecutionError(shlex.join(cmd), str(e)) from e
        return BuildProcessResult(
            exit_code=result.returncode,
            stdout=result.stdout or b"",
            stderr=result.stderr or b"",
        )

    def set_profile(self, profile_path: Path, store_path: StorePath) -> int:
        """Atomically repoint a profile with `nix-env --set`."""
        cmd = compose_profile_set_command(self.nix_env_bin, profile_path, store_path)
        logger.info("Executing: %s", shlex.join(cmd))
        try:
            result = subprocess.run(cmd, check=False)
        except OSError as e:
            raise CommandExecutionError(shlex.join(cmd), str(e)) from e
        return result.returncode


__all__ = [
    "BuildProcessResult",
    "Builder",
    "Evaluator",
    "NixCommandRunner",
    "ProfileManager",
    "compose_build_command",
    "compose_eval_command",
    "compose_profile_set_command",
    "flake_ref",
]
