"""Domain errors for nix_sysgen.

Every error carries a stable ``error_code`` so the CLI can surface it
in JSON output. None of these are retried.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from nix_sysgen.types import InstallState, StorePath

TARGET_NOT_FOUND = "target_not_found"
BUILD_FAILED = "build_failed"
MALFORMED_OUTPUT = "malformed_output"
AMBIGUOUS_OUTPUT = "ambiguous_output"
MISSING_OUTPUT = "missing_output"
INSTALL_FAILED = "install_failed"
GCROOT_FAILED = "gcroot_failed"
EXECUTION_ERROR = "execution_error"


class SysgenError(Exception):
    """Base exception for nix_sysgen errors."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class CommandExecutionError(SysgenError):
    """An external command could not be started at all."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(
            f"Failed to execute {command}: {reason}", error_code=EXECUTION_ERROR
        )
        self.command = command


class TargetNotFoundError(SysgenError):
    """Neither the host-specific nor the default flake attribute evaluates."""

    def __init__(self, flake_uri: str, candidates: list[str]) -> None:
        super().__init__(
            "No suitable flake attribute found in "
            f"{flake_uri} (tried: {', '.join(candidates)}), giving up.",
            error_code=TARGET_NOT_FOUND,
        )
        self.flake_uri = flake_uri
        self.candidates = candidates


class BuildFailedError(SysgenError):
    """nix build exited with a nonzero status."""

    def __init__(self, exit_code: int, stderr: str = "") -> None:
        message = f"Nix build failed with exit code {exit_code}."
        if stderr:
            message = f"{message}\n{stderr}"
        super().__init__(message, error_code=BUILD_FAILED)
        self.exit_code = exit_code
        self.stderr = stderr


class MalformedOutputError(SysgenError):
    """The structured build output could not be decoded."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Error reading nix build output: {reason}", error_code=MALFORMED_OUTPUT
        )
        self.reason = reason


class AmbiguousOutputError(SysgenError):
    """The build returned zero or several results instead of exactly one."""

    def __init__(self, count: int) -> None:
        if count == 0:
            message = "No build results were returned."
        else:
            message = (
                f"Multiple build results were returned ({count}), "
                "we cannot handle that yet."
            )
        super().__init__(message, error_code=AMBIGUOUS_OUTPUT)
        self.count = count


class MissingOutputError(SysgenError):
    """The build result has no output with the expected name."""

    def __init__(self, output_name: str, available: list[str]) -> None:
        super().__init__(
            f"No output '{output_name}' found in nix build result "
            f"(available: {', '.join(available) or 'none'}).",
            error_code=MISSING_OUTPUT,
        )
        self.output_name = output_name
        self.available = available


class InstallError(SysgenError):
    """Switching the profile to a new generation failed.

    The previous generation is still active and no GC root was touched.
    """

    def __init__(
        self, profile_path: Path, message: str, exit_code: int | None = None
    ) -> None:
        super().__init__(message, error_code=INSTALL_FAILED)
        self.profile_path = profile_path
        self.exit_code = exit_code


class GcRootError(SysgenError):
    """The GC root could not be registered after a successful profile switch.

    The new generation is active but not protected from garbage collection.
    """

    def __init__(
        self,
        gcroot_path: Path,
        store_path: StorePath,
        reason: str,
        state: InstallState,
    ) -> None:
        super().__init__(
            f"Failed to register GC root {gcroot_path} for {store_path}: {reason}. "
            "The new generation is active but unprotected from garbage collection.",
            error_code=GCROOT_FAILED,
        )
        self.gcroot_path = gcroot_path
        self.store_path = store_path
        self.state = state


__all__ = [
    "AMBIGUOUS_OUTPUT",
    "BUILD_FAILED",
    "EXECUTION_ERROR",
    "GCROOT_FAILED",
    "INSTALL_FAILED",
    "MALFORMED_OUTPUT",
    "MISSING_OUTPUT",
    "TARGET_NOT_FOUND",
    "AmbiguousOutputError",
    "BuildFailedError",
    "CommandExecutionError",
    "GcRootError",
    "InstallError",
    "MalformedOutputError",
    "MissingOutputError",
    "SysgenError",
    "TargetNotFoundError",
]
