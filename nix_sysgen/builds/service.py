"""Build service layer.

This module provides the high-level build operation:
- build_generation: resolve the flake attribute for this host and build it
- run_nix_build: build an already resolved attribute

Both return the single store path produced by the build.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nix_sysgen.builds.parser import parse_build_output
from nix_sysgen.builds.resolver import find_flake_attr
from nix_sysgen.builds.runner import NixCommandRunner
from nix_sysgen.config import Settings, get_settings
from nix_sysgen.errors import BuildFailedError, MalformedOutputError

if TYPE_CHECKING:
    from nix_sysgen.builds.runner import Builder, BuildProcessResult, Evaluator
    from nix_sysgen.types import StorePath

logger = logging.getLogger(__name__)


def get_store_path(result: BuildProcessResult) -> StorePath:
    """Interpret a finished `nix build` process.

    NixCommandRunner leaves stderr on the terminal, so for real builds the
    tool's diagnostics are already on screen and BuildFailedError only
    carries the exit code. Builders that capture stderr get it attached.

    Raises:
        BuildFailedError: If the build exited nonzero.
        MalformedOutputError: If stdout is not valid UTF-8 or not valid JSON.
        AmbiguousOutputError: If the build returned other than one result.
        MissingOutputError: If the result lacks an 'out' output.
    """
    if not result.success:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        if stderr:
            logger.error("%s", stderr)
        raise BuildFailedError(result.exit_code, stderr)

    try:
        output = result.stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedOutputError(f"output is not valid UTF-8: {e}") from e
    return parse_build_output(output)


def run_nix_build(builder: Builder, flake_uri: str, flake_attr: str) -> StorePath:
    """Build a resolved flake attribute and return its store path."""
    logger.info("Running nix build...")
    return get_store_path(builder.build_attr(flake_uri, flake_attr))


def build_generation(
    flake_uri: str,
    *,
    settings: Settings | None = None,
    hostname: str | None = None,
    evaluator: Evaluator | None = None,
    builder: Builder | None = None,
) -> StorePath:
    """Build a new generation from a flake.

    The attribute is resolved first; no build is attempted if resolution
    fails.

    Args:
        flake_uri: Flake to build from.
        settings: Optional settings; uses defaults if not provided.
        hostname: Host to build for; defaults to the local host name.
        evaluator: Optional evaluator; shells out to nix if not provided.
        builder: Optional builder; shells out to nix if not provided.

    Returns:
        StorePath of the built generation.
    """
    if settings is None:
        settings = get_settings()
    if evaluator is None or builder is None:
        runner = NixCommandRunner.from_settings(settings)
        evaluator = evaluator or runner
        builder = builder or runner

    logger.info("Resolving flake attribute...")
    flake_attr = find_flake_attr(
        evaluator, flake_uri, settings.flake_attr, hostname=hostname
    )

    logger.info("Building new system generation...")
    store_path = run_nix_build(builder, flake_uri, flake_attr)
    logger.info("Built system generation %s", store_path)
    return store_path


__all__ = ["build_generation", "get_store_path", "run_nix_build"]
