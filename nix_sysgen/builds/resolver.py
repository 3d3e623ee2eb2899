"""Flake attribute resolution.

A flake exposes one configuration per host under a common attribute,
e.g. `systemConfigs.<hostname>`, with `systemConfigs.default` as the
fallback. Candidates are probed with a cheap `nix eval` before any
real build is attempted.
"""

import logging
import socket

from nix_sysgen.builds.runner import Evaluator, flake_ref
from nix_sysgen.errors import TargetNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_ATTR_NAME = "default"


def candidate_attrs(flake_attr: str, hostname: str) -> list[str]:
    """Return the attributes to try, in order of preference."""
    return [f"{flake_attr}.{hostname}", f"{flake_attr}.{DEFAULT_ATTR_NAME}"]


def try_flake_attr(evaluator: Evaluator, flake_uri: str, flake_attr: str) -> bool:
    """Probe a single attribute, logging the outcome."""
    ref = flake_ref(flake_uri, flake_attr)
    logger.info("Trying flake attribute: %s...", ref)
    if evaluator.eval_attr(flake_uri, flake_attr):
        logger.info("Success, using %s", ref)
        return True
    logger.info("Attribute %s not found in flake.", ref)
    return False


def find_flake_attr(
    evaluator: Evaluator,
    flake_uri: str,
    flake_attr: str,
    hostname: str | None = None,
) -> str:
    """Pick the host-specific attribute, falling back to the default one.

    Args:
        evaluator: Used to probe each candidate.
        flake_uri: Flake to look in.
        flake_attr: Attribute holding the per-host configurations.
        hostname: Host to resolve for; defaults to the local host name.

    Returns:
        The first candidate attribute that evaluates.

    Raises:
        TargetNotFoundError: If no candidate evaluates.
    """
    if hostname is None:
        hostname = socket.gethostname()

    candidates = candidate_attrs(flake_attr, hostname)
    for candidate in candidates:
        if try_flake_attr(evaluator, flake_uri, candidate):
            return candidate
    raise TargetNotFoundError(flake_uri, candidates)


__all__ = [
    "DEFAULT_ATTR_NAME",
    "candidate_attrs",
    "find_flake_attr",
    "try_flake_attr",
]
