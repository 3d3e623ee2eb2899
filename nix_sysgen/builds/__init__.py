"""Build orchestration module.

This module handles:
- Resolving the flake attribute for the local host
- Running `nix build` and interpreting its JSON output
"""

from nix_sysgen.builds.service import build_generation

__all__ = ["build_generation"]
