"""Generation management module.

This module handles:
- Switching the system profile to a new generation
- Registering the GC root that protects the active generation
"""

from nix_sysgen.generations.installer import InstallResult, install_generation

__all__ = ["InstallResult", "install_generation"]
