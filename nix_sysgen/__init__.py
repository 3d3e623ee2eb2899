"""nix-sysgen - build and activate system generations with Nix.

This package resolves a flake attribute for the local host, drives
`nix build` against it, and installs the resulting store path as the
active system generation, registering a GC root to protect it.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
