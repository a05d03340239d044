"""
permitvault.version — semantic version string.

Kept dependency-free so the CLI can print it before anything else loads.
"""

from __future__ import annotations

import os

# Bump this when making a tagged release. Use semver (major.minor.patch).
__version__ = "0.1.0"


def version_string() -> str:
    """`__version__`, or PERMITVAULT_VERSION_OVERRIDE for hermetic builds."""
    override = os.getenv("PERMITVAULT_VERSION_OVERRIDE")
    return override.strip() if override else __version__


__all__ = ["__version__", "version_string"]
