from __future__ import annotations

"""
tokensale.version: package version string.

BASE_VERSION is the released semver. `TOKENSALE_VERSION` in the environment
overrides it (packaging/CI builds stamp pre-release or local versions there).
"""

import os

# Bump this on intentional releases.
BASE_VERSION = "0.1.0"


def build_version() -> str:
    return os.getenv("TOKENSALE_VERSION") or BASE_VERSION


__version__ = build_version()


def get_version() -> str:
    return __version__


__all__ = ["__version__", "get_version", "BASE_VERSION"]
