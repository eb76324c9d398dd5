"""Solidity compiler version handling."""

from __future__ import annotations

import logging
import re

from packaging.version import Version
from solcx import get_solc_version
from solcx.exceptions import SolcNotInstalled

from .errors import VersionError

logger = logging.getLogger(__name__)

# Used when no version is configured and no global solc is installed.
FALLBACK_SOLC_VERSION = "0.8.17"

_SEMVER = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


def parse_solc_version(value: str | Version) -> Version:
    """
    Parse a strict MAJOR.MINOR.PATCH version.

    Raises:
        VersionError: If ``value`` is not of that form
    """
    text = str(value).strip()
    if not _SEMVER.match(text):
        raise VersionError(f"Invalid solc version: {value!r} (expected MAJOR.MINOR.PATCH)")
    return Version(text)


def global_solc_version() -> Version | None:
    """Version of the solc binary py-solc-x currently points at, if any."""
    try:
        version = get_solc_version(with_commit_hash=False)
    except SolcNotInstalled:
        logger.debug("No global solc installation found")
        return None
    return Version(version.base_version)


def default_solc_version(configured: str | None = None) -> Version:
    """
    Resolve the version for a new environment.

    Priority order:
    1. ``configured`` (from ReplConfig / SOLREPL_SOLC_VERSION)
    2. The global solc installation reported by py-solc-x
    3. FALLBACK_SOLC_VERSION
    """
    if configured:
        return parse_solc_version(configured)

    version = global_solc_version()
    if version is not None:
        return version

    logger.warning(f"No solc version configured or installed, defaulting to {FALLBACK_SOLC_VERSION}")
    return parse_solc_version(FALLBACK_SOLC_VERSION)


__all__ = [
    "FALLBACK_SOLC_VERSION",
    "default_solc_version",
    "global_solc_version",
    "parse_solc_version",
]
