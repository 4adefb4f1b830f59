"""
Centralized exception hierarchy for crossrelease.

Every fatal error carries the pipeline stage that failed and the offending
identifier (triple, package name, command or file) so the CLI can report
exactly where an invocation stopped.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class CrossReleaseError(Exception):
    """Base exception for all crossrelease errors."""

    stage = "release"

    def __init__(self, identifier: str, message: str):
        self.identifier = identifier
        self.message = message
        super().__init__(f"{self.stage} failed for {identifier}: {message}")


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(CrossReleaseError):
    """Configuration file or value could not be used."""

    stage = "config"


# ============================================================================
# Sysroot Exceptions
# ============================================================================


class PackageFetchError(CrossReleaseError):
    """A required foreign package could not be retrieved."""

    stage = "fetch"


class SysrootExtractionError(CrossReleaseError):
    """A package archive could not be unpacked into the sysroot."""

    stage = "extract"


# ============================================================================
# Build and Packaging Exceptions
# ============================================================================


class BuildError(CrossReleaseError):
    """The toolchain invocation exited non-zero or produced no binary."""

    stage = "build"

    def __init__(self, identifier: str, message: str, output: Optional[str] = None):
        self.output = output or ""
        super().__init__(identifier, message)


class PackagingError(CrossReleaseError):
    """Archive or checksum could not be produced, exported or verified."""

    stage = "package"
