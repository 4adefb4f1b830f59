"""
crossrelease - cross-target build and release orchestrator.

Resolves a target triple to a build profile, stages the target's foreign
libraries into a sysroot, builds the release binary with the matching
toolchain environment, and packages it with a SHA-256 checksum.
"""

from crossrelease.cross import build_environment, resolve, stage_sysroot
from crossrelease.pipeline import run_release

__all__ = ["build_environment", "resolve", "stage_sysroot", "run_release"]
