"""
Cross-compilation support for crossrelease.

This package resolves target triples to build profiles, stages foreign
architecture libraries into a sysroot, and assembles the toolchain
environment from the two.
"""

from crossrelease.cross.packages import ForeignPackage, DebianPackageFetcher
from crossrelease.cross.targets import (
    NATIVE_TRIPLE,
    SearchPath,
    TargetProfile,
    resolve,
    is_supported,
    supported_triples,
)
from crossrelease.cross.sysroot import StagedSysroot, SysrootStager, stage_sysroot
from crossrelease.cross.environment import BuildEnvironment, build_environment

__all__ = [
    "ForeignPackage",
    "DebianPackageFetcher",
    "NATIVE_TRIPLE",
    "SearchPath",
    "TargetProfile",
    "resolve",
    "is_supported",
    "supported_triples",
    "StagedSysroot",
    "SysrootStager",
    "stage_sysroot",
    "BuildEnvironment",
    "build_environment",
]
