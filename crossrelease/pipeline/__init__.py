"""
Build, package and release orchestration for crossrelease.
"""

from crossrelease.pipeline.executor import BuildExecutor, CargoExecutor
from crossrelease.pipeline.packager import Artifact, Packager, archive_name, verify_artifact
from crossrelease.pipeline.release import run_release, run_tests

__all__ = [
    "BuildExecutor",
    "CargoExecutor",
    "Artifact",
    "Packager",
    "archive_name",
    "verify_artifact",
    "run_release",
    "run_tests",
]
