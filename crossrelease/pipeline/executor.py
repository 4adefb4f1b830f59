"""
Build executors.

An executor turns a source tree plus a build environment into a release
binary. ``BuildExecutor`` is the interface the release pipeline depends
on; ``CargoExecutor`` runs cargo on the local machine in an isolated copy
of the source tree with a per-target build cache.
"""

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from crossrelease.config.parser import DEFAULT_EXCLUDES
from crossrelease.core.directory import target_cache_dir
from crossrelease.core.exceptions import BuildError
from crossrelease.core.filesystem import FilesystemError, safe_rmtree
from crossrelease.cross.environment import BuildEnvironment

logger = logging.getLogger(__name__)

TEST_NAMESPACE = "test"


class BuildExecutor(ABC):
    """Abstract base class for build executors."""

    @abstractmethod
    def build(
        self, environment: BuildEnvironment, source_dir: Path, triple: str
    ) -> Path:
        """
        Build the release binary for ``triple``.

        The environment must be applied verbatim; executors never fall back
        to native flags for a cross build.

        Returns:
            Path to the produced binary

        Raises:
            BuildError: If the build fails
        """
        pass

    @abstractmethod
    def test(self, source_dir: Path, options: Sequence[str] = ()) -> str:
        """
        Run the project's test suite natively and return its output.

        Raises:
            BuildError: If the tests fail or cannot be run
        """
        pass


class CargoExecutor(BuildExecutor):
    """
    Build with cargo in an isolated workspace.

    The source tree is copied (minus excluded entries such as ``target``
    and ``.git``) into the target's cache namespace, and cargo writes its
    build output to a target directory in that same namespace. Namespaces
    are per triple, so builds for different triples never share state.

    Attributes:
        cache_dir: Cache root (namespaces live under ``<cache_dir>/targets``)
        binary_name: Name of the binary cargo produces
    """

    def __init__(
        self,
        cache_dir: Path,
        binary_name: str,
        exclude: Sequence[str] = DEFAULT_EXCLUDES,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        self.cache_dir = Path(cache_dir)
        self.binary_name = binary_name
        self.exclude = tuple(exclude)
        self.runner = runner
        self.base_env = base_env

    def build(
        self, environment: BuildEnvironment, source_dir: Path, triple: str
    ) -> Path:
        if environment.triple != triple:
            raise BuildError(
                triple, f"environment was built for {environment.triple}, not {triple}"
            )
        if environment.cross_compile and not environment.compiler_flags:
            raise BuildError(triple, "cross build requested without compiler flags")

        namespace = target_cache_dir(self.cache_dir, triple)
        workspace = self._prepare_workspace(Path(source_dir), namespace)
        target_dir = namespace / "cargo-target"

        env = environment.as_env(os.environ if self.base_env is None else self.base_env)
        env["CARGO_TARGET_DIR"] = str(target_dir)

        logger.info(f"Building {self.binary_name} for {triple}")
        logger.debug(f"RUSTFLAGS={env['RUSTFLAGS']!r}")
        self._run(["rustup", "target", "add", triple], workspace, env)
        self._run(["cargo", "build", "--release", "--target", triple], workspace, env)

        binary = target_dir / triple / "release" / self.binary_name
        if not binary.is_file():
            raise BuildError(triple, f"cargo finished but {binary} does not exist")

        logger.info(f"Built {binary}")
        return binary

    def test(self, source_dir: Path, options: Sequence[str] = ()) -> str:
        namespace = target_cache_dir(self.cache_dir, TEST_NAMESPACE)
        workspace = self._prepare_workspace(Path(source_dir), namespace)

        env = dict(os.environ if self.base_env is None else self.base_env)
        env["CARGO_TARGET_DIR"] = str(namespace / "cargo-target")

        return self._run(["cargo", "test", *options], workspace, env)

    def _prepare_workspace(self, source_dir: Path, namespace: Path) -> Path:
        if not source_dir.is_dir():
            raise BuildError(str(source_dir), "source directory does not exist")

        workspace = namespace / "workspace"
        try:
            safe_rmtree(workspace, require_prefix=namespace)
            shutil.copytree(
                source_dir,
                workspace,
                symlinks=True,
                ignore=shutil.ignore_patterns(*self.exclude),
            )
        except (FilesystemError, OSError) as e:
            raise BuildError(str(source_dir), f"cannot prepare workspace: {e}") from e

        logger.debug(f"Copied {source_dir} to {workspace}")
        return workspace

    def _run(self, command: Sequence[str], cwd: Path, env: Mapping[str, str]) -> str:
        display = " ".join(command)
        logger.debug(f"Running: {display}")

        try:
            result = self.runner(
                list(command), cwd=cwd, env=dict(env), capture_output=True, text=True
            )
        except FileNotFoundError as e:
            raise BuildError(display, f"{command[0]} not found in PATH") from e
        except OSError as e:
            raise BuildError(display, f"cannot run {command[0]}: {e}") from e

        output = (result.stdout or "") + (result.stderr or "")
        if result.returncode != 0:
            logger.error(output.rstrip())
            raise BuildError(
                display, f"exited with status {result.returncode}", output=output
            )

        logger.debug(output.rstrip())
        return output
