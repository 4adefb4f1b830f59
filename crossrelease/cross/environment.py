"""
Build environment assembly.

Turns a target profile and a staged sysroot path into the exact flags and
variables handed to the toolchain: ``RUSTFLAGS`` for rustc, and the
variables C build scripts and pkg-config consult.
"""

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

from crossrelease.cross.targets import HOST_INCLUDE_PATH, SearchPath, TargetProfile


@dataclass(frozen=True)
class BuildEnvironment:
    """
    Flags and variables for one toolchain invocation.

    Attributes:
        triple: Target triple the environment was built for
        compiler_flags: Ordered compiler flags
        variables: Environment variables (read-only mapping)
    """

    triple: str
    compiler_flags: Tuple[str, ...] = ()
    variables: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

    def __hash__(self):
        return hash((self.triple, self.compiler_flags, tuple(sorted(self.variables.items()))))

    @property
    def cross_compile(self) -> bool:
        return self.variables.get("PKG_CONFIG_ALLOW_CROSS") == "1"

    def as_env(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Return ``base`` (e.g. ``os.environ``) with this environment applied on top."""
        env = dict(base or {})
        env.update(self.variables)
        return env


def _search_dir(entry: SearchPath, sysroot: str) -> str:
    if entry.sysroot_relative:
        return posixpath.join(sysroot, entry.path)
    return entry.path


def build_environment(
    profile: TargetProfile, sysroot_path: Union[str, Path]
) -> BuildEnvironment:
    """
    Build the toolchain environment for ``profile``.

    When the profile selects a linker, flags are emitted in this order:
    one ``-Clink-arg=-l<lib>`` per explicit link library, ``-Clinker=``,
    then one ``-L`` per search path with sysroot-relative paths joined onto
    ``sysroot_path``. Native profiles get no flags.

    Variables:
        RUSTFLAGS: compiler flags joined by single spaces
        C_INCLUDE_PATH: sysroot include directory when cross-compiling,
            otherwise the host's
        PKG_CONFIG_ALLOW_CROSS: "1" when cross-compiling, otherwise "0"
        TARGET: the target triple

    The result depends only on the arguments.

    Example:
        >>> env = build_environment(resolve("aarch64-unknown-linux-gnu"), "/build/sysroot")
        >>> env.variables["C_INCLUDE_PATH"]
        '/build/sysroot/usr/include'
    """
    sysroot = Path(sysroot_path).as_posix()
    flags = []

    if profile.linker_binary:
        flags.extend(f"-Clink-arg=-l{lib}" for lib in profile.link_libraries)
        flags.append(f"-Clinker={profile.linker_binary}")
        flags.extend(f"-L{_search_dir(entry, sysroot)}" for entry in profile.linker_search_paths)

    if profile.cross_compile:
        include_path = posixpath.join(sysroot, profile.include_path)
    else:
        include_path = HOST_INCLUDE_PATH

    variables = {
        "RUSTFLAGS": " ".join(flags),
        "C_INCLUDE_PATH": include_path,
        "PKG_CONFIG_ALLOW_CROSS": "1" if profile.cross_compile else "0",
        "TARGET": profile.triple,
    }

    return BuildEnvironment(
        triple=profile.triple, compiler_flags=tuple(flags), variables=variables
    )
