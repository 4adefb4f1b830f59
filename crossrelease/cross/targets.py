"""
Cross-compilation target profiles.

This module maps a target triple to everything the build needs to know
about it: which linker to use, where that linker looks for libraries,
which include directory the C build scripts see, and which foreign
architecture packages have to be staged into the sysroot.

The mapping is a static table. Adding a target or a library is a table
edit; ``resolve()`` itself never changes. Resolution is pure: no
filesystem, network or environment access.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from crossrelease.cross.packages import ForeignPackage, bullseye_packages

logger = logging.getLogger(__name__)

NATIVE_TRIPLE = "x86_64-unknown-linux-gnu"
HOST_INCLUDE_PATH = "/usr/include"


@dataclass(frozen=True)
class SearchPath:
    """
    A linker library search directory.

    Attributes:
        path: Directory path. Sysroot-relative paths have no leading slash.
        sysroot_relative: True if ``path`` is resolved against the staged sysroot
    """

    path: str
    sysroot_relative: bool = False


@dataclass(frozen=True)
class TargetProfile:
    """
    Resolved, target-specific build configuration.

    Attributes:
        triple: Target triple (e.g., 'aarch64-unknown-linux-gnu')
        linker_binary: Cross linker, None for a native build
        linker_search_paths: Ordered library search directories
        include_path: Include directory (sysroot-relative when cross-compiling)
        cross_compile: True for any non-native triple
        required_packages: Foreign packages to stage, in staging order
        link_libraries: Libraries linked explicitly (``-l<name>``)
        toolchain_packages: Host packages providing the cross toolchain
    """

    triple: str
    linker_binary: Optional[str] = None
    linker_search_paths: Tuple[SearchPath, ...] = ()
    include_path: str = HOST_INCLUDE_PATH
    cross_compile: bool = False
    required_packages: Tuple[ForeignPackage, ...] = ()
    link_libraries: Tuple[str, ...] = ()
    toolchain_packages: Tuple[str, ...] = ()

    @property
    def is_native(self) -> bool:
        return not self.cross_compile


# Libraries the binary links against that the linker cannot infer on its own
_LINK_LIBRARIES = (
    "systemd",
    "cap",
    "gcrypt",
    "gpg-error",
    "lz4",
    "lzma",
    "psx",
    "xxhash",
    "zstd",
)


def _gnu_linux_profile(
    triple: str, gnu_prefix: str, debian_arch: str, toolchain_packages: Tuple[str, ...]
) -> TargetProfile:
    return TargetProfile(
        triple=triple,
        linker_binary=f"{gnu_prefix}-gcc",
        linker_search_paths=(
            SearchPath(f"/usr/{gnu_prefix}/lib"),
            SearchPath(f"usr/lib/{gnu_prefix}", sysroot_relative=True),
            SearchPath(f"lib/{gnu_prefix}", sysroot_relative=True),
        ),
        include_path="usr/include",
        cross_compile=True,
        required_packages=bullseye_packages(debian_arch),
        link_libraries=_LINK_LIBRARIES,
        toolchain_packages=toolchain_packages,
    )


NATIVE_PROFILE = TargetProfile(triple=NATIVE_TRIPLE)

TARGET_PROFILES: Dict[str, TargetProfile] = {
    NATIVE_TRIPLE: NATIVE_PROFILE,
    "aarch64-unknown-linux-gnu": _gnu_linux_profile(
        "aarch64-unknown-linux-gnu",
        gnu_prefix="aarch64-linux-gnu",
        debian_arch="arm64",
        toolchain_packages=(
            "gcc-aarch64-linux-gnu",
            "libc6-arm64-cross",
            "libc6-dev-arm64-cross",
        ),
    ),
    "armv7-unknown-linux-gnueabihf": _gnu_linux_profile(
        "armv7-unknown-linux-gnueabihf",
        gnu_prefix="arm-linux-gnueabihf",
        debian_arch="armhf",
        toolchain_packages=(
            "gcc-arm-linux-gnueabihf",
            "libc6-armhf-cross",
            "libc6-dev-armhf-cross",
        ),
    ),
}


def resolve(triple: Optional[str]) -> TargetProfile:
    """
    Resolve a target triple to its profile.

    Never fails: an empty or unknown triple resolves to the native profile,
    which has no linker override, no foreign packages and cross-compilation
    disabled.

    Args:
        triple: Target triple, may be None or empty

    Returns:
        The table entry for ``triple``, or the native profile

    Example:
        >>> resolve("aarch64-unknown-linux-gnu").linker_binary
        'aarch64-linux-gnu-gcc'
        >>> resolve("riscv64gc-unknown-linux-gnu").triple
        'x86_64-unknown-linux-gnu'
    """
    key = (triple or "").strip()
    profile = TARGET_PROFILES.get(key)
    if profile is None:
        if key:
            logger.warning(
                f"No profile for target '{key}', using native {NATIVE_TRIPLE}"
            )
        return NATIVE_PROFILE
    return profile


def is_supported(triple: str) -> bool:
    """Check whether ``triple`` has its own table entry."""
    return triple in TARGET_PROFILES


def supported_triples() -> List[str]:
    """List the triples with table entries, native first."""
    return list(TARGET_PROFILES)
