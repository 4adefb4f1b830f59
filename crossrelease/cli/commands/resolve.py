"""
Resolve command implementation.

Prints the build profile of a target and the toolchain environment it
produces for a given sysroot path, without fetching or building anything.
"""

import logging

from crossrelease.cli.utils import load_release_config, safe_print
from crossrelease.cross.environment import build_environment
from crossrelease.cross.targets import is_supported, resolve

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the resolve command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (always 0: unknown triples resolve to the native profile)
    """
    config = load_release_config(args, target=args.target)
    profile = resolve(config.target)

    if not is_supported(config.target):
        safe_print(f"# {config.target!r} has no profile, using native")

    safe_print(f"triple: {profile.triple}")
    safe_print(f"cross_compile: {str(profile.cross_compile).lower()}")
    safe_print(f"linker: {profile.linker_binary or '(native)'}")
    for entry in profile.linker_search_paths:
        where = "sysroot" if entry.sysroot_relative else "host"
        safe_print(f"search_path: {entry.path} ({where})")
    if profile.toolchain_packages:
        safe_print(f"toolchain_packages: {' '.join(profile.toolchain_packages)}")

    if args.packages:
        for package in profile.required_packages:
            safe_print(f"package: {package} {package.version}")

    environment = build_environment(profile, args.sysroot)
    for name, value in environment.variables.items():
        safe_print(f"{name}={value}")

    return 0
