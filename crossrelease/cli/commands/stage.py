"""
Stage command implementation.

Stages a target's sysroot into a directory without building.
"""

import logging

from crossrelease.cli.utils import load_release_config, safe_print
from crossrelease.core.directory import ensure_cache_structure
from crossrelease.cross.packages import DebianPackageFetcher
from crossrelease.cross.sysroot import SysrootStager
from crossrelease.cross.targets import resolve

logger = logging.getLogger(__name__)


def run(args) -> int:
    config = load_release_config(
        args, target=args.target, mirror=args.mirror, cache_dir=args.cache_dir
    )
    profile = resolve(config.target)

    if not profile.required_packages:
        logger.info(f"{profile.triple} needs no foreign packages")

    cache_dir = ensure_cache_structure(config.cache_dir)
    fetcher = DebianPackageFetcher(cache_dir, mirror=config.mirror)
    sysroot = SysrootStager(args.dest).stage(profile, fetcher)

    safe_print(
        f"Staged {len(sysroot.packages)} package(s), "
        f"{len(sysroot.files())} file(s) into {sysroot.root_path}"
    )
    return 0
