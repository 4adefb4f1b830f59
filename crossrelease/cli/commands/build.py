"""
Build command implementation.

Builds and packages one release for one target triple.
"""

import logging

from crossrelease.cli.utils import load_release_config, safe_print
from crossrelease.pipeline.release import run_release

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the build command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 only when the archive and its verified checksum exist)
    """
    config = load_release_config(
        args,
        target=args.target,
        tag=args.tag,
        source_dir=args.source,
        output_dir=args.output,
        name=args.name,
        mirror=args.mirror,
        cache_dir=args.cache_dir,
    )

    artifact = run_release(config)

    safe_print(str(artifact.archive_path))
    safe_print(str(artifact.checksum_path))
    return 0
