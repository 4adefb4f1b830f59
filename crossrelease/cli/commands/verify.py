"""
Verify command implementation.

Verifies a release archive against its checksum file.
"""

from crossrelease.cli.utils import safe_print
from crossrelease.pipeline.packager import verify_artifact


def run(args) -> int:
    """
    Run the verify command.

    Returns:
        Exit code (0 if the digest matches; a mismatch raises PackagingError)
    """
    digest = verify_artifact(args.archive, args.checksum)
    safe_print(f"{args.archive.name}: OK ({digest})")
    return 0
