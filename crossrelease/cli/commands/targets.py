"""
Targets command implementation.

Lists the target triples that have a build profile.
"""

from crossrelease.cli.utils import safe_print
from crossrelease.cross.targets import resolve, supported_triples


def run(args) -> int:
    for triple in supported_triples():
        profile = resolve(triple)
        if profile.is_native:
            safe_print(f"{triple}  (native)")
        else:
            safe_print(
                f"{triple}  linker={profile.linker_binary} "
                f"packages={len(profile.required_packages)}"
            )
    return 0
