"""Directory tree helpers for testing."""

from pathlib import Path
from typing import List, Union


def list_tree(root: Union[str, Path]) -> List[str]:
    """
    List every file and symlink under ``root`` as sorted relative POSIX paths.

    Example:
        >>> list_tree(sysroot)[:2]
        ['lib/aarch64-linux-gnu/libcap.so.2', 'lib/aarch64-linux-gnu/libcap.so.2.44']
    """
    root = Path(root)
    entries = [
        item.relative_to(root).as_posix()
        for item in root.rglob("*")
        if item.is_symlink() or not item.is_dir()
    ]
    return sorted(entries)
