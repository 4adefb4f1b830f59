"""
crossrelease command-line interface.
"""

from crossrelease.cli.parser import CLI, main

__all__ = ["CLI", "main"]
