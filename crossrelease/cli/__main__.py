"""
Entry point for running the crossrelease CLI as a module.

Usage: python -m crossrelease.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
