"""
Entry point for running crossrelease as a module.

Usage: python -m crossrelease [command] [options]
"""

from crossrelease.cli.parser import main

if __name__ == "__main__":
    main()
