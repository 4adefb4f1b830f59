"""
Test command implementation.

Runs the project's test suite with cargo.
"""

import logging

from crossrelease.cli.utils import load_release_config, safe_print
from crossrelease.pipeline.release import run_tests

logger = logging.getLogger(__name__)


def run(args) -> int:
    config = load_release_config(args, source_dir=args.source)

    options = list(args.cargo_args or [])
    if options and options[0] == "--":
        options = options[1:]

    output = run_tests(config, options)
    safe_print(output.rstrip())
    return 0
