"""
crossrelease CLI argument parser.

This module implements the command-line interface for crossrelease using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from crossrelease.core.exceptions import CrossReleaseError
from crossrelease.core.locking import LockTimeout

try:
    from importlib.metadata import version

    __version__ = version("crossrelease")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """crossrelease command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="crossrelease",
            description="crossrelease - cross-target build and release orchestrator",
            epilog='Use "crossrelease COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        parser.add_argument(
            "--version", action="version", version=f"crossrelease {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./crossrelease.yaml)",
        )
        parser.add_argument(
            "--project-root",
            type=Path,
            metavar="PATH",
            default=Path.cwd(),
            help="Project root directory (default: current directory)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_build_command(subparsers)
        self._add_test_command(subparsers)
        self._add_targets_command(subparsers)
        self._add_resolve_command(subparsers)
        self._add_stage_command(subparsers)
        self._add_verify_command(subparsers)
        self._add_doctor_command(subparsers)

        return parser

    @staticmethod
    def _add_target_option(parser):
        parser.add_argument(
            "--target",
            metavar="TRIPLE",
            help="Target triple (default: $TARGET, then x86_64-unknown-linux-gnu)",
        )

    def _add_build_command(self, subparsers):
        """Add 'build' subcommand."""
        parser = subparsers.add_parser(
            "build",
            help="Build and package a release",
            description="Stage the sysroot, build the release binary and package it",
        )
        self._add_target_option(parser)
        parser.add_argument(
            "--tag", metavar="TAG", help="Release tag (default: $TAG, then 'latest')"
        )
        parser.add_argument(
            "--source", type=Path, metavar="DIR", help="Source directory to build"
        )
        parser.add_argument(
            "--output", type=Path, metavar="DIR", help="Directory to export artifacts to"
        )
        parser.add_argument("--name", metavar="NAME", help="Binary name")
        parser.add_argument(
            "--mirror", metavar="URL", help="Debian mirror for foreign packages"
        )
        parser.add_argument(
            "--cache-dir", type=Path, metavar="DIR", help="Cache root directory"
        )

    def _add_test_command(self, subparsers):
        """Add 'test' subcommand."""
        parser = subparsers.add_parser(
            "test",
            help="Run the project's tests",
            description="Run cargo test in an isolated copy of the source tree",
        )
        parser.add_argument(
            "--source", type=Path, metavar="DIR", help="Source directory to test"
        )
        parser.add_argument(
            "cargo_args",
            nargs=argparse.REMAINDER,
            help="Extra arguments passed to cargo test",
        )

    def _add_targets_command(self, subparsers):
        """Add 'targets' subcommand."""
        subparsers.add_parser(
            "targets",
            help="List supported target triples",
            description="List target triples with their own build profile",
        )

    def _add_resolve_command(self, subparsers):
        """Add 'resolve' subcommand."""
        parser = subparsers.add_parser(
            "resolve",
            help="Show the build profile and environment for a target",
            description="Resolve a target triple and print its profile and environment",
        )
        self._add_target_option(parser)
        parser.add_argument(
            "--sysroot",
            type=Path,
            metavar="DIR",
            default=Path("/build/sysroot"),
            help="Sysroot path used for the environment (default: /build/sysroot)",
        )
        parser.add_argument(
            "--packages", action="store_true", help="Also list required packages"
        )

    def _add_stage_command(self, subparsers):
        """Add 'stage' subcommand."""
        parser = subparsers.add_parser(
            "stage",
            help="Stage a target's sysroot",
            description="Fetch and extract a target's foreign packages into a directory",
        )
        self._add_target_option(parser)
        parser.add_argument(
            "--dest", type=Path, metavar="DIR", required=True, help="Sysroot directory"
        )
        parser.add_argument(
            "--mirror", metavar="URL", help="Debian mirror for foreign packages"
        )
        parser.add_argument(
            "--cache-dir", type=Path, metavar="DIR", help="Cache root directory"
        )

    def _add_verify_command(self, subparsers):
        """Add 'verify' subcommand."""
        parser = subparsers.add_parser(
            "verify",
            help="Verify a release archive against its checksum file",
            description="Verify a release archive against its checksum file",
        )
        parser.add_argument("archive", type=Path, help="Release archive")
        parser.add_argument(
            "--checksum",
            type=Path,
            metavar="FILE",
            help="Checksum file (default: ARCHIVE.sha256)",
        )

    def _add_doctor_command(self, subparsers):
        """Add 'doctor' subcommand."""
        parser = subparsers.add_parser(
            "doctor",
            help="Check the build host",
            description="Check that the tools a target's build needs are installed",
        )
        self._add_target_option(parser)

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130
        except CrossReleaseError as e:
            logger.error(str(e))
            return 1
        except LockTimeout as e:
            logger.error(f"Timed out waiting for lock {e}")
            return 1
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(level=level, format=format_str, force=True)

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "build": "crossrelease.cli.commands.build",
            "test": "crossrelease.cli.commands.test",
            "targets": "crossrelease.cli.commands.targets",
            "resolve": "crossrelease.cli.commands.resolve",
            "stage": "crossrelease.cli.commands.stage",
            "verify": "crossrelease.cli.commands.verify",
            "doctor": "crossrelease.cli.commands.doctor",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
