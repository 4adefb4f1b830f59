"""
Doctor command for diagnosing build host issues.

Checks that cargo, rustup and, for cross targets, the cross linker are
installed on the host.
"""

import logging
import shutil
from dataclasses import dataclass
from typing import List, Optional

from crossrelease.cli.utils import load_release_config, safe_print
from crossrelease.cross.targets import TargetProfile, resolve

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Result of a health check."""

    name: str
    passed: bool
    message: str
    fix_command: Optional[str] = None


def check_tool(name: str, fix_command: Optional[str] = None) -> CheckResult:
    path = shutil.which(name)
    if path:
        return CheckResult(name=name, passed=True, message=path)
    return CheckResult(
        name=name, passed=False, message="not found in PATH", fix_command=fix_command
    )


def run_checks(profile: TargetProfile) -> List[CheckResult]:
    results = [
        check_tool("cargo", "Install Rust from https://rustup.rs"),
        check_tool("rustup", "Install Rust from https://rustup.rs"),
    ]
    if profile.linker_binary:
        results.append(
            check_tool(
                profile.linker_binary,
                f"apt-get install -y {' '.join(profile.toolchain_packages)}",
            )
        )
    return results


def run(args) -> int:
    config = load_release_config(args, target=args.target)
    profile = resolve(config.target)

    results = run_checks(profile)
    for result in results:
        status = "[OK]" if result.passed else "[FAIL]"
        safe_print(f"{status} {result.name}: {result.message}")
        if not result.passed and result.fix_command:
            safe_print(f"       fix: {result.fix_command}")

    return 0 if all(result.passed for result in results) else 1
