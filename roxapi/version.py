"""Version information derived from the state of the git checkout."""

from __future__ import annotations

import subprocess
import sysconfig
from dataclasses import dataclass


@dataclass(frozen=True)
class BuildInfo:
    """Version, build type, commit and target of this build."""

    version: str
    build_type: str
    sha: str
    target: str


def run_git(args):
    """Run ``git`` with ``args`` and return its stripped standard output."""
    command = ["git", *args]
    failure = f"Execute git command {' '.join(command)} failed"
    try:
        result = subprocess.run(command, capture_output=True, check=False)
    except OSError as exc:
        raise RuntimeError(failure) from exc
    if result.returncode != 0:
        raise RuntimeError(failure)
    try:
        output = result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise RuntimeError(f"decode output of git {' '.join(args)}") from exc
    return output.strip()


def uncommitted_count():
    """Return the number of changed files reported by ``git status -s``."""
    output = run_git(["status", "-s"])
    return sum(1 for line in output.splitlines() if line.strip())


def compute_version(pkg_version, describe, short_sha, uncommitted):
    """Return ``(version, build_type)`` for a package version and git state."""
    if describe == f"v{pkg_version}":
        version = pkg_version
        if pkg_version.endswith("alpha"):
            build_type = "alpha"
        elif pkg_version.endswith("beta"):
            build_type = "beta"
        elif pkg_version.endswith("rc"):
            build_type = "pre-release"
        else:
            build_type = "stable"
    else:
        version = f"{pkg_version}-dev_{short_sha}"
        build_type = "dev"

    if uncommitted > 0:
        version = f"{version}-uncommitted"
        build_type = "dev-uncommitted"
    return version, build_type


def build_info(pkg_version):
    """Collect build information from the git checkout in the working directory."""
    try:
        describe = run_git(["describe", "--tags"])
    except RuntimeError:
        describe = "unknown"
    sha = run_git(["rev-parse", "HEAD"])
    short_sha = run_git(["rev-parse", "--short", "HEAD"])
    version, build_type = compute_version(pkg_version, describe, short_sha, uncommitted_count())
    return BuildInfo(
        version=version,
        build_type=build_type,
        sha=sha,
        target=sysconfig.get_platform(),
    )