import subprocess
from unittest import mock

import pytest

from roxapi.version import build_info, compute_version, run_git, uncommitted_count


def _done(args, stdout=b"", returncode=0):
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=b"")


def _fake_git(outputs, failing=()):
    def run(command, **kwargs):
        key = tuple(command[1:])
        if key in failing:
            return _done(command, returncode=128)
        return _done(command, outputs[key])

    return run


@pytest.mark.parametrize(
    "pkg_version, build_type",
    [
        ("0.1.0", "stable"),
        ("0.2.0-alpha", "alpha"),
        ("0.2.0-beta", "beta"),
        ("0.2.0-rc", "pre-release"),
    ],
)
def test_compute_version_tagged(pkg_version, build_type):
    version, kind = compute_version(pkg_version, f"v{pkg_version}", "abc1234", 0)
    assert version == pkg_version
    assert kind == build_type


def test_compute_version_dev():
    version, kind = compute_version("0.1.0", "v0.0.9-3-gabc1234", "abc1234", 0)
    assert version == "0.1.0-dev_abc1234"
    assert kind == "dev"


def test_compute_version_uncommitted():
    version, kind = compute_version("0.1.0", "v0.1.0", "abc1234", 2)
    assert version == "0.1.0-uncommitted"
    assert kind == "dev-uncommitted"
    dev_version, dev_kind = compute_version("0.1.0", "unknown", "abc1234", 1)
    assert dev_version.endswith("-uncommitted")
    assert dev_version.startswith("0.1.0-dev_abc1234")
    assert dev_kind == "dev-uncommitted"


def test_run_git_strips_output():
    with mock.patch("subprocess.run", return_value=_done([], b"  v1.0.0\n")) as run:
        assert run_git(["describe", "--tags"]) == "v1.0.0"
    assert run.call_args.args[0] == ["git", "describe", "--tags"]


def test_run_git_failure_raises():
    with mock.patch("subprocess.run", return_value=_done([], returncode=1)):
        with pytest.raises(RuntimeError, match="Execute git command git status -s failed"):
            run_git(["status", "-s"])


def test_run_git_missing_binary_raises():
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("git")):
        with pytest.raises(RuntimeError):
            run_git(["status"])


def test_uncommitted_count_ignores_blank_lines():
    output = b" M src/a.rs\n?? new.txt\n\n   \n"
    with mock.patch("subprocess.run", return_value=_done([], output)):
        assert uncommitted_count() == 2


def test_uncommitted_count_clean_tree():
    with mock.patch("subprocess.run", return_value=_done([], b"\n")):
        assert uncommitted_count() == 0


def test_build_info_stable():
    outputs = {
        ("describe", "--tags"): b"v0.1.0\n",
        ("rev-parse", "HEAD"): b"0123456789abcdef\n",
        ("rev-parse", "--short", "HEAD"): b"0123456\n",
        ("status", "-s"): b"",
    }
    with mock.patch("subprocess.run", side_effect=_fake_git(outputs)):
        info = build_info("0.1.0")
    assert info.version == "0.1.0"
    assert info.build_type == "stable"
    assert info.sha == "0123456789abcdef"
    assert info.target


def test_build_info_without_tags_is_dev():
    outputs = {
        ("rev-parse", "HEAD"): b"0123456789abcdef\n",
        ("rev-parse", "--short", "HEAD"): b"0123456\n",
        ("status", "-s"): b" M file\n",
    }
    fake = _fake_git(outputs, failing={("describe", "--tags")})
    with mock.patch("subprocess.run", side_effect=fake):
        info = build_info("0.1.0")
    assert info.version == "0.1.0-dev_0123456-uncommitted"
    assert info.build_type == "dev-uncommitted"


def test_build_info_requires_head():
    outputs = {("describe", "--tags"): b"v0.1.0\n"}
    fake = _fake_git(outputs, failing={("rev-parse", "HEAD")})
    with mock.patch("subprocess.run", side_effect=fake):
        with pytest.raises(RuntimeError, match="rev-parse HEAD"):
            build_info("0.1.0")