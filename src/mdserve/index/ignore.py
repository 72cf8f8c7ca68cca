"""Version-control ignore filtering for content scans."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Protocol, Sequence

LOGGER = logging.getLogger(__name__)

GIT = "git"
NOT_A_REPOSITORY = 128


class IgnoreFilterError(RuntimeError):
    """Raised when the ignore check cannot be completed."""


class IgnoreFilter(Protocol):
    def __call__(self, root: Path, paths: Sequence[str]) -> List[str]:
        """Return the subset of ``paths`` (relative to ``root``) that is ignored."""
        ...


class NullIgnoreFilter:
    """Used when git is unavailable: nothing is ignored."""

    def __call__(self, root: Path, paths: Sequence[str]) -> List[str]:
        return []


class GitIgnoreFilter:
    """Ask ``git check-ignore`` which candidate paths are ignored."""

    def __init__(self, executable: str = GIT) -> None:
        self.executable = executable

    def __call__(self, root: Path, paths: Sequence[str]) -> List[str]:
        if not paths:
            return []

        # NUL-separated on stdin and stdout, so git never quotes a path.
        args = [self.executable, "check-ignore", "--stdin", "-z"]
        LOGGER.debug("Running %s with %d paths in %s", self.executable, len(paths), root)
        try:
            result = subprocess.run(
                args,
                cwd=root,
                input="\0".join(paths).encode("utf-8"),
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise IgnoreFilterError(f"Unable to run {self.executable}: {exc}") from exc

        # 0: some paths ignored, 1: none ignored
        if result.returncode == NOT_A_REPOSITORY:
            raise IgnoreFilterError(
                "'git check-ignore' exited unsuccessfully with output:\n"
                f"stdout: {_decode(result.stdout)}\nstderr: {_decode(result.stderr)}"
            )
        if result.returncode not in (0, 1):
            raise IgnoreFilterError(
                f"'git check-ignore' exited with status {result.returncode}: "
                f"{_decode(result.stderr).strip()}"
            )

        try:
            output = result.stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise IgnoreFilterError(f"Undecodable output from git: {exc}") from exc
        return [item for item in output.split("\0") if item]


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def git_available() -> bool:
    return shutil.which(GIT) is not None


def select_ignore_filter(enabled: bool = True) -> IgnoreFilter:
    """Pick the git-backed filter when git is on PATH, otherwise the no-op one."""
    if enabled and git_available():
        return GitIgnoreFilter()
    if enabled:
        LOGGER.info("git not found on PATH; ignore rules will not be applied")
    return NullIgnoreFilter()
