#!/usr/bin/env python3
"""Git command helpers for the repository sync tool."""
from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

from repo_state import DETACHED, StashRecord

logger = logging.getLogger(__name__)

ERROR_PREFIXES = ("error:", "fatal:")
CONFLICT_MARKERS = ("CONFLICT", "merge conflict")
DIVERGENCE_MARKERS = ("divergent branches", "Not possible to fast-forward")
MISSING_REF_MARKERS = ("couldn't find remote ref",)
NOTHING_TO_STASH = "No local changes to save"


class UpdateReposError(Exception):
    """Raised for recoverable update-repos errors."""


class InvalidRootError(UpdateReposError):
    """Raised when the root path is missing or not a directory."""


@dataclass(frozen=True)
class GitResult:
    args: Tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def lines(self) -> list[str]:
        return [line.strip() for line in self.output.splitlines() if line.strip()]


@dataclass(frozen=True)
class BranchStatus:
    branch: str
    dirty: bool


@dataclass(frozen=True)
class PullResult:
    ok: bool
    note: str = ""
    failure: str = ""  # "", "missing_remote_branch", "conflict" or "error"


@dataclass(frozen=True)
class StashPush:
    """Result of a stash push: a record when something was stashed, failed=True when git refused."""

    record: Optional[StashRecord] = None
    failed: bool = False
    note: str = ""


def git_environment(base: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Snapshot of the environment handed to every git invocation."""
    env = dict(os.environ if base is None else base)
    env["GIT_TERMINAL_PROMPT"] = "0"
    env["LC_ALL"] = "C"
    return env


def first_diagnostic(lines: Sequence[str]) -> str:
    for line in lines:
        if line.startswith(ERROR_PREFIXES) or any(marker in line for marker in CONFLICT_MARKERS):
            return line
    for line in lines:
        if any(marker in line for marker in DIVERGENCE_MARKERS + MISSING_REF_MARKERS):
            return line
    return lines[0] if lines else ""


def classify_pull_output(result: GitResult) -> PullResult:
    """Turn pull output into a PullResult; error markers override a zero exit."""
    lines = result.lines()
    text = result.output
    note = first_diagnostic(lines)
    if any(marker in text for marker in MISSING_REF_MARKERS):
        return PullResult(ok=False, note=note, failure="missing_remote_branch")
    if any(marker in text for marker in CONFLICT_MARKERS + DIVERGENCE_MARKERS):
        return PullResult(ok=False, note=note, failure="conflict")
    if not result.ok or any(line.startswith(ERROR_PREFIXES) for line in lines):
        return PullResult(ok=False, note=note or f"git exited with status {result.returncode}", failure="error")
    return PullResult(ok=True, note=lines[-1] if lines else "")


class GitGateway:
    """Thin wrappers around git invocations that never raise on expected failures."""

    def __init__(self, timeout: float = 300.0, env: Optional[Mapping[str, str]] = None) -> None:
        self.timeout = timeout
        self.env = git_environment(env)

    def run(self, args: Sequence[str], *, cwd: Path) -> GitResult:
        """Run git and capture output. OS errors and timeouts become returncode -1."""
        logger.debug("git %s (in %s)", " ".join(args), cwd)
        try:
            proc = subprocess.run(
                ["git", *args],
                cwd=str(cwd),
                check=False,
                text=True,
                encoding="utf-8",
                errors="replace",
                capture_output=True,
                env=self.env,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("git %s timed out after %ss in %s", " ".join(args), self.timeout, cwd)
            return GitResult(tuple(args), -1, "", f"error: timed out after {self.timeout}s")
        except OSError as exc:
            logger.warning("git %s could not be started in %s: %s", " ".join(args), cwd, exc)
            return GitResult(tuple(args), -1, "", f"error: {exc}")
        return GitResult(tuple(args), proc.returncode, proc.stdout or "", proc.stderr or "")

    def git_ok(self, args: Sequence[str], *, cwd: Path) -> bool:
        """Return True when git exits with status 0."""
        return self.run(args, cwd=cwd).ok

    def is_repository(self, path: Path) -> bool:
        return (path / ".git").exists()

    def get_status(self, path: Path) -> BranchStatus:
        branch = self.run(["symbolic-ref", "--short", "-q", "HEAD"], cwd=path).stdout.strip()
        if not branch:
            rev = self.run(["rev-parse", "--short", "HEAD"], cwd=path)
            short = rev.stdout.strip() if rev.ok else ""
            if not short:
                logger.warning("Could not resolve HEAD in %s", path)
            branch = f"(detached at {short})" if short else DETACHED

        status = self.run(["status", "--porcelain"], cwd=path)
        if not status.ok:
            logger.warning("Could not read working tree status of %s; assuming clean", path)
            return BranchStatus(branch=branch, dirty=False)
        return BranchStatus(branch=branch, dirty=bool(status.stdout.strip()))

    def has_remote(self, path: Path, name: str = "origin") -> bool:
        result = self.run(["remote"], cwd=path)
        if not result.ok:
            logger.warning("Could not list remotes of %s", path)
            return False
        return name in result.stdout.split()

    def remote_branch_exists(self, path: Path, branch: str, remote: str = "origin") -> bool:
        return self.git_ok(["show-ref", "--verify", "--quiet", f"refs/remotes/{remote}/{branch}"], cwd=path)

    def fetch(self, path: Path, all_remotes: bool = False, remote: str = "origin") -> bool:
        args = ["fetch", "--all", "--prune"] if all_remotes else ["fetch", "--prune", remote]
        result = self.run(args, cwd=path)
        failed_lines = [line for line in result.lines() if line.startswith(ERROR_PREFIXES)]
        if not result.ok or failed_lines:
            logger.warning("Fetch failed in %s: %s", path, first_diagnostic(failed_lines or result.lines()))
            return False
        return True

    def ahead_behind(self, path: Path, branch: str, remote: str = "origin") -> Tuple[int, int]:
        if branch.startswith("(detached") or not self.remote_branch_exists(path, branch, remote):
            return 0, 0
        result = self.run(["rev-list", "--left-right", "--count", f"{branch}...{remote}/{branch}"], cwd=path)
        parts = result.stdout.split()
        if not result.ok or len(parts) != 2:
            logger.warning("Could not compute ahead/behind for %s in %s", branch, path)
            return 0, 0
        try:
            return int(parts[0]), int(parts[1])
        except ValueError:
            logger.warning("Unexpected rev-list output in %s: %r", path, result.stdout)
            return 0, 0

    def pull(self, path: Path, branch: str, rebase: bool = False, remote: str = "origin") -> PullResult:
        mode = "--rebase" if rebase else "--ff-only"
        return classify_pull_output(self.run(["pull", mode, remote, branch], cwd=path))

    def rebase_in_progress(self, path: Path) -> bool:
        git_dir = self.run(["rev-parse", "--git-dir"], cwd=path).stdout.strip()
        if not git_dir:
            return False
        base = Path(git_dir) if Path(git_dir).is_absolute() else path / git_dir
        return (base / "rebase-merge").exists() or (base / "rebase-apply").exists()

    def abort_rebase(self, path: Path) -> bool:
        if self.git_ok(["rebase", "--abort"], cwd=path):
            return True
        logger.warning("git rebase --abort failed in %s", path)
        return False

    def stash_push(self, path: Path) -> StashPush:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S%z")
        message = f"update-repos autostash {stamp}"
        result = self.run(["stash", "push", "-u", "-m", message], cwd=path)
        if not result.ok:
            note = first_diagnostic(result.lines()) or f"git exited with status {result.returncode}"
            logger.warning("Stash failed in %s: %s", path, note)
            return StashPush(failed=True, note=note)
        if NOTHING_TO_STASH in result.output:
            return StashPush()
        ref = self.run(["rev-parse", "-q", "--verify", "refs/stash"], cwd=path).stdout.strip()
        return StashPush(record=StashRecord(ref=ref or "stash@{0}", message=message))

    def stash_pop(self, path: Path) -> bool:
        result = self.run(["stash", "pop"], cwd=path)
        if any(marker in result.output for marker in CONFLICT_MARKERS):
            logger.warning("Stash pop reported conflicts in %s", path)
            return False
        if not result.ok:
            logger.warning("Stash pop failed in %s: %s", path, first_diagnostic(result.lines()))
            return False
        return True
