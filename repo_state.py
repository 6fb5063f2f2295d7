#!/usr/bin/env python3
"""Shared repository state model."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


DETACHED = "(detached)"


class Pulled(Enum):
    YES = "Yes"
    NO = "No"
    SKIPPED = "Skipped"
    NO_ORIGIN = "NoOrigin"


class Tone(Enum):
    """Rendering family of a status."""

    OK = "ok"
    FAIL = "fail"
    WARN = "warn"
    NEUTRAL = "neutral"


class SyncStatus(Enum):
    NO_ORIGIN = "NoOrigin"
    DIRTY_SKIPPED = "DirtySkipped"
    FETCH_FAILED = "FetchFailed"
    FETCH_ONLY = "FetchOnly"
    DETACHED_HEAD = "DetachedHead"
    NO_REMOTE_BRANCH = "NoRemoteBranch"
    ALREADY_UP_TO_DATE = "AlreadyUpToDate"
    FAST_FORWARDED = "FastForward"
    REBASED = "Rebase"
    PULL_FAILED = "PullFailed"
    PULL_ERROR = "PullError"
    ERROR = "Error"

    @property
    def tone(self) -> Tone:
        return _STATUS_TONES[self]

    @property
    def is_failure(self) -> bool:
        return self in (
            SyncStatus.FETCH_FAILED,
            SyncStatus.PULL_FAILED,
            SyncStatus.PULL_ERROR,
            SyncStatus.ERROR,
        )


_STATUS_TONES = {
    SyncStatus.NO_ORIGIN: Tone.NEUTRAL,
    SyncStatus.DIRTY_SKIPPED: Tone.WARN,
    SyncStatus.FETCH_FAILED: Tone.FAIL,
    SyncStatus.FETCH_ONLY: Tone.NEUTRAL,
    SyncStatus.DETACHED_HEAD: Tone.NEUTRAL,
    SyncStatus.NO_REMOTE_BRANCH: Tone.NEUTRAL,
    SyncStatus.ALREADY_UP_TO_DATE: Tone.OK,
    SyncStatus.FAST_FORWARDED: Tone.OK,
    SyncStatus.REBASED: Tone.OK,
    SyncStatus.PULL_FAILED: Tone.FAIL,
    SyncStatus.PULL_ERROR: Tone.FAIL,
    SyncStatus.ERROR: Tone.FAIL,
}

_STATUS_LABELS = {
    SyncStatus.NO_ORIGIN: "No origin remote",
    SyncStatus.DIRTY_SKIPPED: "Skipped (dirty)",
    SyncStatus.FETCH_FAILED: "Fetch failed",
    SyncStatus.FETCH_ONLY: "Fetched (pull disabled)",
    SyncStatus.DETACHED_HEAD: "Detached HEAD, pull skipped",
    SyncStatus.NO_REMOTE_BRANCH: "No remote branch {detail}",
    SyncStatus.ALREADY_UP_TO_DATE: "Already up to date",
    SyncStatus.FAST_FORWARDED: "Fast-forwarded",
    SyncStatus.REBASED: "Rebased",
    SyncStatus.PULL_FAILED: "Pull failed",
    SyncStatus.PULL_ERROR: "Pull error",
    SyncStatus.ERROR: "Error",
}


class StashResult(Enum):
    NONE = "none"
    RESTORED = "restored"
    CONFLICTS = "conflicts"


@dataclass(frozen=True)
class RunOptions:
    root: Path
    prefix: str = ""
    no_pull: bool = False
    skip_dirty: bool = False
    stash_dirty: bool = False
    use_rebase: bool = False
    fetch_all_remotes: bool = False
    verbose: bool = False
    remote: str = "origin"
    timeout: float = 300.0
    jobs: int = 1
    fetch_attempts: int = 1


@dataclass
class Repository:
    path: Path
    current_branch: str = DETACHED
    has_remote: bool = False
    is_dirty: bool = False
    ahead: int = 0
    behind: int = 0

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def detached(self) -> bool:
        return self.current_branch.startswith("(detached")


@dataclass(frozen=True)
class StashRecord:
    ref: str
    message: str


@dataclass
class SyncOutcome:
    name: str
    path: Path
    branch: str
    dirty_before: bool
    status: SyncStatus
    pulled: Pulled = Pulled.NO
    has_remote: bool = True
    dirty_after: Optional[bool] = None
    status_detail: str = ""
    stash: StashResult = StashResult.NONE
    ahead: int = 0
    behind: int = 0
    messages: List[str] = field(default_factory=list)

    @property
    def dirty(self) -> bool:
        """Dirty state at the end of the run."""
        return self.dirty_before if self.dirty_after is None else self.dirty_after

    @property
    def tone(self) -> Tone:
        if self.stash is StashResult.CONFLICTS and self.status.tone is not Tone.FAIL:
            return Tone.WARN
        return self.status.tone

    @property
    def up_to_date(self) -> bool:
        return self.status is SyncStatus.ALREADY_UP_TO_DATE and self.stash is StashResult.NONE

    @property
    def failed(self) -> bool:
        return self.status.is_failure or self.stash is StashResult.CONFLICTS

    @property
    def label(self) -> str:
        text = _STATUS_LABELS[self.status].format(detail=self.status_detail)
        if self.stash is StashResult.RESTORED:
            text += " (Stash restored)"
        elif self.stash is StashResult.CONFLICTS:
            text += " (Stash conflicts)"
        return text
