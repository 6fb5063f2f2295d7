#!/usr/bin/env python3
"""Decide what to do with a repository given its state and the run options.

The policy is a pure function: it never calls git. The synchronizer calls
``decide`` twice, once before fetching (to pick abort, skip, stash or fetch)
and once afterwards (to pick the integration step), feeding back what it has
already done through ``SyncState.stashed`` and ``SyncState.fetched``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from repo_state import RunOptions


class Action(Enum):
    NO_REMOTE_ABORT = "NoRemoteAbort"
    DIRTY_SKIP = "DirtySkip"
    DIRTY_STASH = "DirtyStash"
    FETCH = "Fetch"
    DETACHED_HEAD = "DetachedHead"
    FETCH_ONLY = "FetchOnly"
    NO_REMOTE_BRANCH = "NoRemoteBranch"
    ALREADY_UP_TO_DATE = "AlreadyUpToDate"
    FAST_FORWARD = "FastForward"
    REBASE = "Rebase"

    @property
    def pulls(self) -> bool:
        return self in (Action.FAST_FORWARD, Action.REBASE)


@dataclass(frozen=True)
class SyncState:
    dirty: bool
    has_remote: bool
    detached: bool = False
    ahead: int = 0
    behind: int = 0
    remote_branch_exists: bool = True
    stashed: bool = False
    fetched: bool = False


def decide(state: SyncState, options: RunOptions) -> Action:
    if not state.has_remote:
        return Action.NO_REMOTE_ABORT
    # skip-dirty wins over stash-dirty when both are set
    if state.dirty and options.skip_dirty:
        return Action.DIRTY_SKIP
    if state.dirty and options.stash_dirty and not state.stashed:
        return Action.DIRTY_STASH
    if not state.fetched:
        return Action.FETCH

    if state.detached:
        return Action.DETACHED_HEAD
    if options.no_pull:
        return Action.FETCH_ONLY
    if not state.remote_branch_exists:
        return Action.NO_REMOTE_BRANCH
    if state.behind == 0:
        return Action.ALREADY_UP_TO_DATE
    return Action.REBASE if options.use_rebase else Action.FAST_FORWARD
