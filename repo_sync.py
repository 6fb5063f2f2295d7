#!/usr/bin/env python3
"""Drive a single repository through the fetch / pull / stash pipeline."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from git_operations import GitGateway
from repo_state import (
    Pulled,
    Repository,
    RunOptions,
    StashRecord,
    StashResult,
    SyncOutcome,
    SyncStatus,
)
from retry_policy import RetryPolicy
from sync_policy import Action, SyncState, decide

logger = logging.getLogger(__name__)


class RepoSynchronizer:
    """Synchronize one repository at a time.

    Steps run strictly in order: status, remote check, dirty skip, stash push,
    fetch, ahead/behind, pull, stash pop. A pushed stash is always popped
    before ``process`` returns, whatever happened in between.
    """

    def __init__(self, gateway: Optional[GitGateway] = None, retry: Optional[RetryPolicy] = None) -> None:
        self.gateway = gateway or GitGateway()
        self.retry = retry

    def _retry_for(self, options: RunOptions) -> RetryPolicy:
        return self.retry or RetryPolicy(max_attempts=max(1, options.fetch_attempts))

    def process(self, repo: Repository, options: RunOptions) -> SyncOutcome:
        outcome = SyncOutcome(
            name=repo.name,
            path=repo.path,
            branch=repo.current_branch,
            dirty_before=repo.is_dirty,
            status=SyncStatus.ERROR,
            has_remote=repo.has_remote,
        )
        stash: Optional[StashRecord] = None
        try:
            status = self.gateway.get_status(repo.path)
            repo.current_branch = status.branch
            repo.is_dirty = status.dirty
            repo.has_remote = self.gateway.has_remote(repo.path, options.remote)
            outcome.branch = repo.current_branch
            outcome.dirty_before = repo.is_dirty
            outcome.has_remote = repo.has_remote

            state = SyncState(dirty=repo.is_dirty, has_remote=repo.has_remote, detached=repo.detached)
            action = decide(state, options)

            if action is Action.NO_REMOTE_ABORT:
                outcome.status = SyncStatus.NO_ORIGIN
                outcome.pulled = Pulled.NO_ORIGIN
                return outcome
            if action is Action.DIRTY_SKIP:
                outcome.status = SyncStatus.DIRTY_SKIPPED
                outcome.pulled = Pulled.SKIPPED
                return outcome
            if action is Action.DIRTY_STASH:
                pushed = self.gateway.stash_push(repo.path)
                stash = pushed.record
                if pushed.failed:
                    outcome.messages.append(f"Stash failed ({pushed.note}); syncing with local changes in place")
                elif stash is None:
                    outcome.messages.append("Nothing was stashed; syncing with local changes in place")
                else:
                    outcome.messages.append(f"Stashed local changes as '{stash.message}'")
                    repo.is_dirty = self.gateway.get_status(repo.path).dirty
                    outcome.dirty_after = repo.is_dirty
                state = replace(state, stashed=True)

            fetched = self._retry_for(options).run(
                lambda: self.gateway.fetch(repo.path, options.fetch_all_remotes, options.remote),
                label=f"fetch {repo.name}",
            )
            if not fetched.ok:
                outcome.status = SyncStatus.FETCH_FAILED
                suffix = "s" if fetched.attempts != 1 else ""
                outcome.messages.append(f"Fetch failed after {fetched.attempts} attempt{suffix}")
                return outcome

            self._refresh_counts(repo, options)
            remote_exists = not repo.detached and self.gateway.remote_branch_exists(
                repo.path, repo.current_branch, options.remote
            )
            state = replace(
                state,
                fetched=True,
                ahead=repo.ahead,
                behind=repo.behind,
                remote_branch_exists=remote_exists,
            )
            self._integrate(repo, decide(state, options), options, outcome)
            return outcome
        except Exception as exc:
            logger.warning("Processing %s aborted: %s", repo.name, exc)
            outcome.status = SyncStatus.ERROR
            outcome.pulled = Pulled.NO
            outcome.messages.append(f"{type(exc).__name__}: {exc}")
            return outcome
        finally:
            if stash is not None:
                self._restore(repo, stash, outcome)
            outcome.ahead = repo.ahead
            outcome.behind = repo.behind

    def _refresh_counts(self, repo: Repository, options: RunOptions) -> None:
        repo.ahead, repo.behind = self.gateway.ahead_behind(repo.path, repo.current_branch, options.remote)

    def _integrate(self, repo: Repository, action: Action, options: RunOptions, outcome: SyncOutcome) -> None:
        if action is Action.DETACHED_HEAD:
            outcome.status = SyncStatus.DETACHED_HEAD
            outcome.pulled = Pulled.SKIPPED
            return
        if action is Action.FETCH_ONLY:
            outcome.status = SyncStatus.FETCH_ONLY
            outcome.pulled = Pulled.SKIPPED
            return
        if action is Action.NO_REMOTE_BRANCH:
            outcome.status = SyncStatus.NO_REMOTE_BRANCH
            outcome.status_detail = f"{options.remote}/{repo.current_branch}"
            return
        if action is Action.ALREADY_UP_TO_DATE:
            outcome.status = SyncStatus.ALREADY_UP_TO_DATE
            return

        rebase = action is Action.REBASE
        result = self.gateway.pull(repo.path, repo.current_branch, rebase=rebase, remote=options.remote)
        if result.ok:
            outcome.status = SyncStatus.REBASED if rebase else SyncStatus.FAST_FORWARDED
            outcome.pulled = Pulled.YES
            self._refresh_counts(repo, options)
            return

        if result.failure == "missing_remote_branch":
            outcome.status = SyncStatus.NO_REMOTE_BRANCH
            outcome.status_detail = f"{options.remote}/{repo.current_branch}"
        elif result.failure == "conflict":
            outcome.status = SyncStatus.PULL_FAILED
        else:
            outcome.status = SyncStatus.PULL_ERROR
        if result.note:
            outcome.messages.append(result.note)
        if rebase and self.gateway.rebase_in_progress(repo.path):
            if self.gateway.abort_rebase(repo.path):
                outcome.messages.append("Rebase aborted; branch left as it was before the pull")
            else:
                outcome.messages.append("Rebase left in progress; resolve manually")

    def _restore(self, repo: Repository, stash: StashRecord, outcome: SyncOutcome) -> None:
        if self.gateway.stash_pop(repo.path):
            outcome.stash = StashResult.RESTORED
            return
        outcome.stash = StashResult.CONFLICTS
        outcome.messages.append(f"Stash '{stash.message}' did not apply cleanly; resolve manually")
        repo.is_dirty = self.gateway.get_status(repo.path).dirty
        outcome.dirty_after = repo.is_dirty
