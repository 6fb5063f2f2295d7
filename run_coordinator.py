#!/usr/bin/env python3
"""Run the synchronizer over every repository found under a root."""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from git_operations import GitGateway, InvalidRootError
from repo_scanner import RepoScanner
from repo_state import RunOptions, SyncOutcome
from repo_sync import RepoSynchronizer

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, SyncOutcome], None]


@dataclass
class RunResult:
    outcomes: List[SyncOutcome] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def failures(self) -> List[SyncOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]


class RunCoordinator:
    """Scan, synchronize and report, one repository after another."""

    def __init__(
        self,
        gateway: Optional[GitGateway] = None,
        scanner: Optional[RepoScanner] = None,
        synchronizer: Optional[RepoSynchronizer] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.gateway = gateway or GitGateway()
        self.scanner = scanner or RepoScanner(self.gateway)
        self.synchronizer = synchronizer or RepoSynchronizer(self.gateway)
        self.clock = clock

    def run(self, options: RunOptions, on_progress: Optional[ProgressCallback] = None) -> RunResult:
        root = options.root.expanduser()
        if not root.exists():
            raise InvalidRootError(f"Root directory '{root}' not found")
        if not root.is_dir():
            raise InvalidRootError(f"Root path '{root}' is not a directory")

        started = self.clock()
        repos = self.scanner.scan(root, options.prefix)
        result = RunResult()
        total = len(repos)

        if options.jobs > 1 and total > 1:
            # map() yields in submission order, so progress still follows scan order
            with ThreadPoolExecutor(max_workers=min(options.jobs, total)) as pool:
                outcomes = pool.map(lambda repo: self.synchronizer.process(repo, options), repos)
                for index, outcome in enumerate(outcomes, start=1):
                    self._record(result, index, total, outcome, on_progress)
        else:
            for index, repo in enumerate(repos, start=1):
                outcome = self.synchronizer.process(repo, options)
                self._record(result, index, total, outcome, on_progress)

        result.elapsed = self.clock() - started
        logger.debug("Processed %d repositories in %.2fs", total, result.elapsed)
        return result

    @staticmethod
    def _record(
        result: RunResult,
        index: int,
        total: int,
        outcome: SyncOutcome,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        result.outcomes.append(outcome)
        if on_progress is not None:
            on_progress(index, total, outcome)
