from __future__ import annotations

from pathlib import Path

from gitrepo import commit_file, git, requires_git
from git_operations import GitGateway
from repo_state import Pulled, Repository, RunOptions, SyncStatus
from repo_sync import RepoSynchronizer
from run_coordinator import RunCoordinator

pytestmark = requires_git


def _sync(repo: Path, **options):
    return RepoSynchronizer(GitGateway(timeout=60)).process(Repository(path=repo), RunOptions(root=repo.parent, **options))


def test_clean_repository_is_already_up_to_date(clone) -> None:
    outcome = _sync(clone("Hx"))
    assert outcome.pulled is Pulled.NO
    assert outcome.label == "Already up to date"


def test_behind_repository_fast_forwards(clone, upstream: Path) -> None:
    repo = clone("Hx")
    commit_file(upstream, "b.txt", "b\n", "second")
    outcome = _sync(repo)
    assert outcome.status is SyncStatus.FAST_FORWARDED
    assert outcome.pulled is Pulled.YES
    assert (outcome.ahead, outcome.behind) == (0, 0)
    assert (repo / "b.txt").exists()


def test_dirty_repository_is_stashed_and_restored(clone, upstream: Path) -> None:
    repo = clone("Hy")
    commit_file(upstream, "b.txt", "b\n", "second")
    (repo / "wip.txt").write_text("wip\n", encoding="utf-8")
    outcome = _sync(repo, stash_dirty=True)
    assert outcome.label.endswith(" (Stash restored)")
    assert outcome.pulled is Pulled.YES
    assert outcome.dirty is False
    assert (repo / "wip.txt").read_text(encoding="utf-8") == "wip\n"
    assert (repo / "b.txt").exists()
    assert git(["stash", "list"], cwd=repo).strip() == ""


def test_conflicting_stash_is_reported_and_left_dirty(clone, upstream: Path) -> None:
    repo = clone("Hz")
    commit_file(upstream, "README.md", "upstream change\n", "second")
    (repo / "README.md").write_text("local change\n", encoding="utf-8")
    outcome = _sync(repo, stash_dirty=True)
    assert outcome.status is SyncStatus.FAST_FORWARDED
    assert outcome.label.endswith(" (Stash conflicts)")
    assert outcome.dirty is True
    assert outcome.failed


def test_local_branch_without_remote_counterpart(clone) -> None:
    repo = clone("Hx")
    git(["checkout", "-q", "-b", "feature"], cwd=repo)
    outcome = _sync(repo)
    assert outcome.label == "No remote branch origin/feature"
    assert outcome.pulled is Pulled.NO


def test_repository_without_origin(tmp_path: Path) -> None:
    repo = tmp_path / "Hlocal"
    repo.mkdir()
    git(["init", "-q"], cwd=repo)
    outcome = _sync(repo)
    assert outcome.pulled is Pulled.NO_ORIGIN
    assert not outcome.has_remote


def test_dirty_skip_leaves_repository_alone(clone, upstream: Path) -> None:
    repo = clone("Hx")
    commit_file(upstream, "b.txt", "b\n", "second")
    (repo / "wip.txt").write_text("wip\n", encoding="utf-8")
    outcome = _sync(repo, skip_dirty=True)
    assert outcome.status is SyncStatus.DIRTY_SKIPPED
    assert not (repo / "b.txt").exists()


def test_diverged_branch_rebases_when_asked(clone, upstream: Path) -> None:
    repo = clone("Hx")
    commit_file(upstream, "b.txt", "b\n", "second")
    commit_file(repo, "c.txt", "c\n", "local")
    assert _sync(repo).status is SyncStatus.PULL_FAILED
    outcome = _sync(repo, use_rebase=True)
    assert outcome.status is SyncStatus.REBASED
    assert (outcome.ahead, outcome.behind) == (1, 0)


def test_rebase_conflict_is_aborted(clone, upstream: Path) -> None:
    repo = clone("Hx")
    commit_file(upstream, "README.md", "upstream\n", "second")
    commit_file(repo, "README.md", "local\n", "local")
    outcome = _sync(repo, use_rebase=True)
    assert outcome.status is SyncStatus.PULL_FAILED
    assert GitGateway().rebase_in_progress(repo) is False
    assert (repo / "README.md").read_text(encoding="utf-8") == "local\n"


def test_coordinator_over_a_directory_of_clones(clone, tmp_path: Path, upstream: Path) -> None:
    clone("Hb")
    clone("Ha")
    clone("skipped-by-prefix")
    commit_file(upstream, "b.txt", "b\n", "second")
    result = RunCoordinator(GitGateway(timeout=60)).run(RunOptions(root=tmp_path / "work", prefix="H"))
    assert sorted(outcome.name for outcome in result.outcomes) == ["Ha", "Hb"]
    assert all(outcome.status is SyncStatus.FAST_FORWARDED for outcome in result.outcomes)
    assert result.failures == []
