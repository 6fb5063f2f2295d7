from __future__ import annotations

from pathlib import Path

import pytest

from gitrepo import commit_file, git, set_identity


@pytest.fixture
def upstream(tmp_path: Path) -> Path:
    """A repository with one commit on main, used as the clone source."""
    repo = tmp_path / "upstream"
    repo.mkdir()
    git(["init", "-q"], cwd=repo)
    git(["symbolic-ref", "HEAD", "refs/heads/main"], cwd=repo)
    set_identity(repo)
    commit_file(repo, "README.md", "hello\n", "init")
    return repo


@pytest.fixture
def clone(tmp_path: Path, upstream: Path):
    """Factory that clones the upstream fixture into tmp_path/work/<name>."""

    def _clone(name: str = "work") -> Path:
        target = tmp_path / "work" / name
        target.parent.mkdir(exist_ok=True)
        git(["clone", "-q", str(upstream), str(target)], cwd=tmp_path)
        set_identity(target)
        return target

    return _clone
