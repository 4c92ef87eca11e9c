"""Test configuration and fixtures."""

from pathlib import Path
from typing import Callable, Iterable

import pytest
from git import Actor, Repo
from typer.testing import CliRunner

AUTHOR = Actor("Test User", "test@example.com")


def configure_author(repo: Repo) -> None:
    """Set the commit identity used by merges and commits."""
    repo.config_writer().set_value("user", "name", AUTHOR.name).release()
    repo.config_writer().set_value("user", "email", AUTHOR.email).release()


def commit_file(repo: Repo, name: str, content: str) -> str:
    """Write a file into the work tree, commit it and return the new sha."""
    path = Path(repo.working_tree_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([name])
    repo.index.commit(f"Add {name}", author=AUTHOR, committer=AUTHOR)
    return repo.head.commit.hexsha


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def make_env(tmp_path: Path) -> Callable[..., tuple[Path, Path]]:
    """Build a local repository cloned against a bare remote.

    The returned factory takes the trunk name to create and any extra remote
    branch names that should point at the same commit.
    """

    def _make(trunk: str = "main", extra_remote: Iterable[str] = ()) -> tuple[Path, Path]:
        remote_path = tmp_path / "remote"
        local_path = tmp_path / "local"
        remote_path.mkdir()
        local_path.mkdir()

        Repo.init(remote_path, bare=True)
        local_repo = Repo.init(local_path)
        configure_author(local_repo)

        commit_file(local_repo, "README.md", "# Test Repository")
        local_repo.git.branch("-M", trunk)

        local_repo.create_remote("origin", url=str(remote_path))
        local_repo.git.push("-u", "origin", trunk)
        for name in extra_remote:
            local_repo.git.push("origin", f"{trunk}:{name}")
        local_repo.git.fetch("origin")

        return local_path, remote_path

    return _make


@pytest.fixture
def test_env(make_env: Callable[..., tuple[Path, Path]]) -> tuple[Path, Path]:
    """Create a main-trunk repository with a spread of branches and tags.

    Layout:
        main             trunk, pushed
        feature/one      pushed, has its own commit
        feature/two      local only
        feature/current  pushed, checked out
        feature/remote   exists only as origin/feature/remote
        v1.0, v1.1       local tags
    """
    local_path, remote_path = make_env("main")
    local_repo = Repo(local_path)
    main_branch = local_repo.heads.main

    def create_branch(name: str, push: bool = True) -> None:
        main_branch.checkout()
        local_repo.create_head(name).checkout()
        commit_file(local_repo, f"{name}.txt", f"{name} content")
        if push:
            local_repo.git.push("-u", "origin", name)

    create_branch("feature/one")
    create_branch("feature/two", push=False)
    create_branch("feature/remote")
    main_branch.checkout()
    local_repo.delete_head("feature/remote", force=True)
    create_branch("feature/current")

    local_repo.create_tag("v1.0", ref=main_branch.commit)
    local_repo.create_tag("v1.1", ref=main_branch.commit)

    return local_path, remote_path


@pytest.fixture
def advance_remote(tmp_path: Path) -> Callable[..., str]:
    """Push a new commit to a remote branch from a separate clone.

    Returns the sha of the pushed commit.
    """
    clones = []

    def _advance(remote_path: Path, branch: str = "main", name: str = "remote_change.txt") -> str:
        clone_path = tmp_path / f"clone{len(clones)}"
        clone = Repo.clone_from(str(remote_path), str(clone_path), branch=branch)
        clones.append(clone_path)
        configure_author(clone)
        sha = commit_file(clone, name, f"pushed to {branch}")
        clone.git.push("origin", branch)
        return sha

    return _advance
