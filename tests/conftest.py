import io
import subprocess
from pathlib import Path

import pytest
from rich.console import Console

from multiclaude.config import EffectiveConfig
from multiclaude.tmux import FakeTmuxAdapter


def init_repo(path: Path) -> None:
    subprocess.run(["git", "init"], cwd=path, check=True, capture_output=True)
    subprocess.run(["git", "config", "user.name", "tester"], cwd=path, check=True)
    subprocess.run(["git", "config", "user.email", "tester@example.com"], cwd=path, check=True)
    (path / "README.md").write_text("demo", encoding="utf-8")
    subprocess.run(["git", "add", "README.md"], cwd=path, check=True)
    subprocess.run(["git", "commit", "-m", "init"], cwd=path, check=True, capture_output=True)


def branch_exists(repo: Path, branch: str) -> bool:
    result = subprocess.run(
        ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
        cwd=repo,
        capture_output=True,
    )
    return result.returncode == 0


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "MULTICLAUDE_WORKTREE_DIR",
        "MULTICLAUDE_TMUX_SESSION",
        "MULTICLAUDE_REPO_NAME",
        "MULTICLAUDE_DEFAULT_BRANCH",
        "MULTICLAUDE_CONFIG",
        "MULTICLAUDE_ASSETS_DIR",
        "TMUX",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))


@pytest.fixture()
def git_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    init_repo(repo)
    return repo


@pytest.fixture()
def config(tmp_path: Path) -> EffectiveConfig:
    return EffectiveConfig(
        worktree_root=tmp_path / "worktrees",
        session_name="repo-agents",
        repo_name="repo",
        default_branch="main",
    )


@pytest.fixture()
def plan_file(tmp_path: Path) -> Path:
    path = tmp_path / "plan.md"
    path.write_text("# Plan\n\nImplement the feature.\n", encoding="utf-8")
    return path


@pytest.fixture()
def adapter() -> FakeTmuxAdapter:
    return FakeTmuxAdapter()


@pytest.fixture()
def console() -> Console:
    return Console(file=io.StringIO(), width=200)
