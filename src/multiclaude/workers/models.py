"""Value types describing orchestrated workers."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..config import EffectiveConfig


def worktree_path_for(config: EffectiveConfig, branch: str) -> Path:
    return config.worktree_root / f"{config.repo_name}_{branch}"


@dataclass(frozen=True)
class WorkerDescriptor:
    """Identity of one worker, derived from its branch name on every call."""

    branch: str
    worktree_path: Path
    plan_file: Path
    window_target: str

    @property
    def window_name(self) -> str:
        return self.branch

    @classmethod
    def build(cls, branch: str, plan_file: Path | str, config: EffectiveConfig) -> "WorkerDescriptor":
        return cls(
            branch=branch,
            worktree_path=worktree_path_for(config, branch),
            plan_file=Path(plan_file),
            window_target=f"{config.session_name}:{branch}",
        )


@dataclass(frozen=True)
class WorktreeInfo:
    path: Path
    branch: str


@dataclass(frozen=True)
class WindowRef:
    """A tmux window addressed by index; names may repeat within a session."""

    session: str
    index: int
    name: str

    @property
    def target(self) -> str:
        return f"{self.session}:{self.index}"

    @property
    def label(self) -> str:
        return f"{self.session}:{self.name}"


__all__ = ["WorkerDescriptor", "WorktreeInfo", "WindowRef", "worktree_path_for"]
