"""Exception types raised by multiclaude components."""
from __future__ import annotations


class MulticlaudeError(RuntimeError):
    """Base class for failures the CLI reports and exits non-zero on."""


class PrerequisiteError(MulticlaudeError):
    """A required tool or input file is missing."""


class WorktreeError(MulticlaudeError):
    """A git worktree could not be created or removed."""

    def __init__(self, message: str, *, stderr: str | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr


class SetupError(WorktreeError):
    """The project setup hook failed; the worktree has been rolled back."""


class TmuxError(MulticlaudeError):
    """A tmux session or window could not be created or reached."""


class AssetNotFoundError(MulticlaudeError):
    """No candidate location holds the bundled persona files."""


class ScaffoldError(MulticlaudeError):
    """Project initialisation cannot proceed."""


__all__ = [
    "MulticlaudeError",
    "PrerequisiteError",
    "WorktreeError",
    "SetupError",
    "TmuxError",
    "AssetNotFoundError",
    "ScaffoldError",
]
