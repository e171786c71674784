"""multiclaude: persona scaffolding and worktree + tmux agent orchestration."""

__version__ = "0.6.0"

__all__ = ["__version__"]
