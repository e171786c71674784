"""Worker orchestration helpers (worktrees, tmux windows, launch and cleanup)."""

from .cleanup import Cleanup, ResetReport
from .handshake import AgentStarter, HandshakeTiming
from .launcher import Launcher, LaunchOptions, LaunchResult
from .models import WindowRef, WorkerDescriptor, WorktreeInfo
from .session import WindowManager
from .worktree import WorktreeManager

__all__ = [
    "AgentStarter",
    "Cleanup",
    "HandshakeTiming",
    "LaunchOptions",
    "LaunchResult",
    "Launcher",
    "ResetReport",
    "WindowManager",
    "WindowRef",
    "WorkerDescriptor",
    "WorktreeInfo",
    "WorktreeManager",
]
