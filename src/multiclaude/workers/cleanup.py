"""Tear down workers: one by branch name, or every discovered worker."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path
from typing import Any
from typing import Callable

from rich.console import Console
from rich.prompt import Confirm

from ..config import CONFIG_DIR
from ..config import EffectiveConfig
from ..errors import MulticlaudeError
from ..process import ProcessRunner
from ..tmux import TmuxAdapter
from .models import WindowRef
from .session import WindowManager
from .worktree import WorktreeManager

logger = logging.getLogger(__name__)

STAGED_FILE_PATTERN = "*.staged.md"

ConfirmFn = Callable[[str], bool]


def ask_confirmation(message: str) -> bool:
    return Confirm.ask(message, default=False)


@dataclass
class ResetReport:
    worktrees_found: int = 0
    worktrees_removed: int = 0
    windows_found: int = 0
    windows_killed: int = 0
    staged_files_removed: int = 0


class Cleanup:
    """Best-effort teardown that keeps going past individual failures."""

    def __init__(
        self,
        config: EffectiveConfig,
        *,
        runner: ProcessRunner | None = None,
        adapter: TmuxAdapter | None = None,
        project_root: Path | None = None,
        confirm: ConfirmFn = ask_confirmation,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or ProcessRunner()
        self.project_root = Path(project_root or Path.cwd())
        self.worktrees = WorktreeManager(config, self.runner, repo_root=self.project_root)
        self.windows = WindowManager(config, adapter or TmuxAdapter(self.runner))
        self._confirm = confirm
        self._console = console or Console()

    # Single worker ------------------------------------------------------
    def cleanup(self, branch: str) -> None:
        logger.info("Cleaning up worker: %s (branch: %s)", branch, branch)
        self._step("kill tmux window", self.windows.kill_named_window, branch)
        self._step("remove worktree", self.worktrees.remove, branch)
        self._step("delete branch", self.worktrees.delete_branch, branch)
        self._step("prune worktrees", self.worktrees.prune)
        logger.info("Cleanup completed successfully")
        self.show_remaining_resources()

    # Everything ---------------------------------------------------------
    def reset(self, *, assume_yes: bool = False) -> ResetReport:
        """Remove scaffolding and every worker resource the user confirms."""
        logger.info("Starting full reset and cleanup...")
        report = ResetReport()
        self._step("remove scaffold directory", self.remove_scaffold_dir)
        report.staged_files_removed = self._step("remove staged files", self.remove_staged_files) or 0
        self._step("clean worktrees", self._clean_worktrees, report, assume_yes)
        self._step("kill tmux windows", self._kill_agent_windows, report, assume_yes)
        logger.info("Reset completed successfully")
        self.show_remaining_resources()
        return report

    def remove_scaffold_dir(self) -> bool:
        scaffold = self.project_root / CONFIG_DIR
        if not scaffold.exists():
            logger.info("%s directory not found", CONFIG_DIR)
            return False
        logger.info("Removing %s directory: %s", CONFIG_DIR, scaffold)
        shutil.rmtree(scaffold)
        return True

    def remove_staged_files(self) -> int:
        logger.info("Removing staged files...")
        removed = 0
        for root, dirs, files in os.walk(self.project_root):
            dirs[:] = [name for name in dirs if name != ".git"]
            for name in files:
                if not fnmatch(name, STAGED_FILE_PATTERN):
                    continue
                path = Path(root) / name
                try:
                    path.unlink()
                except OSError as exc:
                    logger.warning("Failed to remove staged file %s: %s", path, exc)
                    continue
                logger.info("Removed staged file: %s", path)
                removed += 1
        return removed

    def show_remaining_resources(self) -> None:
        console = self._console
        console.print()
        console.print("[bold]=== REMAINING RESOURCES ===[/bold]")
        console.print()
        console.print("[blue]Tmux sessions and windows:[/blue]")

        adapter = self.windows.adapter
        sessions = adapter.describe_sessions()
        if sessions.ok and sessions.stdout.strip():
            console.print(sessions.stdout.strip(), markup=False)
            session = self.config.session_name
            if adapter.session_exists(session):
                console.print()
                console.print(f"Windows in {session} session:", markup=False)
                windows = adapter.list_windows(session)
                if windows:
                    for window in windows:
                        console.print(f"  {window.index}: {window.name}", markup=False)
                else:
                    console.print("  No windows found")
        else:
            console.print("No tmux sessions found")

        console.print()
        console.print("[green]Git worktrees:[/green]")
        lines = self.worktrees.summary_lines()
        if lines:
            console.print("\n".join(lines), markup=False)
        else:
            console.print("No relevant worktrees found")
        console.print()

    # ------------------------------------------------------------------
    def _clean_worktrees(self, report: ResetReport, assume_yes: bool) -> None:
        candidates = self.worktrees.list_matching()
        report.worktrees_found = len(candidates)
        if not candidates:
            logger.info("No agent worktrees found to delete")
            return

        self._console.print("\nThe following worktrees were found:")
        for info in candidates:
            self._console.print(f"  - {info.path} (branch: {info.branch})", markup=False)

        for info in candidates:
            if not (assume_yes or self._confirm(f"Delete worktree {info.path} (branch: {info.branch})?")):
                logger.info("Skipping worktree: %s", info.path)
                continue
            if self._step("remove worktree", self.worktrees.remove_path, info.path) is None:
                continue
            self._step("delete branch", self.worktrees.delete_branch, info.branch)
            report.worktrees_removed += 1

        self._step("prune worktrees", self.worktrees.prune)

    def _kill_agent_windows(self, report: ResetReport, assume_yes: bool) -> None:
        candidates = self.windows.list_agent_windows()
        report.windows_found = len(candidates)
        if not candidates:
            logger.info("No agent tmux windows found to kill")
            return

        self._console.print("\nThe following tmux windows were found:")
        for ref in candidates:
            self._console.print(f"  - {ref.label} (window {ref.index})", markup=False)

        confirmed: list[WindowRef] = []
        for ref in candidates:
            if assume_yes or self._confirm(f"Kill tmux window {ref.label}?"):
                confirmed.append(ref)
            else:
                logger.info("Skipping tmux window: %s", ref.label)

        # highest index first so earlier targets stay valid under renumber-windows
        for ref in sorted(confirmed, key=lambda ref: (ref.session, ref.index), reverse=True):
            logger.info("Killing tmux window: %s (%s)", ref.label, ref.target)
            if self.windows.kill_window(ref.target):
                report.windows_killed += 1

    def _step(self, label: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return func(*args)
        except (MulticlaudeError, OSError) as exc:
            logger.warning("Failed to %s: %s", label, exc)
            return None


__all__ = ["Cleanup", "ResetReport", "ask_confirmation", "STAGED_FILE_PATTERN"]
