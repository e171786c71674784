"""Launch orchestration: worktree, setup hook, prompt, tmux window, agent."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
from typing import Optional
from typing import Sequence

from rich.console import Console

from ..assets import AssetLocator
from ..config import EffectiveConfig
from ..errors import PrerequisiteError
from ..personas import INTEGRATION_TESTER
from ..process import ProcessRunner
from ..tmux import TmuxAdapter
from .handshake import AgentStarter
from .models import WindowRef
from .models import WorkerDescriptor
from .session import WindowManager
from .worktree import DEFAULT_SETUP_COMMAND
from .worktree import WorktreeManager

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("git", "tmux", "claude")


@dataclass(frozen=True)
class LaunchOptions:
    humanlayer: bool = False


@dataclass(frozen=True)
class LaunchResult:
    descriptor: WorkerDescriptor
    window: WindowRef

    @property
    def session_name(self) -> str:
        return self.window.session

    @property
    def window_target(self) -> str:
        return self.window.target


class Launcher:
    """Bring up one worker: worktree, setup, prompt, window, agent process."""

    def __init__(
        self,
        config: EffectiveConfig,
        *,
        runner: ProcessRunner | None = None,
        adapter: TmuxAdapter | None = None,
        starter: AgentStarter | None = None,
        assets: AssetLocator | None = None,
        repo_root: Path | None = None,
        setup_command: Sequence[str] = DEFAULT_SETUP_COMMAND,
        which: Callable[[str], Optional[str]] = shutil.which,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or ProcessRunner()
        self.repo_root = Path(repo_root or Path.cwd())
        self.worktrees = WorktreeManager(
            config, self.runner, repo_root=self.repo_root, setup_command=setup_command
        )
        self.windows = WindowManager(config, adapter or TmuxAdapter(self.runner))
        self.starter = starter or AgentStarter()
        self.assets = assets or AssetLocator()
        self._which = which
        self._console = console or Console()

    def launch(self, branch: str, plan_file: Path | str, options: LaunchOptions | None = None) -> LaunchResult:
        """Run the launch sequence, raising on the first fatal step.

        A failed setup hook rolls back its worktree and branch. Resources from
        any other failed step are left for ``cleanup``.
        """
        options = options or LaunchOptions()
        plan_path = self._resolve_plan(plan_file)
        logger.info("Starting worker: %s with plan: %s", branch, plan_file)
        if options.humanlayer:
            logger.info("HumanLayer launch mode is not available, using a tmux window")

        self.check_prerequisites()
        if not plan_path.is_file():
            raise PrerequisiteError(f"Plan file not found: {plan_file}")

        descriptor = WorkerDescriptor.build(branch, plan_path, self.config)
        self.worktrees.create(descriptor)
        self.worktrees.setup(descriptor)
        self.stage_prompt(descriptor)
        window = self.windows.ensure_window(descriptor)
        result = LaunchResult(descriptor=descriptor, window=window)

        logger.info("Starting Claude Code in worktree: %s", descriptor.worktree_path)
        self.starter.start(self.windows, result.window_target)

        logger.info("Worker launched successfully")
        self._print_instructions(result)
        return result

    def check_prerequisites(self) -> None:
        for tool in REQUIRED_TOOLS:
            if not self._which(tool):
                raise PrerequisiteError(f"{tool} is not installed or not in PATH")

    def stage_prompt(self, descriptor: WorkerDescriptor) -> Path:
        """Write ``prompt.md`` into the worktree from the plan or tester persona."""
        prompt_path = descriptor.worktree_path / self.starter.prompt_file
        if INTEGRATION_TESTER in str(descriptor.plan_file):
            source = self.assets.find(INTEGRATION_TESTER)
        else:
            source = descriptor.plan_file
        shutil.copyfile(source, prompt_path)
        return prompt_path

    # ------------------------------------------------------------------
    def _resolve_plan(self, plan_file: Path | str) -> Path:
        path = Path(plan_file).expanduser()
        return path if path.is_absolute() else self.repo_root / path

    def _print_instructions(self, result: LaunchResult) -> None:
        descriptor = result.descriptor
        console = self._console
        console.print()
        console.print(f"Session: {result.session_name}", markup=False)
        console.print(f"Branch: {descriptor.branch}", markup=False)
        console.print(f"Plan: {descriptor.plan_file}", markup=False)
        console.print(f"Worktree: {descriptor.worktree_path}", markup=False)
        console.print()
        console.print("To attach to the session:")
        console.print(f"  tmux attach -t {result.session_name}", markup=False)
        console.print()
        console.print("To switch to this window:")
        console.print(f"  tmux select-window -t {result.window_target}", markup=False)
        console.print()
        console.print("To clean up later:")
        console.print(f"  multiclaude cleanup {descriptor.branch}", markup=False)


__all__ = ["Launcher", "LaunchOptions", "LaunchResult", "REQUIRED_TOOLS"]
