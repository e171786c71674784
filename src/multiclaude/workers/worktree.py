"""Git worktree helpers for worker branches."""

from __future__ import annotations

import logging
import os
import re
import shutil
import stat
from pathlib import Path
from typing import Iterable
from typing import List
from typing import Sequence

from ..config import EffectiveConfig
from ..errors import SetupError
from ..errors import WorktreeError
from ..process import CommandResult
from ..process import ProcessRunner
from .models import WorkerDescriptor
from .models import WorktreeInfo
from .models import worktree_path_for

logger = logging.getLogger(__name__)

DEFAULT_SETUP_COMMAND = ("make", "setup")
AGENT_CONFIG_DIR = ".claude"
# Substrings marking a worktree as one of ours, in addition to "{repo_name}_".
WORKTREE_MARKERS = ("integration-", "agentcontrolplane_")

_BRANCH_LINE = re.compile(r"^branch refs/heads/(.+)$", re.MULTILINE)


class WorktreeManager:
    """Create, set up, and tear down git worktrees keyed by branch name."""

    def __init__(
        self,
        config: EffectiveConfig,
        runner: ProcessRunner | None = None,
        *,
        repo_root: Path | None = None,
        setup_command: Sequence[str] = DEFAULT_SETUP_COMMAND,
    ) -> None:
        self.config = config
        self.runner = runner or ProcessRunner()
        self.repo_root = Path(repo_root or Path.cwd()).resolve()
        self.setup_command = tuple(setup_command)

    def path_for(self, branch: str) -> Path:
        return worktree_path_for(self.config, branch)

    @property
    def markers(self) -> tuple[str, ...]:
        return (f"{self.config.repo_name}_", *WORKTREE_MARKERS)

    # ------------------------------------------------------------------
    def create(self, descriptor: WorkerDescriptor) -> Path:
        """Create a fresh worktree on a new branch, replacing any stale one."""
        logger.info("Creating worktree for %s...", descriptor.branch)
        self.config.worktree_root.mkdir(parents=True, exist_ok=True)

        target = descriptor.worktree_path
        if target.exists():
            logger.warning("Removing existing worktree: %s", target)
            self.remove_path(target)
            self.prune()
            self.delete_branch(descriptor.branch)

        base = self._base_revision()
        result = self._git(["worktree", "add", "-b", descriptor.branch, str(target), base])
        if not result.ok:
            raise WorktreeError(f"Failed to create worktree: {result.stderr.strip()}", stderr=result.stderr)

        agent_config = self.repo_root / AGENT_CONFIG_DIR
        if agent_config.is_dir():
            shutil.copytree(agent_config, target / AGENT_CONFIG_DIR, dirs_exist_ok=True)
        shutil.copy2(descriptor.plan_file, target / descriptor.plan_file.name)

        logger.info("Worktree created: %s", target)
        return target

    def setup(self, descriptor: WorkerDescriptor) -> CommandResult:
        """Run the setup hook; roll back the worktree and branch if it fails."""
        logger.info("Setting up project environment in worktree...")
        command, *args = self.setup_command
        result = self.runner.run(command, args, cwd=descriptor.worktree_path)
        if result.ok:
            return result

        logger.error("Setup failed. Cleaning up worktree...")
        self._rollback(descriptor)
        detail = (result.stderr or result.stdout).strip()
        raise SetupError(f"Setup failed: {detail}", stderr=result.stderr)

    def remove(self, branch: str) -> bool:
        return self.remove_path(self.path_for(branch))

    def remove_path(self, path: Path) -> bool:
        """Remove a worktree directory; absent directories are a no-op.

        Tries ``git worktree remove --force`` first and falls back to deleting
        the directory tree. Raises only when both fail.
        """
        if not path.exists():
            logger.info("Worktree not found: %s", path)
            return False

        logger.info("Removing worktree: %s", path)
        self._fix_permissions(path)
        result = self._git(["worktree", "remove", "--force", str(path)])
        if result.ok and not path.exists():
            return True

        logger.warning("Failed to remove worktree with git, removing directory manually")
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise WorktreeError(f"Failed to remove worktree directory {path}: {exc}") from exc
        return True

    def branch_exists(self, branch: str) -> bool:
        return self._git(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"]).ok

    def delete_branch(self, branch: str) -> bool:
        if not self.branch_exists(branch):
            logger.info("Branch not found: %s", branch)
            return False
        logger.info("Deleting branch: %s", branch)
        result = self._git(["branch", "-D", branch])
        if not result.ok:
            logger.warning("Failed to delete branch %s: %s", branch, result.stderr.strip())
            return False
        return True

    def prune(self) -> bool:
        logger.info("Pruning git worktree list...")
        result = self._git(["worktree", "prune"])
        if not result.ok:
            logger.warning("Failed to prune worktrees: %s", result.stderr.strip())
            return False
        return True

    def list(self) -> List[WorktreeInfo]:
        return [info for info, _ in self._porcelain_blocks()]

    def list_matching(self, markers: Iterable[str] | None = None) -> List[WorktreeInfo]:
        """Worktrees whose porcelain entry mentions one of ``markers``.

        The main checkout is never included. Listing failures yield ``[]``.
        """
        needles = tuple(markers) if markers is not None else self.markers
        matches: list[WorktreeInfo] = []
        for info, block in self._porcelain_blocks():
            if not any(needle in block for needle in needles):
                continue
            if _same_path(info.path, self.repo_root):
                continue
            matches.append(info)
        return matches

    def summary_lines(self) -> list[str]:
        result = self._git(["worktree", "list"])
        if not result.ok:
            return []
        return [line for line in result.lines() if any(marker in line for marker in self.markers)]

    # ------------------------------------------------------------------
    def _porcelain_blocks(self) -> list[tuple[WorktreeInfo, str]]:
        result = self._git(["worktree", "list", "--porcelain"])
        if not result.ok:
            return []
        entries: list[tuple[WorktreeInfo, str]] = []
        for block in result.stdout.strip().split("\n\n"):
            first, _, _ = block.strip().partition("\n")
            if not first.startswith("worktree "):
                continue
            path = Path(first[len("worktree "):])
            match = _BRANCH_LINE.search(block)
            branch = match.group(1) if match else path.name
            entries.append((WorktreeInfo(path=path, branch=branch), block))
        return entries

    def _base_revision(self) -> str:
        branch = self.config.default_branch
        if branch and self.branch_exists(branch):
            return branch
        return "HEAD"

    def _rollback(self, descriptor: WorkerDescriptor) -> None:
        path = descriptor.worktree_path
        result = self._git(["worktree", "remove", "--force", str(path)])
        if not result.ok:
            logger.warning("git worktree remove failed during rollback: %s", result.stderr.strip())
        if path.exists():
            shutil.rmtree(path, ignore_errors=True)
        self.prune()
        self.delete_branch(descriptor.branch)

    def _fix_permissions(self, path: Path) -> None:
        """Make the tree writable for removal without following symlinks out of it."""
        logger.debug("Fixing permissions for worktree removal")
        self._chmod(path, 0o755)
        for root, dirs, files in os.walk(path):
            for name in dirs:
                full = os.path.join(root, name)
                if not os.path.islink(full):
                    self._chmod(full, 0o755)
            for name in files:
                full = os.path.join(root, name)
                if os.path.islink(full):
                    continue
                try:
                    mode = os.stat(full).st_mode
                except OSError as exc:
                    logger.warning("Failed to fix permissions for %s: %s", full, exc)
                    continue
                self._chmod(full, mode | stat.S_IRUSR | stat.S_IWUSR)

    @staticmethod
    def _chmod(path: Path | str, mode: int) -> None:
        try:
            os.chmod(path, mode)
        except OSError as exc:
            logger.warning("Failed to fix permissions for %s: %s", path, exc)

    def _git(self, args: list[str]) -> CommandResult:
        return self.runner.run("git", args, cwd=self.repo_root)


def _same_path(left: Path, right: Path) -> bool:
    try:
        return left.resolve() == right.resolve()
    except OSError:
        return left == right


__all__ = ["WorktreeManager", "DEFAULT_SETUP_COMMAND", "WORKTREE_MARKERS"]
