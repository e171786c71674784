"""Project initialisation: persona files, staged CLAUDE.md, Makefile hooks."""
from __future__ import annotations

import logging
import platform
import shutil
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Callable
from typing import Optional

from rich.console import Console

from .assets import AssetLocator
from .config import CONFIG_DIR
from .errors import ScaffoldError
from .personas import CORE_PERSONAS
from .personas import Persona
from .personas import load_personas
from .process import ProcessRunner

logger = logging.getLogger(__name__)

STAGED_FILENAME = "CLAUDE.staged.md"
INSTALL_HINTS = {
    "tmux": "Install: brew install tmux (macOS) or apt-get install tmux (Ubuntu)",
    "claude": "Install: https://claude.ai/code - Download Claude Code CLI",
}
REQUIREMENTS = (("git", "Git"), ("tmux", "tmux"), ("claude", "Claude Code CLI"))

MAKEFILE_TEMPLATE = (
    "# Makefile for launch compatibility\n"
    ".PHONY: setup teardown\n"
    "\n"
    "setup:\n"
    "\t@echo \"Setting up project...\"\n"
    "\t# @npm install || uv sync || pip install -e .\n"
    "\t@echo \"Setup complete!\"\n"
    "\n"
    "teardown:\n"
    "\t@echo \"Tearing down project...\"\n"
    "\t@echo \"Teardown complete!\"\n"
)

STAGED_HEADER = """# AI Assistant Instructions

**IMPORTANT: Copy or merge this file into your project's CLAUDE.md file to activate agent personas.**

## MANDATORY PERSONA SELECTION

**BEFORE DOING ANYTHING ELSE**, you must read and adopt one of these personas:

"""

STAGED_FOOTER = """
**DO NOT PROCEED WITHOUT SELECTING A PERSONA.** Each persona has specific rules, workflows, and tools that you MUST follow exactly.

## Project Context

[CUSTOMIZE THIS SECTION FOR YOUR PROJECT]

- **Language/Framework**: [Add your stack here]
- **Build Tool**: [Add your build commands]
- **Testing**: [Add your test commands]
- **Architecture**: [Describe your project structure]

## Core Principles (All Personas)

1. **READ FIRST**: Always read at least 1500 lines to understand context fully
2. **DELETE MORE THAN YOU ADD**: Complexity compounds into disasters
3. **FOLLOW EXISTING PATTERNS**: Don't invent new approaches
4. **BUILD AND TEST**: Run your build and test commands after changes
5. **COMMIT FREQUENTLY**: Every 5-10 minutes for meaningful progress

## Common Commands (All Personas)

[CUSTOMIZE THIS SECTION FOR YOUR PROJECT]

```bash
make setup      # prepare a fresh worktree
make check      # lint and format
make test       # run the test suite
```

---

*Generated by multiclaude - Agent personas are in .multiclaude/personas/*
"""


@dataclass
class InitOptions:
    overwrite: bool = False
    ignore_missing_prereqs: bool = False


@dataclass
class SystemCheck:
    platform: str
    missing: list[str] = field(default_factory=list)
    in_tmux_session: bool = False

    @property
    def all_required(self) -> bool:
        return not self.missing


@dataclass
class InitReport:
    scaffold_dir: Path
    copied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    staged_file: Path | None = None
    makefile_created: bool = False


def render_staged_instructions(personas: list[Persona]) -> str:
    lines = []
    for idx, persona in enumerate(personas, start=1):
        entry = f"{idx}. **{persona.title}** - Read `{CONFIG_DIR}/personas/{persona.path.name}`"
        if persona.description:
            entry += f" - {persona.description}"
        lines.append(entry)
    return STAGED_HEADER + "\n".join(lines) + "\n" + STAGED_FOOTER


class ProjectInitializer:
    """Copy personas and templates into a project, after checking the host."""

    def __init__(
        self,
        project_root: Path | None = None,
        *,
        runner: ProcessRunner | None = None,
        assets: AssetLocator | None = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        console: Console | None = None,
    ) -> None:
        self.project_root = Path(project_root or Path.cwd())
        self.runner = runner or ProcessRunner()
        self.assets = assets or AssetLocator()
        self._which = which
        self._console = console or Console()

    def check_system(self) -> SystemCheck:
        console = self._console
        console.print("\n[bold]System Requirements Check[/bold]")
        check = SystemCheck(platform=f"{platform.system()} ({platform.machine()})")
        console.print(f"[blue]*[/blue] Platform: {check.platform}")

        for command, label in REQUIREMENTS:
            if self._which(command):
                console.print(f"[green]+[/green] {label} is installed")
                continue
            check.missing.append(command)
            console.print(f"[red]-[/red] {label} is required but not installed")
            if command in INSTALL_HINTS:
                console.print(f"[blue]*[/blue]   {INSTALL_HINTS[command]}")

        session = self.runner.run("tmux", ["display-message", "-p", "#{session_name}"])
        check.in_tmux_session = session.ok and bool(session.stdout.strip())
        if check.in_tmux_session:
            console.print("[green]+[/green] Running inside tmux session")
        else:
            console.print("[blue]*[/blue] Not in a tmux session")
        return check

    def check_git_repository(self) -> bool:
        console = self._console
        console.print("\n[bold]Git Repository Check[/bold]")
        status = self.runner.run("git", ["status", "--porcelain"], cwd=self.project_root)
        if not status.ok:
            console.print("[red]-[/red] Not in a git repository")
            console.print("[blue]*[/blue] Run: git init")
            return False

        console.print("[green]+[/green] Git repository detected")
        if status.stdout.strip():
            console.print("[yellow]![/yellow] Working directory has uncommitted changes")
        else:
            console.print("[green]+[/green] Working directory is clean")

        branch = self.runner.run("git", ["branch", "--show-current"], cwd=self.project_root)
        if branch.ok and branch.stdout.strip():
            console.print(f"[blue]*[/blue] Current branch: {branch.stdout.strip()}", markup=False)
        return True

    def run(self, options: InitOptions | None = None) -> InitReport:
        options = options or InitOptions()
        system = self.check_system()
        git_ok = self.check_git_repository()
        if not (system.all_required and git_ok):
            problems = []
            if not system.all_required:
                problems.append(f"missing prerequisites: {', '.join(system.missing)}")
            if not git_ok:
                problems.append("not a git repository")
            if not options.ignore_missing_prereqs:
                raise ScaffoldError("Setup issues detected: " + "; ".join(problems))
            logger.warning("Continuing despite setup issues: %s", "; ".join(problems))

        scaffold_dir = self.project_root / CONFIG_DIR
        if scaffold_dir.exists():
            if not options.overwrite:
                raise ScaffoldError(f"{CONFIG_DIR} directory already exists (use --overwrite)")
            logger.warning("%s directory exists, overwriting...", CONFIG_DIR)

        report = InitReport(scaffold_dir=scaffold_dir)
        personas_dir = scaffold_dir / "personas"
        personas_dir.mkdir(parents=True, exist_ok=True)
        source_dir = self.assets.root()
        for filename in CORE_PERSONAS:
            source = source_dir / filename
            if not source.is_file():
                logger.warning("Skipped %s (not found)", filename)
                report.skipped.append(filename)
                continue
            shutil.copyfile(source, personas_dir / filename)
            report.copied.append(filename)
            self._console.print(f"[green]+[/green] {CONFIG_DIR}/personas/{filename}")

        staged = self.project_root / STAGED_FILENAME
        staged.write_text(render_staged_instructions(load_personas(personas_dir)), encoding="utf-8")
        report.staged_file = staged
        self._console.print(f"[green]+[/green] Created {STAGED_FILENAME}")

        report.makefile_created = self._ensure_makefile()
        self._print_next_steps(system)
        return report

    # ------------------------------------------------------------------
    def _ensure_makefile(self) -> bool:
        makefile = self.project_root / "Makefile"
        if not makefile.exists():
            makefile.write_text(MAKEFILE_TEMPLATE, encoding="utf-8")
            self._console.print("[green]+[/green] Created Makefile")
            return True
        content = makefile.read_text(encoding="utf-8")
        if "setup:" not in content or "teardown:" not in content:
            logger.warning("Makefile exists but is missing setup/teardown targets")
        return False

    def _print_next_steps(self, system: SystemCheck) -> None:
        console = self._console
        console.print("\n[green]multiclaude init completed successfully![/green]")
        steps = [
            f"Review {STAGED_FILENAME}",
            f"Copy/merge {STAGED_FILENAME} into CLAUDE.md",
            "Customize project context in CLAUDE.md",
            f"Customize project and toolchain context in {CONFIG_DIR}/personas/*.md",
        ]
        if not system.in_tmux_session:
            steps.append("Attach to a tmux session or launch a new one (tmux new-session or tmux attach)")
        steps.append("Launch Claude Code CLI and adopt the manager persona")
        console.print("\n[blue]Next steps:[/blue]")
        for idx, step in enumerate(steps, start=1):
            console.print(f"  {idx}. {step}", markup=False)


__all__ = ["InitOptions", "InitReport", "ProjectInitializer", "SystemCheck", "render_staged_instructions"]
