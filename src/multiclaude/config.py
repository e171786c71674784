"""Configuration resolution for multiclaude."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

logger = logging.getLogger(__name__)

CONFIG_DIR = ".multiclaude"
CONFIG_FILE = "config.json"

ENV_WORKTREE_DIR = "MULTICLAUDE_WORKTREE_DIR"
ENV_TMUX_SESSION = "MULTICLAUDE_TMUX_SESSION"
ENV_REPO_NAME = "MULTICLAUDE_REPO_NAME"
ENV_DEFAULT_BRANCH = "MULTICLAUDE_DEFAULT_BRANCH"
ENV_CONFIG_PATH = "MULTICLAUDE_CONFIG"

DEFAULT_BRANCH = "main"


class FileConfig(BaseModel):
    """Shape of the optional project-local JSON config file."""

    worktree_dir: str | None = Field(default=None, alias="worktreeDir")
    tmux_session: str | None = Field(default=None, alias="tmuxSession")
    repo_name: str | None = Field(default=None, alias="repoName")
    default_branch: str | None = Field(default=None, alias="defaultBranch")

    model_config = {"populate_by_name": True}


class EffectiveConfig(BaseModel):
    """Resolved settings for a single invocation."""

    worktree_root: Path
    session_name: str
    repo_name: str
    default_branch: str = DEFAULT_BRANCH

    model_config = {"frozen": True}


def default_config_path(cwd: Path) -> Path:
    return cwd / CONFIG_DIR / CONFIG_FILE


def load_file_config(path: Path) -> FileConfig:
    """Read the JSON config file, returning an empty config when unusable."""
    if not path.is_file():
        return FileConfig()
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to read config file %s: %s", path, exc)
        return FileConfig()
    try:
        return FileConfig.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Failed to parse config file %s: %s", path, exc)
        return FileConfig()


def load_config(
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    home: Path | None = None,
) -> EffectiveConfig:
    """Merge environment, config file, and computed defaults.

    Environment variables win over the config file, which wins over defaults.
    Empty values are treated as unset.
    """
    env = os.environ if environ is None else environ
    cwd = Path(cwd or Path.cwd())
    home = Path(home or Path.home())

    config_path = Path(env.get(ENV_CONFIG_PATH) or default_config_path(cwd))
    if not config_path.is_absolute():
        config_path = cwd / config_path
    file_config = load_file_config(config_path)

    repo_name = env.get(ENV_REPO_NAME) or file_config.repo_name or cwd.name
    session_name = env.get(ENV_TMUX_SESSION) or file_config.tmux_session or f"{repo_name}-agents"
    worktree_dir = (
        env.get(ENV_WORKTREE_DIR)
        or file_config.worktree_dir
        or str(home / ".humanlayer" / "worktrees")
    )
    default_branch = env.get(ENV_DEFAULT_BRANCH) or file_config.default_branch or DEFAULT_BRANCH

    return EffectiveConfig(
        worktree_root=Path(worktree_dir).expanduser(),
        session_name=session_name,
        repo_name=repo_name,
        default_branch=default_branch,
    )


__all__ = [
    "CONFIG_DIR",
    "EffectiveConfig",
    "FileConfig",
    "load_config",
    "load_file_config",
]
