"""Locate the directory holding bundled persona files."""
from __future__ import annotations

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Callable
from typing import Iterable
from typing import Optional
from typing import Sequence

from .errors import AssetNotFoundError

logger = logging.getLogger(__name__)

ENV_ASSETS_DIR = "MULTICLAUDE_ASSETS_DIR"

Strategy = Callable[[], Optional[Path]]


def from_environment(environ: dict[str, str] | None = None) -> Strategy:
    def _strategy() -> Optional[Path]:
        env = os.environ if environ is None else environ
        value = env.get(ENV_ASSETS_DIR)
        return Path(value).expanduser() if value else None

    return _strategy


def from_package() -> Strategy:
    def _strategy() -> Optional[Path]:
        try:
            root = resources.files("multiclaude") / "data" / "personas"
        except ModuleNotFoundError:
            return None
        return Path(str(root))

    return _strategy


def from_directory(path: Path) -> Strategy:
    return lambda: path


def default_strategies(cwd: Path | None = None) -> list[Strategy]:
    return [
        from_environment(),
        from_package(),
        from_directory(Path(cwd or Path.cwd()) / "hack"),
    ]


class AssetLocator:
    """Resolve persona files by probing candidate directories in order."""

    def __init__(self, strategies: Sequence[Strategy] | None = None) -> None:
        self._strategies = list(strategies) if strategies is not None else default_strategies()

    def candidates(self) -> Iterable[Path]:
        for strategy in self._strategies:
            candidate = strategy()
            if candidate is not None:
                yield candidate

    def root(self) -> Path:
        for candidate in self.candidates():
            if candidate.is_dir():
                logger.debug("Using persona assets from %s", candidate)
                return candidate
        raise AssetNotFoundError("Could not find directory with agent persona files")

    def find(self, name: str) -> Path:
        path = self.root() / name
        if not path.is_file():
            raise AssetNotFoundError(f"Persona file not found: {path}")
        return path


__all__ = ["AssetLocator", "default_strategies", "from_directory", "from_environment", "from_package"]
