"""Tmux window helpers dedicated to worker windows."""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..config import EffectiveConfig
from ..errors import TmuxError
from ..process import CommandResult
from ..tmux import TmuxAdapter
from .models import WindowRef
from .models import WorkerDescriptor

logger = logging.getLogger(__name__)

# Window names that mark a window as an orchestrated worker during reset.
WINDOW_MARKERS = ("integration-", "agent-")
_UUID_LIKE = re.compile(r"^[a-f0-9-]{8,}$")
# Worker windows are numbered from 1 whatever the server base-index is.
FIRST_WINDOW_INDEX = 1


def is_agent_window(name: str) -> bool:
    return any(marker in name for marker in WINDOW_MARKERS) or bool(_UUID_LIKE.match(name))


class WindowManager:
    """Manage tmux windows hosting worker agents."""

    def __init__(self, config: EffectiveConfig, adapter: TmuxAdapter | None = None) -> None:
        self.config = config
        self._adapter = adapter or TmuxAdapter()

    @property
    def adapter(self) -> TmuxAdapter:
        return self._adapter

    def current_session(self) -> Optional[str]:
        return self._adapter.current_session()

    def next_window_index(self, session: str) -> int:
        indexes = [window.index for window in self._adapter.list_windows(session)]
        return max(indexes) + 1 if indexes else FIRST_WINDOW_INDEX

    def ensure_window(self, descriptor: WorkerDescriptor) -> WindowRef:
        """Open a window for ``descriptor`` and return where tmux put it.

        Prefers the session the caller is attached to, then the configured
        session. A session created concurrently between the existence check and
        our own ``new-session`` is treated as existing. Raises ``TmuxError``
        when no window could be created.
        """
        session = self.current_session() or self.config.session_name
        name = descriptor.window_name
        start_dir = str(descriptor.worktree_path)

        if not self._adapter.session_exists(session):
            logger.info("Creating new tmux session: %s", session)
            result = self._adapter.new_session(session, window_name=name, start_directory=start_dir)
            if result.ok:
                return self._move_to_first_index(self._created_window(result, session, name))
            if "duplicate session" not in result.stderr:
                raise TmuxError(f"Failed to create tmux session {session}: {result.stderr.strip()}")
            logger.info("Session %s appeared concurrently, adding window instead", session)

        index = self.next_window_index(session)
        logger.info("Adding new window to existing session: %s (window %d)", session, index)
        result = self._adapter.new_window(session, window_name=name, start_directory=start_dir, index=index)
        if not result.ok:
            logger.info("Window index %d unavailable (%s), letting tmux pick", index, result.stderr.strip())
            result = self._adapter.new_window(session, window_name=name, start_directory=start_dir)
            if not result.ok:
                raise TmuxError(f"Failed to create tmux window {name} in {session}: {result.stderr.strip()}")
        return self._created_window(result, session, name)

    def find_windows(self, window_name: str) -> list[WindowRef]:
        return [
            WindowRef(session=window.session_name, index=window.index, name=window.name)
            for session in self._adapter.list_sessions()
            for window in self._adapter.list_windows(session)
            if window.name == window_name
        ]

    def find_window(self, window_name: str) -> Optional[WindowRef]:
        matches = self.find_windows(window_name)
        return matches[0] if matches else None

    def kill_window(self, target: str) -> bool:
        result = self._adapter.kill_window(target)
        if not result.ok:
            logger.info("Tmux window not found: %s", target)
            return False
        return True

    def kill_named_window(self, window_name: str) -> bool:
        """Kill every window called ``window_name``; a relaunch can leave several."""
        matches = self.find_windows(window_name)
        if not matches:
            logger.info("Tmux window not found: %s", window_name)
            return False
        killed = False
        # highest index first so earlier targets stay valid under renumber-windows
        for ref in sorted(matches, key=lambda ref: (ref.session, ref.index), reverse=True):
            logger.info("Killing tmux window: %s (%s)", ref.label, ref.target)
            killed = self.kill_window(ref.target) or killed
        return killed

    def send_text(self, target: str, text: str, *, enter: bool = True) -> bool:
        keys = [text, "C-m"] if enter else [text]
        return self._send(target, keys)

    def send_key(self, target: str, key: str) -> bool:
        return self._send(target, [key])

    def list_agent_windows(self) -> list[WindowRef]:
        refs: list[WindowRef] = []
        for session in self._adapter.list_sessions():
            for window in self._adapter.list_windows(session):
                if is_agent_window(window.name):
                    refs.append(WindowRef(session=session, index=window.index, name=window.name))
        return refs

    # ------------------------------------------------------------------
    def _created_window(self, result: CommandResult, session: str, name: str) -> WindowRef:
        created_session, _, index = result.stdout.strip().rpartition(":")
        if not index.isdigit():
            raise TmuxError(f"Could not determine the index of tmux window {name}: {result.stdout.strip()!r}")
        return WindowRef(session=created_session or session, index=int(index), name=name)

    def _move_to_first_index(self, ref: WindowRef) -> WindowRef:
        if ref.index == FIRST_WINDOW_INDEX:
            return ref
        destination = f"{ref.session}:{FIRST_WINDOW_INDEX}"
        result = self._adapter.move_window(ref.target, destination)
        if not result.ok:
            logger.warning("Failed to move window %s to %s: %s", ref.target, destination, result.stderr.strip())
            return ref
        return WindowRef(session=ref.session, index=FIRST_WINDOW_INDEX, name=ref.name)

    def _send(self, target: str, keys: list[str]) -> bool:
        result = self._adapter.send_keys(target, *keys)
        if not result.ok:
            logger.warning("Failed to send keys to %s: %s", target, result.stderr.strip())
            return False
        return True


__all__ = ["WindowManager", "WINDOW_MARKERS", "FIRST_WINDOW_INDEX", "is_agent_window"]
