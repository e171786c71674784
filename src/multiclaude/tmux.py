"""Adapter around the tmux CLI for session and window management."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable
from typing import Optional

from .process import CommandResult
from .process import ProcessRunner

# Printed by new-session and new-window with -P so callers learn the index tmux assigned.
CREATED_WINDOW_FORMAT = "#{session_name}:#{window_index}"


@dataclass(frozen=True)
class WindowInfo:
    session_name: str
    index: int
    name: str

    @property
    def target(self) -> str:
        return f"{self.session_name}:{self.index}"


class TmuxAdapter:
    """Wrapper around tmux commands.

    Every call returns a ``CommandResult`` or a parsed value; nothing raises
    when tmux is missing, no server is running, or a target does not exist.
    """

    def __init__(self, runner: ProcessRunner | None = None, tmux_bin: str = "tmux") -> None:
        self.runner = runner or ProcessRunner()
        self.tmux_bin = tmux_bin

    def _run(self, args: list[str]) -> CommandResult:
        return self.runner.run(self.tmux_bin, args)

    def current_session(self) -> Optional[str]:
        if not os.environ.get("TMUX"):
            return None
        result = self._run(["display-message", "-p", "#{session_name}"])
        name = result.stdout.strip()
        return name if result.ok and name else None

    # Session helpers ---------------------------------------------------
    def session_exists(self, session_name: str) -> bool:
        return self._run(["has-session", "-t", f"={session_name}"]).ok

    def list_sessions(self) -> list[str]:
        result = self._run(["list-sessions", "-F", "#{session_name}"])
        if not result.ok:
            return []
        return [line.strip() for line in result.lines()]

    def describe_sessions(self) -> CommandResult:
        return self._run(["list-sessions"])

    def new_session(self, session_name: str, *, window_name: str, start_directory: str) -> CommandResult:
        """Create a detached session; stdout is the first window's ``session:index``."""
        return self._run(
            [
                "new-session", "-d", "-s", session_name, "-n", window_name, "-c", start_directory,
                "-P", "-F", CREATED_WINDOW_FORMAT,
            ]
        )

    # Window helpers ----------------------------------------------------
    def list_windows(self, session_name: str) -> list[WindowInfo]:
        result = self._run(["list-windows", "-t", f"={session_name}", "-F", "#{window_index}\t#{window_name}"])
        if not result.ok:
            return []
        windows: list[WindowInfo] = []
        for line in result.lines():
            index, _, name = line.partition("\t")
            try:
                windows.append(WindowInfo(session_name=session_name, index=int(index), name=name))
            except ValueError:
                continue
        return windows

    def new_window(
        self,
        session_name: str,
        *,
        window_name: str,
        start_directory: str,
        index: int | None = None,
    ) -> CommandResult:
        target = f"{session_name}:{index}" if index is not None else f"{session_name}:"
        return self._run(
            [
                "new-window", "-t", target, "-n", window_name, "-c", start_directory,
                "-P", "-F", CREATED_WINDOW_FORMAT,
            ]
        )

    def move_window(self, source: str, destination: str) -> CommandResult:
        return self._run(["move-window", "-s", source, "-t", destination])

    def kill_window(self, target: str) -> CommandResult:
        return self._run(["kill-window", "-t", target])

    def send_keys(self, target: str, *keys: str) -> CommandResult:
        return self._run(["send-keys", "-t", target, *keys])


class FakeTmuxAdapter(TmuxAdapter):
    """Testing double that keeps sessions, windows, and sent keys in memory.

    Targets resolve like tmux: a numeric window part is an index, otherwise
    the name must match exactly one window. A new session's first window lands
    on ``base_index``, which defaults to 0 as it does in tmux.
    """

    def __init__(
        self,
        sessions: dict[str, dict[int, str]] | None = None,
        *,
        attached: str | None = None,
        base_index: int = 0,
    ):
        super().__init__(runner=ProcessRunner())
        self._sessions: dict[str, dict[int, str]] = {
            name: dict(windows) for name, windows in (sessions or {}).items()
        }
        self.attached = attached
        self.base_index = base_index
        self.sent: dict[str, list[tuple[str, ...]]] = {}
        self.before_create: Callable[[], None] | None = None

    def _ok(self, stdout: str = "") -> CommandResult:
        return CommandResult(stdout=stdout, stderr="", exit_code=0)

    def _fail(self, stderr: str) -> CommandResult:
        return CommandResult(stdout="", stderr=stderr, exit_code=1)

    def _fire_before_create(self) -> None:
        hook, self.before_create = self.before_create, None
        if hook is not None:
            hook()

    def add_session(self, session_name: str, windows: dict[int, str] | None = None) -> None:
        self._sessions[session_name] = dict(windows or {})

    def windows(self, session_name: str) -> dict[int, str]:
        return dict(self._sessions.get(session_name, {}))

    def current_session(self) -> Optional[str]:
        return self.attached if self.attached in self._sessions else None

    def session_exists(self, session_name: str) -> bool:
        return session_name in self._sessions

    def list_sessions(self) -> list[str]:
        return sorted(self._sessions)

    def describe_sessions(self) -> CommandResult:
        if not self._sessions:
            return self._fail("no server running")
        lines = [f"{name}: {len(windows)} windows" for name, windows in sorted(self._sessions.items())]
        return self._ok("\n".join(lines) + "\n")

    def new_session(self, session_name: str, *, window_name: str, start_directory: str) -> CommandResult:  # noqa: ARG002
        self._fire_before_create()
        if session_name in self._sessions:
            return self._fail(f"duplicate session: {session_name}")
        self._sessions[session_name] = {self.base_index: window_name}
        return self._ok(f"{session_name}:{self.base_index}\n")

    def list_windows(self, session_name: str) -> list[WindowInfo]:
        windows = self._sessions.get(session_name, {})
        return [WindowInfo(session_name, index, name) for index, name in sorted(windows.items())]

    def new_window(
        self,
        session_name: str,
        *,
        window_name: str,
        start_directory: str,  # noqa: ARG002
        index: int | None = None,
    ) -> CommandResult:
        self._fire_before_create()
        windows = self._sessions.get(session_name)
        if windows is None:
            return self._fail(f"can't find session: {session_name}")
        if index is None:
            index = max(windows, default=self.base_index - 1) + 1
        elif index in windows:
            return self._fail(f"create window failed: index {index} in use")
        windows[index] = window_name
        return self._ok(f"{session_name}:{index}\n")

    def move_window(self, source: str, destination: str) -> CommandResult:
        resolved = self._resolve(source)
        if resolved is None:
            return self._fail(f"can't find window: {source}")
        session_name, index = resolved
        dest_session, _, dest_index = destination.partition(":")
        dest_windows = self._sessions.get(dest_session)
        if dest_windows is None or not dest_index.isdigit():
            return self._fail(f"can't find window: {destination}")
        if int(dest_index) in dest_windows:
            return self._fail(f"index {dest_index} in use")
        dest_windows[int(dest_index)] = self._sessions[session_name].pop(index)
        return self._ok()

    def kill_window(self, target: str) -> CommandResult:
        resolved = self._resolve(target)
        if resolved is None:
            return self._fail(f"can't find window: {target}")
        session_name, index = resolved
        del self._sessions[session_name][index]
        if not self._sessions[session_name]:
            del self._sessions[session_name]
        return self._ok()

    def send_keys(self, target: str, *keys: str) -> CommandResult:
        if self._resolve(target) is None:
            return self._fail(f"can't find window: {target}")
        self.sent.setdefault(target, []).append(tuple(keys))
        return self._ok()

    def _resolve(self, target: str) -> tuple[str, int] | None:
        session_name, _, window = target.partition(":")
        windows = self._sessions.get(session_name)
        if windows is None:
            return None
        if window.isdigit() and int(window) in windows:
            return session_name, int(window)
        matches = [index for index, name in windows.items() if name == window]
        if len(matches) != 1:
            return None
        return session_name, matches[0]


__all__ = ["TmuxAdapter", "FakeTmuxAdapter", "WindowInfo", "CREATED_WINDOW_FORMAT"]
