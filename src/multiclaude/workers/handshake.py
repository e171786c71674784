"""Start the agent CLI in a worker window and clear its trust prompt.

The agent CLI asks for confirmation on first run and offers no programmatic
way to answer, so the prompt is dismissed with keystrokes sent after fixed
delays.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from dataclasses import field
from typing import Callable

from ..errors import TmuxError
from .session import WindowManager

logger = logging.getLogger(__name__)

CONFIRM_KEY = "C-m"
AUTO_ACCEPT_KEY = "S-Tab"


@dataclass(frozen=True)
class HandshakeTiming:
    before_first_confirm: float = 2.0
    before_second_confirm: float = 1.0
    before_mode_toggle: float = 1.0
    sleep: Callable[[float], None] = time.sleep


@dataclass(frozen=True)
class AgentStarter:
    agent_bin: str = "claude"
    prompt_file: str = "prompt.md"
    timing: HandshakeTiming = field(default_factory=HandshakeTiming)

    def command_line(self) -> str:
        return f'{self.agent_bin} "$(cat {self.prompt_file})"'

    def start(self, windows: WindowManager, target: str) -> None:
        """Type the agent command into ``target`` and answer its startup prompts.

        Raises ``TmuxError`` when the command cannot be delivered.
        """
        timing = self.timing
        if not windows.send_text(target, self.command_line(), enter=True):
            raise TmuxError(f"Could not start the agent in tmux window {target}")

        timing.sleep(timing.before_first_confirm)
        windows.send_key(target, CONFIRM_KEY)

        timing.sleep(timing.before_second_confirm)
        windows.send_key(target, CONFIRM_KEY)

        timing.sleep(timing.before_mode_toggle)
        # Shift+Tab switches the agent into auto-accept edits mode.
        windows.send_key(target, AUTO_ACCEPT_KEY)
        logger.debug("Agent handshake sent to %s", target)


__all__ = ["AgentStarter", "HandshakeTiming", "CONFIRM_KEY", "AUTO_ACCEPT_KEY"]
