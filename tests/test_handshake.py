import pytest

from multiclaude.config import EffectiveConfig
from multiclaude.errors import TmuxError
from multiclaude.tmux import FakeTmuxAdapter
from multiclaude.workers.handshake import AgentStarter
from multiclaude.workers.handshake import HandshakeTiming
from multiclaude.workers.session import WindowManager


def test_handshake_sequence(config: EffectiveConfig) -> None:
    adapter = FakeTmuxAdapter({"repo-agents": {1: "feature"}})
    sleeps: list[float] = []
    starter = AgentStarter(timing=HandshakeTiming(sleep=sleeps.append))

    starter.start(WindowManager(config, adapter), "repo-agents:feature")

    assert adapter.sent["repo-agents:feature"] == [
        ('claude "$(cat prompt.md)"', "C-m"),
        ("C-m",),
        ("C-m",),
        ("S-Tab",),
    ]
    assert sleeps == [2.0, 1.0, 1.0]


def test_handshake_delays_are_configurable(config: EffectiveConfig) -> None:
    adapter = FakeTmuxAdapter({"s": {1: "w"}})
    sleeps: list[float] = []
    timing = HandshakeTiming(
        before_first_confirm=0.0,
        before_second_confirm=0.0,
        before_mode_toggle=0.0,
        sleep=sleeps.append,
    )
    starter = AgentStarter(agent_bin="my-agent", prompt_file="task.md", timing=timing)

    starter.start(WindowManager(config, adapter), "s:w")

    assert adapter.sent["s:w"][0] == ('my-agent "$(cat task.md)"', "C-m")
    assert sleeps == [0.0, 0.0, 0.0]


def test_undeliverable_command_raises(config: EffectiveConfig) -> None:
    adapter = FakeTmuxAdapter({"s": {1: "w", 2: "w"}})
    sleeps: list[float] = []
    starter = AgentStarter(timing=HandshakeTiming(sleep=sleeps.append))

    with pytest.raises(TmuxError, match="s:w"):
        starter.start(WindowManager(config, adapter), "s:w")

    assert adapter.sent == {}
    assert sleeps == []
