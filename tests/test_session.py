import logging
from pathlib import Path

import pytest

from multiclaude.config import EffectiveConfig
from multiclaude.errors import TmuxError
from multiclaude.process import CommandResult
from multiclaude.process import ProcessRunner
from multiclaude.tmux import FakeTmuxAdapter
from multiclaude.tmux import TmuxAdapter
from multiclaude.workers.models import WindowRef
from multiclaude.workers.models import WorkerDescriptor
from multiclaude.workers.session import WindowManager
from multiclaude.workers.session import is_agent_window


@pytest.fixture()
def descriptor(config: EffectiveConfig, plan_file: Path) -> WorkerDescriptor:
    return WorkerDescriptor.build("feature-x", plan_file, config)


def test_next_index_is_max_plus_one(config: EffectiveConfig, descriptor: WorkerDescriptor) -> None:
    adapter = FakeTmuxAdapter({"repo-agents": {1: "a", 3: "b", 4: "c"}})
    manager = WindowManager(config, adapter)

    assert manager.next_window_index("repo-agents") == 5
    window = manager.ensure_window(descriptor)

    assert window == WindowRef(session="repo-agents", index=5, name="feature-x")
    assert adapter.windows("repo-agents")[5] == "feature-x"
    assert 2 not in adapter.windows("repo-agents")


def test_next_index_starts_at_one(config: EffectiveConfig, adapter: FakeTmuxAdapter) -> None:
    adapter.add_session("empty")
    assert WindowManager(config, adapter).next_window_index("empty") == 1


def test_creates_session_with_first_window_at_one(
    config: EffectiveConfig, adapter: FakeTmuxAdapter, descriptor: WorkerDescriptor
) -> None:
    assert adapter.base_index == 0

    window = WindowManager(config, adapter).ensure_window(descriptor)

    assert window.target == "repo-agents:1"
    assert adapter.windows("repo-agents") == {1: "feature-x"}


def test_session_already_at_base_index_one(config: EffectiveConfig, descriptor: WorkerDescriptor) -> None:
    adapter = FakeTmuxAdapter(base_index=1)
    window = WindowManager(config, adapter).ensure_window(descriptor)
    assert window.target == "repo-agents:1"
    assert adapter.windows("repo-agents") == {1: "feature-x"}


def test_prefers_attached_session(config: EffectiveConfig, descriptor: WorkerDescriptor) -> None:
    adapter = FakeTmuxAdapter({"mine": {1: "shell"}, "repo-agents": {1: "other"}}, attached="mine")
    window = WindowManager(config, adapter).ensure_window(descriptor)
    assert window.target == "mine:2"
    assert adapter.windows("mine") == {1: "shell", 2: "feature-x"}
    assert adapter.windows("repo-agents") == {1: "other"}


def test_concurrently_created_session_is_reused(
    config: EffectiveConfig, adapter: FakeTmuxAdapter, descriptor: WorkerDescriptor
) -> None:
    adapter.before_create = lambda: adapter.add_session("repo-agents", {1: "sibling"})

    window = WindowManager(config, adapter).ensure_window(descriptor)

    assert window.target == "repo-agents:2"
    assert adapter.windows("repo-agents") == {1: "sibling", 2: "feature-x"}


def test_index_collision_defers_to_tmux(
    config: EffectiveConfig, adapter: FakeTmuxAdapter, descriptor: WorkerDescriptor
) -> None:
    adapter.add_session("repo-agents", {1: "first"})
    adapter.before_create = lambda: adapter._sessions["repo-agents"].__setitem__(2, "racer")

    window = WindowManager(config, adapter).ensure_window(descriptor)

    assert window.index == 3
    assert adapter.windows("repo-agents") == {1: "first", 2: "racer", 3: "feature-x"}


def test_same_branch_twice_gets_distinct_targets(
    config: EffectiveConfig, adapter: FakeTmuxAdapter, descriptor: WorkerDescriptor
) -> None:
    manager = WindowManager(config, adapter)

    first = manager.ensure_window(descriptor)
    second = manager.ensure_window(descriptor)

    assert (first.target, second.target) == ("repo-agents:1", "repo-agents:2")
    # the name alone no longer identifies a window
    assert manager.send_text("repo-agents:feature-x", "ls") is False
    assert manager.send_text(second.target, "ls") is True
    assert adapter.sent == {"repo-agents:2": [("ls", "C-m")]}

    assert manager.kill_named_window("feature-x") is True
    assert adapter.list_sessions() == []


class RefusingTmuxAdapter(FakeTmuxAdapter):
    def new_session(self, session_name: str, *, window_name: str, start_directory: str) -> CommandResult:
        return self._fail("server exited unexpectedly")

    def new_window(self, session_name: str, *, window_name: str, start_directory: str, index=None) -> CommandResult:
        return self._fail("create window failed: server exited unexpectedly")


def test_session_creation_failure_raises(config: EffectiveConfig, descriptor: WorkerDescriptor) -> None:
    manager = WindowManager(config, RefusingTmuxAdapter())
    with pytest.raises(TmuxError, match="server exited unexpectedly"):
        manager.ensure_window(descriptor)


def test_window_creation_failure_raises(config: EffectiveConfig, descriptor: WorkerDescriptor) -> None:
    adapter = RefusingTmuxAdapter({"repo-agents": {1: "shell"}})
    with pytest.raises(TmuxError, match="Failed to create tmux window feature-x"):
        WindowManager(config, adapter).ensure_window(descriptor)
    assert adapter.windows("repo-agents") == {1: "shell"}


def test_find_window_across_sessions(config: EffectiveConfig) -> None:
    adapter = FakeTmuxAdapter({"one": {1: "feature"}, "two": {1: "feature-x"}})
    manager = WindowManager(config, adapter)

    assert manager.find_window("feature-x") == WindowRef(session="two", index=1, name="feature-x")
    assert manager.find_window("missing") is None
    assert WindowManager(config, FakeTmuxAdapter()).find_window("feature-x") is None


def test_kill_missing_window_is_informational(
    config: EffectiveConfig, adapter: FakeTmuxAdapter, caplog: pytest.LogCaptureFixture
) -> None:
    manager = WindowManager(config, adapter)
    with caplog.at_level(logging.INFO):
        assert manager.kill_named_window("ghost") is False
        assert manager.kill_window("nowhere:ghost") is False
    assert all(record.levelno == logging.INFO for record in caplog.records)


def test_kill_named_window(config: EffectiveConfig) -> None:
    adapter = FakeTmuxAdapter({"work": {1: "editor", 2: "feature-x"}})
    assert WindowManager(config, adapter).kill_named_window("feature-x") is True
    assert adapter.windows("work") == {1: "editor"}


def test_list_agent_windows_uses_name_conventions(config: EffectiveConfig) -> None:
    adapter = FakeTmuxAdapter(
        {
            "work": {1: "editor", 2: "agent-foo", 3: "integration-tests"},
            "other": {1: "deadbeef-1234", 2: "notes"},
        }
    )
    refs = WindowManager(config, adapter).list_agent_windows()
    assert {ref.label for ref in refs} == {"work:agent-foo", "work:integration-tests", "other:deadbeef-1234"}
    assert {ref.target for ref in refs} == {"work:2", "work:3", "other:1"}


def test_is_agent_window() -> None:
    assert is_agent_window("integration-1")
    assert is_agent_window("my-agent-2")
    assert is_agent_window("0123abcd")
    assert not is_agent_window("feature-x")
    assert not is_agent_window("abc")


def test_send_text_and_key(config: EffectiveConfig) -> None:
    adapter = FakeTmuxAdapter({"work": {1: "feature-x"}})
    manager = WindowManager(config, adapter)

    assert manager.send_text("work:feature-x", "ls") is True
    assert manager.send_key("work:feature-x", "S-Tab") is True
    assert manager.send_key("work:missing", "C-m") is False
    assert adapter.sent["work:feature-x"] == [("ls", "C-m"), ("S-Tab",)]


class StubRunner(ProcessRunner):
    def __init__(self, responses: dict[str, CommandResult]) -> None:
        super().__init__()
        self.responses = responses
        self.calls: list[list[str]] = []

    def run(self, command, args=(), *, cwd=None):  # noqa: ARG002
        self.calls.append([command, *args])
        return self.responses.get(args[0], CommandResult("", "no server running", 1))


def test_tmux_adapter_parses_windows() -> None:
    runner = StubRunner(
        {
            "list-sessions": CommandResult("work\nother\n", "", 0),
            "list-windows": CommandResult("1\teditor\n4\tagent-a\n", "", 0),
        }
    )
    adapter = TmuxAdapter(runner)

    assert adapter.list_sessions() == ["work", "other"]
    windows = adapter.list_windows("work")
    assert [(w.index, w.name) for w in windows] == [(1, "editor"), (4, "agent-a")]
    assert runner.calls[-1][:3] == ["tmux", "list-windows", "-t"]


def test_tmux_adapter_tolerates_missing_server() -> None:
    adapter = TmuxAdapter(StubRunner({}))
    assert adapter.list_sessions() == []
    assert adapter.list_windows("work") == []
    assert adapter.session_exists("work") is False
    assert adapter.current_session() is None


def test_tmux_adapter_new_window_target() -> None:
    runner = StubRunner({"new-window": CommandResult("", "", 0)})
    adapter = TmuxAdapter(runner)

    adapter.new_window("work", window_name="w", start_directory="/tmp", index=3)
    adapter.new_window("work", window_name="w", start_directory="/tmp")

    assert runner.calls[0] == [
        "tmux", "new-window", "-t", "work:3", "-n", "w", "-c", "/tmp", "-P", "-F", "#{session_name}:#{window_index}"
    ]
    assert runner.calls[1][3] == "work:"


def test_new_session_window_is_moved_to_index_one(config: EffectiveConfig, descriptor: WorkerDescriptor) -> None:
    runner = StubRunner(
        {
            "new-session": CommandResult("repo-agents:0\n", "", 0),
            "move-window": CommandResult("", "", 0),
        }
    )

    window = WindowManager(config, TmuxAdapter(runner)).ensure_window(descriptor)

    assert window == WindowRef(session="repo-agents", index=1, name="feature-x")
    assert runner.calls[-1] == ["tmux", "move-window", "-s", "repo-agents:0", "-t", "repo-agents:1"]
