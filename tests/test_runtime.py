import base64
import io
from pathlib import Path

import pytest

from parley.cli import _main
from parley.config import AppConfig, ModelId
from parley.runtime.builtins import BuiltinCommands
from parley.runtime.coordinator import SendState
from parley.runtime.repl import ParleyREPL
from parley.runtime.router import InputRouter
from parley.runtime.runtime import ChatRuntime
from parley.sessions.schema import ChatSession, Message
from parley.sessions.store import FileKeyValueStore, MemoryKeyValueStore, SessionStore


class ScriptedClient:
    def __init__(self, fragments=("ok",), error=None):
        self.fragments = fragments
        self.error = error
        self.calls = []

    async def stream_chat(self, history, text, image, model_id, image_config=None):
        self.calls.append((text, image, model_id, image_config))
        for fragment in self.fragments:
            yield fragment
        if self.error is not None:
            raise self.error


@pytest.fixture
def runtime(tmp_path: Path):
    runtime = ChatRuntime(
        AppConfig(data_dir=tmp_path),
        backend=MemoryKeyValueStore(),
        client=ScriptedClient(),
        echo=False,
    )
    runtime.open()
    return runtime


@pytest.fixture
def builtins(runtime):
    return BuiltinCommands(runtime)


def _png(tmp_path: Path) -> Path:
    path = tmp_path / "pixel.png"
    path.write_bytes(b"\x89PNG\r\n")
    return path


def test_router_splits_commands(builtins):
    router = InputRouter(builtins)

    assert router.route("hello there").kind == "prompt"
    route = router.route("/rename My chat")
    assert (route.kind, route.name, route.args) == ("builtin", "rename", "My chat")
    assert router.route("/bogus").kind == "unknown"


@pytest.mark.asyncio
async def test_runtime_send_consumes_attached_image(runtime, tmp_path):
    runtime.attach_image(_png(tmp_path))
    expected = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n").decode("ascii")
    assert runtime.pending_image == expected

    result = await runtime.send("what is this?")

    assert result.state == SendState.SEALED
    assert runtime.pending_image is None
    assert runtime.manager.current_session.messages[0].image == expected
    assert runtime.last_send_state == SendState.SEALED


@pytest.mark.asyncio
async def test_runtime_passes_image_config_only_for_imagine(runtime):
    client = runtime.coordinator.client
    await runtime.send("plain")
    runtime.manager.set_model(ModelId.IMAGINE)
    runtime.image_config.style = "Anime"
    await runtime.send("a robot")

    assert client.calls[0][3] is None
    assert client.calls[1][2] == ModelId.IMAGINE
    assert client.calls[1][3].style == "Anime"


def test_attach_rejects_non_image(runtime, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hi", encoding="utf-8")

    with pytest.raises(ValueError):
        runtime.attach_image(path)


def test_open_applies_model_override(tmp_path):
    backend = MemoryKeyValueStore()
    runtime = ChatRuntime(
        AppConfig(data_dir=tmp_path, default_model=ModelId.PRO),
        backend=backend,
        client=ScriptedClient(),
        echo=False,
    )
    runtime.open()

    assert runtime.current_model == ModelId.PRO
    assert SessionStore(backend).load_default_model() == ModelId.PRO


def test_session_commands(runtime, builtins, capsys):
    first_id = runtime.manager.current_session_id
    assert builtins.handle("new", "") is True
    second_id = runtime.manager.current_session_id
    assert second_id != first_id

    builtins.handle("rename", "Second")
    builtins.handle("switch", first_id[:8])
    assert runtime.manager.current_session_id == first_id

    builtins.handle("archive", "")
    assert runtime.manager.current_session.is_archived is True
    builtins.handle("unarchive", first_id[:8])
    assert runtime.manager.current_session.is_archived is False

    builtins.handle("delete", "")
    assert runtime.manager.current_session_id == second_id

    builtins.handle("sessions", "")
    out = capsys.readouterr().out
    assert "Second" in out


def test_unknown_session_prefix_is_reported(builtins, capsys):
    assert builtins.handle("switch", "no-such-id") is True

    assert "No session matches" in capsys.readouterr().out


def test_model_command_is_sticky(runtime, builtins):
    builtins.handle("model", "creative")
    runtime.manager.create_session()

    assert runtime.current_model == ModelId.CREATIVE


def test_bad_model_and_aspect_are_reported(runtime, builtins, capsys):
    builtins.handle("model", "turbo")
    builtins.handle("aspect", "5:4")

    out = capsys.readouterr().out
    assert "Unknown model" in out
    assert "Unsupported aspect ratio" in out
    assert runtime.image_config.aspect_ratio == "1:1"


def test_image_settings_commands(runtime, builtins):
    builtins.handle("style", "Watercolor")
    builtins.handle("negative", "text, logos")
    builtins.handle("aspect", "16:9")

    assert runtime.image_config.aspect_ratio == "16:9"
    assert runtime.image_config.style == "Watercolor"
    assert runtime.image_config.negative_prompt == "text, logos"


@pytest.mark.asyncio
async def test_dismiss_removes_error_message(runtime, builtins):
    runtime.coordinator.client = ScriptedClient(fragments=(), error=RuntimeError("down"))
    await runtime.send("hello")
    assert any(m.is_error for m in runtime.manager.current_session.messages)

    builtins.handle("dismiss", "")

    messages = runtime.manager.current_session.messages
    assert [m.role for m in messages] == ["user"]


def test_clear_and_quit(runtime, builtins):
    session_id = runtime.manager.current_session_id
    runtime.manager.append_message(session_id, Message(role="user", content="hi"))

    builtins.handle("clear", "")

    assert runtime.manager.current_session.messages == []
    assert runtime.manager.current_session.title == "hi"
    assert builtins.handle("quit", "") is False


@pytest.mark.asyncio
async def test_repl_reports_session_created(runtime, capsys):
    runtime.manager.delete_session(runtime.manager.current_session_id)
    repl = ParleyREPL(runtime)

    await repl.process_user_message("hello")

    assert "Send your message again" in capsys.readouterr().out
    assert runtime.manager.current_session is not None


def _scripted_input(monkeypatch, *lines):
    queue = list(lines)

    def fake_input(prompt=""):
        item = queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    monkeypatch.setattr("builtins.input", fake_input)


def test_repl_sends_prompts_until_interrupted(runtime, monkeypatch, capsys):
    _scripted_input(monkeypatch, "hello", KeyboardInterrupt())
    repl = ParleyREPL(runtime)

    repl.run()

    assert "Interrupted" in capsys.readouterr().out
    messages = runtime.manager.current_session.messages
    assert [(m.role, m.content) for m in messages] == [("user", "hello"), ("model", "ok")]
    assert runtime.manager.is_generating is False


def test_repl_sends_initial_message_and_stops_on_eof(runtime, monkeypatch):
    _scripted_input(monkeypatch, EOFError())
    repl = ParleyREPL(runtime)

    repl.run(initial_message="first")

    assert runtime.manager.current_session.messages[0].content == "first"


def test_cli_lists_sessions(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("PARLEY_DATA_DIR", str(tmp_path))
    archived = ChatSession(title="Old trip", is_archived=True)
    SessionStore(FileKeyValueStore(tmp_path / "state.json")).persist(
        [ChatSession(title="Fresh"), archived]
    )

    assert _main(["sessions", "--archived"]) == 0

    out = capsys.readouterr().out
    assert "Old trip (archived)" in out
    assert "Fresh" not in out


def test_cli_stops_at_key_gate(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("PARLEY_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("PARLEY_API_KEY_ENV", "PARLEY_MISSING_KEY")
    monkeypatch.delenv("PARLEY_MISSING_KEY", raising=False)
    monkeypatch.setattr("sys.stdin", io.StringIO())

    assert _main(["send", "hello"]) == 1

    assert "Connect API Key" in capsys.readouterr().err
    assert not (tmp_path / "state.json").exists()
