import os

from parley.credentials import CredentialGate, GateState, TerminalKeySelector


class FakeSelector:
    def __init__(self, has_key=False, check_error=None, open_error=None):
        self.has_key = has_key
        self.check_error = check_error
        self.open_error = open_error
        self.opened = 0

    def has_selected_api_key(self) -> bool:
        if self.check_error:
            raise self.check_error
        return self.has_key

    def open_select_key(self) -> None:
        self.opened += 1
        if self.open_error:
            raise self.open_error


def test_gate_uses_selector_when_present(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    gate = CredentialGate(selector=FakeSelector(has_key=False))

    assert gate.state == GateState.CHECKING
    assert gate.check() is False
    assert gate.state == GateState.MISSING


def test_gate_falls_back_to_env_var(monkeypatch):
    monkeypatch.delenv("MY_KEY", raising=False)
    gate = CredentialGate(env_var="MY_KEY")
    assert gate.check() is False

    monkeypatch.setenv("MY_KEY", "secret")
    assert gate.check() is True
    assert gate.has_api_key


def test_selector_error_counts_as_missing(caplog):
    gate = CredentialGate(selector=FakeSelector(check_error=RuntimeError("no bridge")))

    assert gate.check() is False
    assert "Error checking API key" in caplog.text


def test_connect_assumes_success():
    selector = FakeSelector()
    gate = CredentialGate(selector=selector)
    gate.check()

    assert gate.connect() is True
    assert selector.opened == 1
    assert gate.state == GateState.READY


def test_connect_failure_is_logged(caplog):
    gate = CredentialGate(selector=FakeSelector(open_error=ValueError("closed")))
    gate.check()

    assert gate.connect() is False
    assert gate.state == GateState.MISSING
    assert "Failed to select key" in caplog.text


def test_terminal_selector_exports_key(monkeypatch):
    monkeypatch.setenv("PARLEY_TEST_KEY", "")
    monkeypatch.setattr("getpass.getpass", lambda prompt: "  abc123 ")
    selector = TerminalKeySelector("PARLEY_TEST_KEY")
    assert selector.has_selected_api_key() is False

    gate = CredentialGate(selector=selector, env_var="PARLEY_TEST_KEY")
    assert gate.connect() is True

    assert selector.has_selected_api_key() is True
    assert os.environ["PARLEY_TEST_KEY"] == "abc123"
