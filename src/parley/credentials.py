import getpass
import logging
import os
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class KeySelector(Protocol):
    def has_selected_api_key(self) -> bool: ...

    def open_select_key(self) -> None: ...


class TerminalKeySelector:
    """Asks for the API key on the terminal and exports it for the current process."""

    def __init__(self, env_var: str):
        self.env_var = env_var

    def has_selected_api_key(self) -> bool:
        return bool(os.environ.get(self.env_var))

    def open_select_key(self) -> None:
        key = getpass.getpass(f"{self.env_var}: ").strip()
        if not key:
            raise ValueError("No API key entered")
        os.environ[self.env_var] = key


class GateState(str, Enum):
    CHECKING = "checking"
    READY = "ready"
    MISSING = "missing"


class CredentialGate:
    def __init__(self, selector: KeySelector | None = None, env_var: str = "GEMINI_API_KEY"):
        self.selector = selector
        self.env_var = env_var
        self.state = GateState.CHECKING

    @property
    def has_api_key(self) -> bool:
        return self.state == GateState.READY

    def check(self) -> bool:
        if self.selector is not None:
            try:
                has_key = bool(self.selector.has_selected_api_key())
            except Exception as e:
                logger.error(f"Error checking API key: {e}")
                has_key = False
        else:
            has_key = bool(os.environ.get(self.env_var))
        self.state = GateState.READY if has_key else GateState.MISSING
        return has_key

    def connect(self) -> bool:
        if self.selector is None:
            return self.has_api_key
        try:
            self.selector.open_select_key()
        except Exception as e:
            logger.error(f"Failed to select key: {e}")
            return self.has_api_key
        self.state = GateState.READY
        return True
