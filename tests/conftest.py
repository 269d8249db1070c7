import io

import pytest
from rich.console import Console

import histrank


@pytest.fixture
def err_console(monkeypatch):
    """Replace the stderr console with a wide, uncolored buffer."""
    buf = io.StringIO()
    monkeypatch.setattr(histrank, "console", Console(file=buf, width=300, theme=histrank.CUSTOM_THEME))
    return buf


@pytest.fixture
def out_console(monkeypatch):
    buf = io.StringIO()
    monkeypatch.setattr(histrank, "out_console", Console(file=buf, width=300, theme=histrank.CUSTOM_THEME))
    return buf


@pytest.fixture
def bash_home(tmp_path, monkeypatch):
    """A $HOME with bash as the login shell and an empty history file."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("SHELL", "/bin/bash")
    monkeypatch.delenv("HISTFILE", raising=False)
    (tmp_path / ".bash_history").write_text("")
    return tmp_path
