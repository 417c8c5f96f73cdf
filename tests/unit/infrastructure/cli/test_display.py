import pytest
from unittest.mock import MagicMock

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from genpool.domain.models.credential import CredentialHealth, PoolStats
from genpool.infrastructure.cli.display import ConsoleDisplay
from genpool.infrastructure.credentials.pool import CredentialPool

@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()

@pytest.fixture
def console_display(mock_console: MagicMock):
    """Fixture to create a ConsoleDisplay instance with a mocked console."""
    return ConsoleDisplay(console=mock_console)

@pytest.fixture
def recording_display():
    return ConsoleDisplay(console=Console(record=True, width=160, color_system=None))

def test_display_output_as_json(console_display: ConsoleDisplay, mock_console: MagicMock):
    """JSON output is wrapped in a panel with syntax highlighting."""
    console_display.display_output('{"a": 1}', title="Recovered", as_json=True)

    mock_console.print.assert_called_once()
    panel = mock_console.print.call_args.args[0]
    assert isinstance(panel, Panel)
    assert isinstance(panel.renderable, Syntax)
    assert "Recovered" in panel.title

def test_display_error(recording_display: ConsoleDisplay):
    recording_display.display_error("Something went wrong")

    text = recording_display.console.export_text()
    assert "Error" in text
    assert "Something went wrong" in text

def test_display_credentials_hides_secrets(recording_display: ConsoleDisplay):
    pool = CredentialPool()
    pool.register("sk-super-secret", "Main")
    pool.register("sk-other-secret")
    pool.report_failure("sk-other-secret", Exception("API key expired"))

    recording_display.display_credentials(pool.views())

    text = recording_display.console.export_text()
    assert "Main" in text
    assert "Key 2" in text
    assert CredentialHealth.SUSPENDED.value in text
    assert "secret" not in text

def test_display_credentials_empty(recording_display: ConsoleDisplay):
    recording_display.display_credentials([])

    assert "No API keys registered." in recording_display.console.export_text()

def test_display_stats(recording_display: ConsoleDisplay):
    recording_display.display_stats(PoolStats(total=3, usable=2, suspended=1, degraded=1))

    text = recording_display.console.export_text()
    assert "Total keys" in text
    assert "Suspended" in text

def test_get_prompt_reads_a_line(recording_display: ConsoleDisplay, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda *args: "list")

    assert recording_display.get_prompt("genpool> ") == "list"
    assert "genpool>" in recording_display.console.export_text()
