import asyncio
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from genpool.core.command_handler import SHELL_HELP, CommandHandler
from genpool.core.services.generation_service import GenerationService
from genpool.domain.errors import InvalidCredentialError, ServiceUnavailableError
from genpool.domain.interfaces.user_interface import UserInterface
from genpool.domain.models.ai import (
    GenerationOutcome, OUTCOME_RECOVERY_FAILURE, OUTCOME_SUCCESS, OUTCOME_TERMINAL_ERROR,
)
from genpool.domain.models.credential import (
    CredentialHealth, CredentialTestResult, CredentialView, PoolStats, ValidationReport,
)
from genpool.domain.models.recovery import RecoveryFailure
from genpool.infrastructure.recovery.json_recovery import StructuredOutputRecovery

@pytest.fixture
def mock_generation_service():
    service = MagicMock(spec=GenerationService)
    service.recovery = StructuredOutputRecovery()
    service.usable_count.return_value = 1
    for name in ("register_credential", "test_credential", "validate_all", "execute_and_recover"):
        setattr(service, name, AsyncMock())
    return service

@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)

@pytest.fixture
def command_handler(mock_generation_service, mock_ui):
    """Fixture to create CommandHandler with mocked services."""
    return CommandHandler(generation_service=mock_generation_service, ui=mock_ui)

def test_handle_add_key(command_handler, mock_generation_service, mock_ui):
    mock_generation_service.register_credential.return_value = "key_1_abcdef"

    assert asyncio.run(command_handler.handle_add_key("sk-new", "Main", validate=True))

    mock_generation_service.register_credential.assert_awaited_once_with("sk-new", "Main", validate=True)
    mock_ui.display_info.assert_called_once_with("API key added successfully: key_1_abcdef (working keys: 1)")

def test_handle_add_key_invalid(command_handler, mock_generation_service, mock_ui):
    mock_generation_service.register_credential.side_effect = InvalidCredentialError("API key expired")

    assert not asyncio.run(command_handler.handle_add_key("sk-dead", validate=True))

    mock_ui.display_error.assert_called_once_with("Invalid API key: API key expired")

def test_handle_remove_key_not_found(command_handler, mock_generation_service, mock_ui):
    mock_generation_service.remove_credential.return_value = False

    assert not command_handler.handle_remove_key("key_missing")

    mock_ui.display_error.assert_called_once_with("API key not found: key_missing")

def test_handle_rename_key(command_handler, mock_generation_service, mock_ui):
    mock_generation_service.rename_credential.return_value = True

    assert command_handler.handle_rename_key("key_1", "Primary")

    mock_ui.display_info.assert_called_once_with("API key key_1 renamed to 'Primary'")

def test_handle_list_keys(command_handler, mock_generation_service, mock_ui):
    stats = PoolStats(total=0, usable=0, suspended=0, degraded=0)
    mock_generation_service.list_credentials.return_value = []
    mock_generation_service.get_stats.return_value = stats

    assert command_handler.handle_list_keys()

    mock_ui.display_credentials.assert_called_once_with([])
    mock_ui.display_stats.assert_called_once_with(stats)

def test_handle_test_key(command_handler, mock_generation_service, mock_ui):
    mock_generation_service.test_credential.return_value = CredentialTestResult(is_valid=False, error="Unauthorized")

    assert not asyncio.run(command_handler.handle_test_key("sk-x"))

    mock_ui.display_error.assert_called_once_with("Invalid API key: Unauthorized")

def test_handle_validate_and_cleanup(command_handler, mock_generation_service, mock_ui):
    mock_generation_service.validate_all.return_value = ValidationReport(tested=2, valid=1, invalid=1)
    mock_generation_service.cleanup.return_value = 1

    assert asyncio.run(command_handler.handle_validate())
    assert command_handler.handle_cleanup()

    mock_ui.display_info.assert_any_call("Validated 2 keys: 1 valid, 1 invalid (working keys: 1)")
    mock_ui.display_info.assert_any_call("Removed 1 expired/invalid API keys (working keys: 1)")

def test_handle_generate_success(command_handler, mock_generation_service, mock_ui):
    mock_generation_service.execute_and_recover.return_value = GenerationOutcome(
        kind=OUTCOME_SUCCESS, value={"a": 1}, strategy="direct_parse", raw_text='{"a": 1}')

    assert asyncio.run(command_handler.handle_generate("make it", "object", 2))

    mock_generation_service.execute_and_recover.assert_awaited_once_with("make it", "object", 2)
    mock_ui.display_output.assert_called_once_with('{\n  "a": 1\n}', title="Recovered (direct_parse)", as_json=True)
    mock_ui.display_error.assert_not_called()

def test_handle_generate_terminal_error(command_handler, mock_generation_service, mock_ui):
    error = ServiceUnavailableError("groq API is currently unavailable.")
    mock_generation_service.execute_and_recover.return_value = GenerationOutcome(
        kind=OUTCOME_TERMINAL_ERROR, error=error)

    assert not asyncio.run(command_handler.handle_generate("make it"))

    mock_ui.display_error.assert_called_once_with("groq API is currently unavailable.")

def test_handle_generate_recovery_failure(command_handler, mock_generation_service, mock_ui):
    failure = RecoveryFailure(original_length=4, preview="nope", last_strategy="direct_parse",
                              last_strategy_index=2, message="Could not recover")
    mock_generation_service.execute_and_recover.return_value = GenerationOutcome(
        kind=OUTCOME_RECOVERY_FAILURE, raw_text="nope", failure=failure)

    assert not asyncio.run(command_handler.handle_generate("make it"))

    mock_ui.display_warning.assert_called_once_with("Could not recover")
    mock_ui.display_output.assert_called_once_with("nope", title="Raw response")

def test_handle_generate_unexpected_error(command_handler, mock_generation_service, mock_ui):
    mock_generation_service.execute_and_recover.side_effect = RuntimeError("boom")

    assert not asyncio.run(command_handler.handle_generate("make it"))

    mock_ui.display_error.assert_called_once_with("Generation failed: boom")

def test_handle_repair(command_handler, mock_ui):
    assert command_handler.handle_repair("{'a': 1}")
    mock_ui.display_output.assert_called_once_with('{\n  "a": 1\n}', title="Recovered (quote_style)", as_json=True)

    mock_ui.reset_mock()
    assert not command_handler.handle_repair("plain words")
    mock_ui.display_error.assert_called_once()
    assert "Preview: plain words" in mock_ui.display_error.call_args.args[0]

def test_shell_routes_commands_until_exit(command_handler, mock_generation_service, mock_ui):
    mock_ui.get_prompt.side_effect = ["", "help", "frobnicate", "repair {'a': 1}", "stats", "quit", "list"]
    mock_generation_service.get_stats.return_value = PoolStats(total=0, usable=0, suspended=0, degraded=0)

    assert asyncio.run(command_handler.run_shell())

    assert mock_ui.get_prompt.call_count == 6
    mock_ui.display_info.assert_any_call(SHELL_HELP)
    mock_ui.display_warning.assert_called_once_with(
        "Unknown or incomplete command: frobnicate. Type 'help' for commands.")
    mock_ui.display_output.assert_called_once_with('{\n  "a": 1\n}', title="Recovered (quote_style)", as_json=True)
    mock_ui.display_stats.assert_called_once()
    mock_ui.display_credentials.assert_not_called()

def test_shell_resolves_labels_to_ids(command_handler, mock_generation_service, mock_ui):
    view = CredentialView(id="key_1_abcdef", label="Main", health=CredentialHealth.HEALTHY,
                          error_count=0, last_used_at=None, created_at=datetime.now(timezone.utc))
    mock_generation_service.list_credentials.return_value = [view]
    mock_generation_service.remove_credential.return_value = True
    mock_generation_service.execute_and_recover.return_value = GenerationOutcome(
        kind=OUTCOME_SUCCESS, value=["red", "green", "blue"], strategy="direct_parse", raw_text="[]")
    mock_ui.get_prompt.side_effect = ["remove Main", "generate --array list three colours", EOFError()]

    assert asyncio.run(command_handler.run_shell())

    mock_generation_service.remove_credential.assert_called_once_with("key_1_abcdef")
    mock_generation_service.execute_and_recover.assert_awaited_once_with("list three colours", "array", None)
    mock_ui.display_info.assert_any_call("Ending shell session.")
