import asyncio
from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from genpool.domain.interfaces.ai_model import AIModel
from genpool.domain.models.ai import StructuredAIResponse
from genpool.infrastructure.cli.display import ConsoleDisplay
from genpool.infrastructure.config import settings
from genpool.infrastructure.credentials.pool import CredentialPool


class FakeProviderError(Exception):
    """Error shaped like an SDK error: message plus optional status and error code."""

    def __init__(self, message: str, status_code: Any = None, code: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class ScriptedModel(AIModel):
    """AIModel double whose outcome per secret is scripted by the test.

    `script[secret]` is a list consumed one entry per call; an Exception
    entry is raised, anything else is returned as response text. When a
    secret's list runs out, its last entry repeats.
    """

    provider_name = "fake"

    def __init__(self, script: Dict[str, List[Any]]):
        self.script = script
        self.calls: List[str] = []

    async def send_messages(self, secret, messages):
        self.calls.append(secret)
        outcomes = self.script[secret]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return StructuredAIResponse(content=outcome)


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def pool():
    return CredentialPool(error_threshold=3)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def run():
    """Drives a coroutine to completion from a synchronous test."""
    return asyncio.run


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keeps tests away from the developer's real config, .env and keys."""
    for name in ("GENPOOL_API_KEY", "OPENAI_API_KEY", "GROQ_API_KEY", "GENPOOL_POOL_API_KEYS", "POOL_API_KEYS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings, "DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml")
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", False)
    settings.clear_test_config()
    yield
    settings.clear_test_config()


@pytest.fixture
def mock_console_display(mocker):
    """Mocks the ConsoleDisplay to capture output easily.
    Patches the ConsoleDisplay where main.py builds it.
    """
    mock = mocker.MagicMock(spec=ConsoleDisplay)
    mocker.patch('genpool.main.ConsoleDisplay', return_value=mock)
    return mock


@pytest.fixture
def provider_error():
    return FakeProviderError


@pytest.fixture
def scripted_model():
    """Factory: scripted_model({secret: [outcome, ...]})."""
    return ScriptedModel
