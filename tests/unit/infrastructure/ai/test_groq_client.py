import asyncio
from unittest.mock import MagicMock, patch

import pytest
from groq import AuthenticationError, InternalServerError

from genpool.domain.errors import ErrorClass
from genpool.infrastructure.ai import create_ai_model
from genpool.infrastructure.ai.groq.groq_client import GroqClient
from genpool.infrastructure.ai.openai.gpt_client import GptClient
from genpool.infrastructure.credentials.classification import classify_error

@pytest.fixture
def mock_groq_client():
    mock_client = MagicMock()
    mock_choice = MagicMock()
    mock_choice.message.content = '[1, 2, 3]'
    mock_completion = MagicMock()
    mock_completion.choices = [mock_choice]
    mock_completion.usage = None
    mock_completion.model = GroqClient.DEFAULT_MODEL
    mock_client.chat.completions.create.return_value = mock_completion
    return mock_client

@patch('genpool.infrastructure.ai.groq.groq_client.GroqSDKClient')
def test_invoke_returns_text(mock_constructor, mock_groq_client):
    mock_constructor.return_value = mock_groq_client

    text = asyncio.run(GroqClient().invoke("gsk-one", "List three numbers"))

    assert text == '[1, 2, 3]'
    mock_constructor.assert_called_once_with(api_key="gsk-one", max_retries=0)
    call_args = mock_groq_client.chat.completions.create.call_args
    assert call_args.kwargs['model'] == GroqClient.DEFAULT_MODEL

@patch('genpool.infrastructure.ai.groq.groq_client.GroqSDKClient')
def test_missing_usage_is_tolerated(mock_constructor, mock_groq_client):
    mock_constructor.return_value = mock_groq_client

    response = asyncio.run(GroqClient(timeout=5).send_messages("gsk-one", [{'role': 'user', 'content': 'x'}]))

    assert response.token_usage is None
    mock_constructor.assert_called_once_with(api_key="gsk-one", timeout=5, max_retries=0)

@pytest.mark.parametrize(
    "error, expected_class",
    [
        (AuthenticationError("Invalid API Key", response=MagicMock(status_code=401), body=None),
         ErrorClass.HARD_INVALID),
        (InternalServerError("Service Unavailable", response=MagicMock(status_code=503), body=None),
         ErrorClass.TRANSIENT_UNAVAILABLE),
    ]
)
@patch('genpool.infrastructure.ai.groq.groq_client.GroqSDKClient')
def test_sdk_errors_propagate(mock_constructor, mock_groq_client, error, expected_class):
    mock_constructor.return_value = mock_groq_client
    mock_groq_client.chat.completions.create.side_effect = error

    with pytest.raises(type(error)) as excinfo:
        asyncio.run(GroqClient().invoke("gsk-one", "x"))

    assert classify_error(excinfo.value) is expected_class

def test_create_ai_model_by_provider():
    assert isinstance(create_ai_model("groq"), GroqClient)
    assert isinstance(create_ai_model("OpenAI", model="gpt-4o"), GptClient)
    assert create_ai_model("openai", model="gpt-4o").model == "gpt-4o"
    with pytest.raises(ValueError, match="Unsupported provider"):
        create_ai_model("mistral")
