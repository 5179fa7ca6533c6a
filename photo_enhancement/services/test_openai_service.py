# photo_enhancement/services/test_openai_service.py
import base64
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from photo_enhancement.conftest import make_png
from photo_enhancement.core.exceptions import AIServiceError
from photo_enhancement.services.openai_service import EnhancedImage, NoImageProduced, OpenAIService


def _service(response=None, error=None):
    client = MagicMock()
    if error is not None:
        client.responses.create.side_effect = error
    else:
        client.responses.create.return_value = response
    service = OpenAIService(client=client)
    service.model = "gpt-4.1"
    service.timeout_seconds = 5
    return service, client


def test_returns_enhanced_image():
    png = make_png()
    response = SimpleNamespace(
        output=[
            SimpleNamespace(type="message", content=[]),
            SimpleNamespace(type="image_generation_call", result=base64.b64encode(png).decode()),
        ],
        output_text="",
    )
    service, client = _service(response)

    result = service.generate(b"original", "image/jpeg", "make it pop")

    assert isinstance(result, EnhancedImage)
    assert result.data == png
    assert result.mime_type == "image/png"

    kwargs = client.responses.create.call_args.kwargs
    content = kwargs["input"][0]["content"]
    assert content[0] == {"type": "input_text", "text": "make it pop"}
    assert content[1]["image_url"] == "data:image/jpeg;base64," + base64.b64encode(b"original").decode()
    assert kwargs["tools"][0]["type"] == "image_generation"
    assert kwargs["timeout"] == 5


def test_text_only_response_is_no_image_produced():
    response = SimpleNamespace(
        output=[SimpleNamespace(type="message", content=[])],
        output_text="I can't edit photos of people.",
    )
    service, _ = _service(response)

    result = service.generate(b"original", "image/png", "enhance")

    assert isinstance(result, NoImageProduced)
    assert "can't edit" in result.reason


def test_invalid_image_payload_is_service_error():
    response = SimpleNamespace(
        output=[SimpleNamespace(type="image_generation_call", result=base64.b64encode(b"garbage").decode())],
        output_text="",
    )
    service, _ = _service(response)

    with pytest.raises(AIServiceError) as exc_info:
        service.generate(b"original", "image/png", "enhance")
    assert exc_info.value.last_error == "AI service returned an invalid image"


def test_timeout_is_service_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    service, _ = _service(error=openai.APITimeoutError(request=request))

    with pytest.raises(AIServiceError) as exc_info:
        service.generate(b"original", "image/png", "enhance")
    assert exc_info.value.last_error == "AI service timeout"


def test_connection_error_is_service_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    service, _ = _service(error=openai.APIConnectionError(request=request))

    with pytest.raises(AIServiceError) as exc_info:
        service.generate(b"original", "image/png", "enhance")
    assert exc_info.value.last_error == "AI service unavailable"


def test_uninitialized_service():
    with pytest.raises(RuntimeError):
        OpenAIService().generate(b"x", "image/png", "enhance")
