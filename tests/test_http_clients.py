"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import openai
import pytest

from photo_catalog.adapters.google_token_verifier import (
    TOKENINFO_URL,
    GoogleTokenVerifier,
)
from photo_catalog.adapters.openai_vision_client import OpenAIVisionClient
from photo_catalog.domain.errors import (
    AuthenticationError,
    EmptyResponseError,
    ExternalServiceError,
)


class _FakeResponses:
    def __init__(self, output_text: str = "", error: Exception | None = None) -> None:
        self.output_text = output_text
        self.error = error
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if self.error is not None:
            raise self.error
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, responses: _FakeResponses) -> None:
        self.responses = responses


def _complete(client: OpenAIVisionClient) -> str:
    return asyncio.run(
        client.complete(
            image_data_url="data:image/jpeg;base64,ZmFrZQ==",
            prompt="Describe this photo",
            schema={"type": "object"},
        )
    )


def test_openai_vision_client_requests_structured_output() -> None:
    responses = _FakeResponses(output_text=json.dumps({"title": "t"}))
    client = OpenAIVisionClient(client=_FakeOpenAI(responses), model="gpt-4o-mini")

    result = _complete(client)

    assert result == '{"title": "t"}'
    payload = responses.last_payload
    assert payload is not None
    assert payload["model"] == "gpt-4o-mini"
    assert payload["store"] is False
    text_format = payload["text"]["format"]  # type: ignore[index]
    assert text_format["type"] == "json_schema"
    assert text_format["strict"] is True
    content = payload["input"][0]["content"]  # type: ignore[index]
    assert content[1]["image_url"] == "data:image/jpeg;base64,ZmFrZQ=="


def test_openai_vision_client_rejects_empty_output() -> None:
    client = OpenAIVisionClient(client=_FakeOpenAI(_FakeResponses()), model="m")

    with pytest.raises(EmptyResponseError):
        _complete(client)


def test_openai_vision_client_maps_status_errors() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    response = httpx.Response(401, text="Incorrect API key provided", request=request)
    error = openai.AuthenticationError("unauthorized", response=response, body=None)
    client = OpenAIVisionClient(
        client=_FakeOpenAI(_FakeResponses(error=error)), model="m"
    )

    with pytest.raises(ExternalServiceError) as exc_info:
        _complete(client)

    assert exc_info.value.status_code == 401
    assert str(exc_info.value) == "OpenAI API error: 401 - Incorrect API key provided"


def _verifier(handler) -> GoogleTokenVerifier:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    return GoogleTokenVerifier(
        client_id="client-id", http_client=httpx.AsyncClient(transport=transport)
    )


def test_google_token_verifier_returns_user() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url).startswith(TOKENINFO_URL)
        assert request.url.params["id_token"] == "id-token"
        return httpx.Response(
            200,
            json={
                "aud": "client-id",
                "email": "alice@example.com",
                "name": "Alice",
                "picture": "https://example.com/a.png",
            },
        )

    user = asyncio.run(_verifier(handler).verify("id-token"))

    assert user.email == "alice@example.com"
    assert user.name == "Alice"


def test_google_token_verifier_rejects_bad_tokens() -> None:
    def wrong_audience(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"aud": "other", "email": "a@example.com"})

    def rejected(_: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_token"})

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    for handler in (wrong_audience, rejected, unreachable):
        with pytest.raises(AuthenticationError):
            asyncio.run(_verifier(handler).verify("id-token"))
