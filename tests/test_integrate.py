"""Tests for the model API client."""

import base64
import json

import httpx
import pytest

from stockmeta.core.errors import ModelRequestError, RateLimitError
from stockmeta.core.models import NormalizedPayload
from stockmeta.tasks.integrate import ModelClient, build_request_body
from stockmeta.tasks.utils import RetryPolicy, retry_async

IMAGE_PAYLOAD = NormalizedPayload.image("photo.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg")
EPS_PAYLOAD = NormalizedPayload.text_report("logo-metadata.txt", "EPS FILE METADATA\n...")


class TestRetryPolicy:
    """Tests for the backoff schedule."""

    def test_delays(self):
        policy = RetryPolicy()
        assert [policy.delay_for(n) for n in range(1, 6)] == [4.0, 8.0, 16.0, 32.0, 60.0]

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates_immediately(self, fake_sleep):
        calls = []

        async def _fail():
            calls.append(1)
            raise ValueError("nope")

        with pytest.raises(ValueError):
            await retry_async(_fail, RetryPolicy(), lambda exc: False, sleep=fake_sleep)
        assert len(calls) == 1
        assert fake_sleep.delays == []


class TestBuildRequestBody:
    """Tests for the generateContent request body."""

    def test_image_is_inline_data(self, settings):
        body = build_request_body("Describe", IMAGE_PAYLOAD, settings.generation_config)
        parts = body["contents"][0]["parts"]
        assert parts[0] == {"text": "Describe"}
        assert parts[1]["inline_data"]["mime_type"] == "image/jpeg"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == b"\xff\xd8jpeg-bytes"
        assert body["generationConfig"] == {
            "temperature": 0.4, "topK": 32, "topP": 0.95, "maxOutputTokens": 1024,
        }

    def test_eps_is_text(self):
        body = build_request_body("Describe", EPS_PAYLOAD, {})
        parts = body["contents"][0]["parts"]
        assert parts[1] == {"text": "EPS FILE METADATA\n..."}
        assert all("inline_data" not in part for part in parts)


class TestModelClient:
    """Tests for ModelClient.invoke."""

    def test_policy_comes_from_settings(self, settings):
        settings.retry.max_retries = 2
        client = ModelClient(httpx.AsyncClient(), settings)
        assert client.retry_policy == RetryPolicy(max_retries=2, base_delay=2.0, max_delay=60.0)

    @pytest.mark.asyncio
    async def test_success(self, make_client, model_reply):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return model_reply('{"title": "x"}')

        client = make_client(handler)
        text = await client.invoke("prompt", IMAGE_PAYLOAD, "secret-key")

        assert text == '{"title": "x"}'
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path.endswith("/models/gemini-2.5-flash:generateContent")
        assert request.url.params["key"] == "secret-key"
        assert json.loads(request.content)["contents"][0]["parts"][0] == {"text": "prompt"}

    @pytest.mark.asyncio
    async def test_eps_payload_sent_as_text(self, make_client, model_reply):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return model_reply("{}")

        await make_client(handler).invoke("prompt", EPS_PAYLOAD, "k")
        parts = bodies[0]["contents"][0]["parts"]
        assert parts[1] == {"text": EPS_PAYLOAD.text}

    @pytest.mark.asyncio
    async def test_always_rate_limited_gives_up_after_five_retries(self, make_client, fake_sleep):
        client = make_client(lambda request: httpx.Response(429, json={"error": {"message": "slow down"}}), fake_sleep)

        with pytest.raises(RateLimitError) as exc_info:
            await client.invoke("prompt", IMAGE_PAYLOAD, "k")

        assert client.attempts == 6
        assert fake_sleep.delays == [4.0, 8.0, 16.0, 32.0, 60.0]
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_service_unavailable_is_retried(self, make_client, model_reply, fake_sleep):
        responses = [httpx.Response(503, text="busy"), model_reply("ok")]
        client = make_client(lambda request: responses.pop(0), fake_sleep)

        assert await client.invoke("prompt", IMAGE_PAYLOAD, "k") == "ok"
        assert client.attempts == 2
        assert fake_sleep.delays == [4.0]

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, make_client, fake_sleep):
        client = make_client(
            lambda request: httpx.Response(400, json={"error": {"message": "API key not valid"}}), fake_sleep
        )

        with pytest.raises(ModelRequestError) as exc_info:
            await client.invoke("prompt", IMAGE_PAYLOAD, "bad")

        assert not isinstance(exc_info.value, RateLimitError)
        assert str(exc_info.value) == "API key not valid"
        assert exc_info.value.status_code == 400
        assert client.attempts == 1
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_throttling_transport_error_is_retried(self, make_client, model_reply, fake_sleep):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) == 1:
                raise httpx.ConnectError("Resource has been exhausted", request=request)
            return model_reply("ok")

        client = make_client(handler, fake_sleep)
        assert await client.invoke("prompt", IMAGE_PAYLOAD, "k") == "ok"
        assert fake_sleep.delays == [4.0]

    @pytest.mark.asyncio
    async def test_plain_transport_error_fails(self, make_client, fake_sleep):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ModelRequestError, match="Network error"):
            await make_client(handler, fake_sleep).invoke("prompt", IMAGE_PAYLOAD, "k")
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_empty_candidates_give_empty_text(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"candidates": []}))
        assert await client.invoke("prompt", IMAGE_PAYLOAD, "k") == ""

    @pytest.mark.asyncio
    async def test_undecodable_body(self, make_client):
        client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(ModelRequestError, match="Malformed"):
            await client.invoke("prompt", IMAGE_PAYLOAD, "k")
