"""
HTTP client for the vision-capable generative model endpoint.
"""
import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from stockmeta.config import Settings
from stockmeta.core.errors import ModelRequestError, RateLimitError
from stockmeta.core.models import NormalizedPayload
from stockmeta.tasks.utils import RetryPolicy, SleepFunc, retry_async

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 503}
RATE_LIMIT_MARKERS = ("429", "too many requests", "resource has been exhausted")


def is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, RateLimitError)


def _looks_rate_limited(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


def build_request_body(prompt: str, payload: NormalizedPayload, generation_config: Dict[str, Any]) -> Dict[str, Any]:
    """EPS reports travel as a second text part, images as inline base64 data."""
    parts: List[Dict[str, Any]] = [{"text": prompt}]
    if payload.is_text:
        parts.append({"text": payload.text or ""})
    else:
        parts.append(
            {
                "inline_data": {
                    "mime_type": payload.mime_type,
                    "data": base64.b64encode(payload.data or b"").decode("ascii"),
                }
            }
        )
    return {
        "contents": [{"parts": parts}],
        "generationConfig": generation_config,
    }


def _extract_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    text = response.text.strip()
    return text[:500] if text else f"HTTP Error {response.status_code}"


def _extract_text(body: Any) -> str:
    if not isinstance(body, dict):
        raise ModelRequestError("Malformed response body from model API")
    candidates = body.get("candidates") or []
    if not candidates:
        return ""
    try:
        parts = candidates[0].get("content", {}).get("parts") or []
        return parts[0].get("text", "") if parts else ""
    except (AttributeError, IndexError, TypeError) as exc:
        raise ModelRequestError(f"Malformed response body from model API: {exc}") from exc


class ModelClient:
    """
    Sends one prompt + payload to the model and returns the raw reply text.

    Rate-limit failures are retried under the injected RetryPolicy; every other
    failure propagates on the first attempt.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self._http = http_client
        self._settings = settings
        self._retry_policy = retry_policy or RetryPolicy.from_settings(settings.retry)
        self._sleep = sleep
        self.attempts = 0

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def invoke(self, prompt: str, payload: NormalizedPayload, api_key: str) -> str:
        return await retry_async(
            lambda: self._post_once(prompt, payload, api_key),
            self._retry_policy,
            is_rate_limit_error,
            sleep=self._sleep,
            label=payload.filename,
        )

    async def _post_once(self, prompt: str, payload: NormalizedPayload, api_key: str) -> str:
        self.attempts += 1
        url = self._settings.generate_content_url
        body = build_request_body(prompt, payload, self._settings.generation_config)
        logger.debug(f"Calling model {self._settings.model_name} for {payload.filename}")
        try:
            response = await self._http.post(url, params={"key": api_key}, json=body)
        except httpx.RequestError as e:
            msg = f"Network error calling model API: {e}"
            if _looks_rate_limited(str(e)):
                raise RateLimitError(msg) from e
            raise ModelRequestError(msg) from e

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RateLimitError(
                f"Rate limit hit (HTTP {response.status_code}): {_extract_error_message(response)}",
                status_code=response.status_code,
            )
        if response.is_error:
            msg = _extract_error_message(response)
            logger.error(f"Model API error {response.status_code} for {payload.filename}: {msg}")
            raise ModelRequestError(msg, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ModelRequestError(f"Malformed response body from model API: {e}") from e
        return _extract_text(data)
