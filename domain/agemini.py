import logging
import os
from typing import Any

import httpx


logger = logging.getLogger(__name__)


BASE_URL = "https://generativelanguage.googleapis.com/v1beta/"
TIMEOUT = 60 * 2


class GeminiError(Exception):
    """The endpoint answered with an error body."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        status: str | None = None,
    ) -> None:
        self.code = code
        self.status = status
        prefix = " ".join(str(p) for p in (code, status) if p)
        super().__init__(f"{prefix}: {message}" if prefix else message)

    @classmethod
    def from_response(cls, resp: httpx.Response) -> "GeminiError":
        try:
            data = resp.json()
        except ValueError:
            data = {}
        error = data.get("error", {}) if isinstance(data, dict) else {}
        if not isinstance(error, dict):
            error = {"message": str(error)}
        return cls(
            error.get("message") or resp.text or resp.reason_phrase,
            code=error.get("code", resp.status_code),
            status=error.get("status"),
        )


class MissingApiKey(GeminiError):
    def __init__(self) -> None:
        super().__init__(
            "API Key is missing. Please check your environment configuration."
        )


def gemini_client_factory(
    timeout: float = TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=BASE_URL,
        headers={"Content-Type": "application/json"},
        timeout=timeout,
        transport=transport,
    )


def text_part(text: str) -> dict[str, str]:
    return {"text": text}


def user_content(text: str) -> dict[str, Any]:
    return {"role": "user", "parts": [text_part(text)]}


def _parts(data: dict[str, Any]) -> list[dict[str, Any]]:
    candidates = data.get("candidates") or []
    if not candidates:
        return []
    content = candidates[0].get("content") or {}
    return content.get("parts") or []


def block_reason(data: dict[str, Any]) -> str | None:
    """Why the response carries no content, when the model refused."""
    feedback = data.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        return feedback["blockReason"]
    candidates = data.get("candidates") or []
    if candidates and not _parts(data):
        reason = candidates[0].get("finishReason")
        if reason and reason != "STOP":
            return reason
    return None


def response_text(data: dict[str, Any]) -> str:
    return "".join(
        p["text"] for p in _parts(data) if "text" in p and not p.get("thought")
    )


def response_image(data: dict[str, Any]) -> str | None:
    """First inline image of the response as a data URI."""
    for part in _parts(data):
        inline = part.get("inlineData")
        if inline and inline.get("data"):
            return f"data:image/png;base64,{inline['data']}"
    return None


class GeminiClient:
    def __init__(
        self,
        token: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = TIMEOUT,
    ) -> None:
        self.token = os.environ.get("API_KEY", "") if token is None else token
        self.aclient = gemini_client_factory(timeout) if client is None else client

    async def generate_content(self, model: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.token:
            raise MissingApiKey()
        logger.debug("POST models/%s:generateContent", model)
        resp = await self.aclient.post(
            f"models/{model}:generateContent",
            json=payload,
            headers={"x-goog-api-key": self.token},
        )
        if resp.is_error:
            raise GeminiError.from_response(resp)
        try:
            data = resp.json()
        except ValueError as e:
            raise GeminiError(
                f"Unreadable response: {resp.text[:200]}", code=resp.status_code
            ) from e
        if not isinstance(data, dict):
            raise GeminiError(f"Unexpected response: {data!r}", code=resp.status_code)
        return data

    async def close(self) -> None:
        await self.aclient.aclose()
