# smartweather/services/gemini_client.py

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from smartweather.core.exceptions import OracleError
from smartweather.core.logging_config import logger

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


@dataclass
class OracleReply:
    text: str
    grounding_chunks: List[Dict[str, Any]] = field(default_factory=list)


class GeminiClient:
    """
    Thin async wrapper around Gemini's generateContent REST endpoint.

    Every failure is raised as OracleError; HTTP failures keep the status
    code both in the message text and in `status_code`.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _build_payload(
        self,
        prompt: str,
        use_search: bool,
        json_output: bool,
        response_schema: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }

        if use_search:
            payload["tools"] = [{"googleSearch": {}}]

        generation_config: Dict[str, Any] = {}
        if json_output:
            generation_config["responseMimeType"] = "application/json"
        if response_schema is not None:
            generation_config["responseSchema"] = response_schema
        if generation_config:
            payload["generationConfig"] = generation_config

        return payload

    async def generate_content(
        self,
        prompt: str,
        *,
        use_search: bool = False,
        json_output: bool = False,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> OracleReply:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = self._build_payload(prompt, use_search, json_output, response_schema)
        headers = {"x-goog-api-key": self.api_key}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"Gemini request failed: {exc}")
            raise OracleError(f"Gemini request failed: {exc}") from exc

        if response.is_error:
            message = _extract_error_message(response)
            raise OracleError(
                f"Gemini API error {response.status_code}: {message}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise OracleError(f"Gemini returned a non-JSON body: {exc}") from exc

        return _parse_reply(data)


def _extract_error_message(response: httpx.Response) -> str:
    try:
        error = response.json().get("error") or {}
    except (ValueError, AttributeError):
        return response.text or response.reason_phrase

    status = error.get("status")
    message = error.get("message") or response.reason_phrase
    return f"{status} {message}" if status else message


def _parse_reply(data: Dict[str, Any]) -> OracleReply:
    candidates = data.get("candidates") or []
    if not candidates:
        return OracleReply(text="")

    first = candidates[0] or {}
    parts = (first.get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))

    grounding = first.get("groundingMetadata") or {}
    chunks = [c for c in grounding.get("groundingChunks") or [] if isinstance(c, dict)]

    return OracleReply(text=text, grounding_chunks=chunks)
