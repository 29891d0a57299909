import base64

import httpx

from .config import settings
from .errors import MissingCredentialsError, ProviderError


BLOCKED_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "RECITATION"}


def text_part(text: str) -> dict:
    return {"text": text}


def image_part(image_bytes: bytes, mime_type: str) -> dict:
    return {
        "inlineData": {
            "mimeType": mime_type,
            "data": base64.b64encode(image_bytes).decode("utf-8"),
        }
    }


def content(role: str, *parts: dict) -> dict:
    return {"role": role, "parts": list(parts)}


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        status = error.get("status") or response.reason_phrase
        message = error.get("message") or response.text
        return f"[{response.status_code} {status}] {message}"

    return f"[{response.status_code} {response.reason_phrase}] {response.text.strip()}"


def _extract_text(payload: dict) -> str:
    feedback = payload.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        raise ProviderError(f"Prompt was blocked due to {feedback['blockReason']}")

    candidates = payload.get("candidates") or []
    if not candidates:
        raise ProviderError("The model returned no candidates")

    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    finish_reason = candidate.get("finishReason")
    if not text.strip() and finish_reason in BLOCKED_FINISH_REASONS:
        raise ProviderError(f"Candidate was blocked due to {finish_reason}")
    if not text.strip():
        raise ProviderError("The model returned an empty response")

    return text.strip()


class GeminiClient:
    """Thin async client for the Gemini ``generateContent`` REST surface.

    Raises :class:`ProviderError` for every provider-side failure; callers
    classify those through :mod:`fitcoach.resilience`.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        timeout: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key or not api_key.strip():
            raise MissingCredentialsError(detail="GEMINI_API_KEY is not configured")

        self.api_key = api_key.strip()
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.timeout = timeout or settings.gemini_timeout
        self._transport = transport

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        headers = {"x-goog-api-key": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, f"{self.base_url}/{path}", json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Gemini not reachable: {exc}") from exc

        if response.is_error:
            raise ProviderError(_error_message(response), status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError("Gemini returned a non-JSON body") from exc

    async def generate_content(
        self,
        model: str,
        contents: list[dict],
        system_instruction: str | None = None,
        generation_config: dict | None = None,
    ) -> str:
        body: dict = {"contents": contents}
        if system_instruction:
            body["systemInstruction"] = {"parts": [text_part(system_instruction)]}
        if generation_config:
            body["generationConfig"] = generation_config

        payload = await self._request("POST", f"models/{model}:generateContent", json=body)
        return _extract_text(payload)

    async def list_models(self) -> list[dict]:
        payload = await self._request("GET", "models")
        models = []
        for entry in payload.get("models", []):
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            methods = entry.get("supportedGenerationMethods") or []
            if "generateContent" not in methods:
                continue
            models.append(
                {
                    "name": str(entry["name"]).removeprefix("models/"),
                    "display_name": entry.get("displayName") or entry["name"],
                    "methods": list(methods),
                }
            )
        return sorted(models, key=lambda item: item["name"])


def build_client() -> GeminiClient:
    return GeminiClient(
        api_key=settings.gemini_api_key,
        base_url=settings.gemini_base_url,
        timeout=settings.gemini_timeout,
    )
