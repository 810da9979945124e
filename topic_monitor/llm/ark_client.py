from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx


class ArkClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        # only client errors other than rate limiting are permanent
        if self.status_code is None or self.status_code == 429:
            return True
        return not 400 <= self.status_code < 500


@dataclass(frozen=True)
class ArkChatTurn:
    role: str
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": [{"type": "input_text", "text": self.text}]}


class ArkChatClient:
    """
    Thin wrapper over the Ark chat API.
    - sends requests and extracts the reply text
    - knows nothing about prompts, sessions or classification
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        model: str,
        timeout_s: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def chat(self, turns: list[ArkChatTurn], *, temperature: float = 0.1, max_tokens: int = 300) -> str:
        url = f"{self._base_url}/chat/completions"
        req_payload = {
            "model": self._model,
            "input": [t.to_dict() for t in turns],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = await self._client.post(url, headers=headers, json=req_payload)
        except httpx.HTTPError as e:
            raise ArkClientError(f"Ark chat transport error: {e}") from e
        if resp.status_code >= 400:
            raise ArkClientError(f"Ark chat failed: {resp.status_code} {resp.text[:500]}", status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise ArkClientError(f"Ark chat returned non-JSON body: {resp.text[:500]}", status_code=resp.status_code) from e
        text = self._extract_text(data)
        if text is None:
            raise ArkClientError(
                f"Ark chat response parse failed: {json.dumps(data, ensure_ascii=False)[:2000]}",
                status_code=resp.status_code,
            )
        return text

    def _extract_text(self, data: dict[str, Any]) -> str | None:
        candidates = data.get("output") or data.get("choices") or []
        if isinstance(candidates, list) and candidates:
            first = candidates[0]
            message = first.get("message") if isinstance(first, dict) else None
            if isinstance(message, dict):
                content = message.get("content")
                if isinstance(content, str):
                    return content
                if isinstance(content, list):
                    parts = [p["text"] for p in content if isinstance(p, dict) and isinstance(p.get("text"), str)]
                    if parts:
                        return "\n".join(parts).strip()
            if isinstance(first, dict) and isinstance(first.get("text"), str):
                return first["text"]
        if isinstance(data.get("text"), str):
            return data["text"]
        return None
