"""OpenAI Responses API client for face matching."""

import json
from collections.abc import Callable
from dataclasses import dataclass, field

from openai import APIStatusError, AsyncOpenAI, RateLimitError

from attendance_tracker.services.recognition import RecognitionClient


def _build_openai_client(api_key: str) -> AsyncOpenAI:
    # Quota rejections must surface at once so the matcher can rotate keys.
    return AsyncOpenAI(api_key=api_key, max_retries=0)


@dataclass
class OpenAIRecognitionClient(RecognitionClient):
    """Recognition client backed by OpenAI Responses API, one SDK client per key."""

    client_factory: Callable[[str], AsyncOpenAI] = _build_openai_client
    _clients: dict[str, AsyncOpenAI] = field(default_factory=dict)

    @classmethod
    def create(cls) -> "OpenAIRecognitionClient":
        """Create a recognition client with the default SDK factory."""
        return cls(client_factory=_build_openai_client)

    async def compare(  # noqa: PLR0913
        self,
        *,
        api_key: str,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_urls: list[str],
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Call OpenAI Responses API with the frame and reference images."""
        content: list[dict[str, object]] = [{"type": "input_text", "text": prompt}]
        content.extend(
            {"type": "input_image", "image_url": url} for url in image_data_urls
        )
        request_payload: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": content}],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "face_matches",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self._client_for(api_key).responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return json.loads(output_text.strip())

    def is_quota_exceeded(self, error: Exception) -> bool:
        """Return True for rate-limit and quota rejections (HTTP 429)."""
        if isinstance(error, RateLimitError):
            return True
        return isinstance(error, APIStatusError) and error.status_code == 429

    async def close(self) -> None:
        """Close every SDK client created so far."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.close()

    def _client_for(self, api_key: str) -> AsyncOpenAI:
        client = self._clients.get(api_key)
        if client is None:
            client = self.client_factory(api_key)
            self._clients[api_key] = client
        return client
