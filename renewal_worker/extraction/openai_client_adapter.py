from typing import Any

import httpx
import openai

from renewal_worker.extraction.client_base import BaseExtractionClient
from renewal_worker.extraction.exceptions import ExtractionError, ExtractionNetworkError
from renewal_worker.extraction.models import BinaryPayload


class OpenAIClientAdapter(BaseExtractionClient):
    """Extraction client built on the OpenAI-compatible chat API.

    SDK-level retries are disabled: one event gets one attempt, and the user
    retries by uploading again.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

    def generate(
        self,
        *,
        model: str,
        temperature: float,
        payload: BinaryPayload,
        instruction: str,
        timeout_seconds: float,
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            self._binary_part(payload),
                            {"type": "text", "text": instruction},
                        ],
                    }
                ],
                timeout=timeout_seconds,
            )
        except openai.RateLimitError as exc:
            raise ExtractionNetworkError(f"AI provider rate limit: {exc}") from exc
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ExtractionNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise ExtractionError("AI returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise ExtractionError("AI returned empty response")
        return content

    @staticmethod
    def _binary_part(payload: BinaryPayload) -> dict[str, Any]:
        if payload.is_image:
            return {"type": "image_url", "image_url": {"url": payload.data_url()}}
        return {
            "type": "file",
            "file": {"filename": "document.pdf", "file_data": payload.data_url()},
        }
