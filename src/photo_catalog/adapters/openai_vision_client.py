"""OpenAI Responses API client for photo captioning."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from photo_catalog.domain.errors import EmptyResponseError, ExternalServiceError
from photo_catalog.services.vision import VisionClient


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    model: str

    @classmethod
    def create(
        cls, api_key: str, model: str, timeout_seconds: float
    ) -> "OpenAIVisionClient":
        """Create a client with an explicit deadline and no library retries."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key, timeout=timeout_seconds, max_retries=0
            ),
            model=model,
        )

    async def complete(
        self, *, image_data_url: str, prompt: str, schema: dict[str, object]
    ) -> str:
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": self.model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {
                            "type": "input_image",
                            "image_url": image_data_url,
                            "detail": "high",
                        },
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "photo_caption",
                    "strict": True,
                    "schema": schema,
                }
            },
            "max_output_tokens": 300,
            "store": False,
        }
        try:
            response = await self.client.responses.create(**request_payload)
        except openai.APIStatusError as exc:
            raise ExternalServiceError(exc.status_code, exc.response.text) from exc
        except openai.APIConnectionError as exc:
            raise ExternalServiceError(None, str(exc)) from exc
        output_text = response.output_text
        if not output_text:
            raise EmptyResponseError("No content received from OpenAI API")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
