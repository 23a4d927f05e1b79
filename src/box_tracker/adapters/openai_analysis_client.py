"""OpenAI chat completions client for photo analysis."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from box_tracker.domain.errors import RemoteRateLimitError, RemoteServiceError
from box_tracker.services.analysis import AnalysisClient


@dataclass
class OpenAIAnalysisClient(AnalysisClient):
    """Analysis client backed by OpenAI chat completions."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIAnalysisClient":
        """Create an OpenAI analysis client.

        SDK retries are disabled; ``AnalysisService`` owns the backoff policy.
        """
        return cls(client=AsyncOpenAI(api_key=api_key, max_retries=0))

    async def complete(
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str,
        max_tokens: int,
    ) -> str:
        """Call chat completions in JSON mode with one image."""
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": image_data_url}},
                        ],
                    }
                ],
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.RateLimitError as exc:
            raise RemoteRateLimitError(str(exc)) from exc
        except openai.OpenAIError as exc:
            raise RemoteServiceError(str(exc)) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise RemoteServiceError("No response from OpenAI")
        return content

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
