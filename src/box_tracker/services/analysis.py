"""Photo analysis with admission control and rate-limit backoff."""

import asyncio
import json
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import ValidationError

from box_tracker.domain.analysis import AnalysisExtract, AnalyzedItem
from box_tracker.domain.errors import (
    ConfigurationError,
    InvalidImageError,
    MalformedResponseError,
    RateLimitExceededError,
    RemoteRateLimitError,
)
from box_tracker.services.images import strip_data_url

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
MIN_PAYLOAD_LENGTH = 100

ANALYSIS_PROMPT = """You are helping someone pack moving boxes. Identify the \
main item in this photo, or a group of identical items shown together.

Box context: {context}

Respond with a JSON object of this shape:
{{
  "items": [
    {{
      "name": "Specific item name, with a quantity for grouped items",
      "description": "One or two sentences describing the item",
      "category": "General category such as Kitchen, Electronics, Clothing or Books"
    }}
  ]
}}

Rules:
- Describe ONE main item per photo. Identical items (three mugs, five \
paperbacks) count as one item named with its quantity, e.g. "3 Coffee Mugs".
- Include brand names when they are visible.
- If several different items are visible, pick the most prominent one.
- Keep descriptions short and pick categories that help organize a move."""


class AnalysisClient(Protocol):
    """Interface for the vision model endpoint."""

    async def complete(
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str,
        max_tokens: int,
    ) -> str:
        """Return the raw JSON text produced for an image.

        Implementations raise ``RemoteRateLimitError`` when the endpoint
        reports rate limiting and ``RemoteServiceError`` for other failures.
        """


@dataclass
class RateWindow:
    """Requests issued during one wall-clock minute."""

    window_key: int
    count: int = 0


@dataclass
class RateLimiter:
    """Fixed-window admission control shared by every analysis call.

    Windows are aligned to minute boundaries, so two bursts straddling a
    boundary may admit up to twice the ceiling within sixty seconds.
    """

    max_requests_per_minute: int = 10
    clock: Callable[[], float] = time.time
    _window: RateWindow | None = field(default=None, init=False)

    def acquire(self) -> None:
        """Count a request or raise ``RateLimitExceededError``."""
        now = self.clock()
        window_key = int(now // WINDOW_SECONDS)
        if self._window is None or self._window.window_key != window_key:
            self._window = RateWindow(window_key=window_key)
        if self._window.count >= self.max_requests_per_minute:
            reset_at = (window_key + 1) * WINDOW_SECONDS
            wait_time_ms = max(0, round((reset_at - now) * 1000))
            raise RateLimitExceededError(wait_time_ms)
        self._window.count += 1

    @property
    def window(self) -> RateWindow | None:
        """Return the current window, if any request was counted."""
        return self._window


@dataclass
class AnalysisService:
    """Service that prepares analysis prompts and validates results."""

    client: AnalysisClient | None
    model: str
    rate_limiter: RateLimiter
    max_tokens: int = 1000
    max_retries: int = 3
    backoff_base_seconds: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    jitter: Callable[[], float] = random.random

    async def analyze(self, photo: str, context: str | None = None) -> AnalyzedItem:
        """Describe the main item in an encoded photo."""
        if self.client is None:
            raise ConfigurationError("AI service not configured")
        payload = strip_data_url(photo)
        if len(payload) < MIN_PAYLOAD_LENGTH:
            raise InvalidImageError("Invalid image data")
        self.rate_limiter.acquire()

        prompt = ANALYSIS_PROMPT.format(context=context or "No specific context")
        image_data_url = f"data:image/jpeg;base64,{payload}"
        logger.info("Submitting photo for analysis", extra={"context": context})
        raw = await self._complete_with_backoff(prompt, image_data_url)
        extract = _parse_extract(raw)
        first = extract.items[0]
        return AnalyzedItem(
            name=first.name,
            description=first.description,
            category=first.category,
            photo=photo,
        )

    async def _complete_with_backoff(self, prompt: str, image_data_url: str) -> str:
        attempt = 0
        while True:
            try:
                return await self.client.complete(
                    model=self.model,
                    prompt=prompt,
                    image_data_url=image_data_url,
                    max_tokens=self.max_tokens,
                )
            except RemoteRateLimitError:
                if attempt >= self.max_retries:
                    raise
                delay = self.backoff_base_seconds * 2**attempt + self.jitter()
                attempt += 1
                logger.warning(
                    "Analysis rate limited, retry %s/%s in %.2fs",
                    attempt,
                    self.max_retries,
                    delay,
                )
                await self.sleep(delay)


def _parse_extract(raw: str) -> AnalysisExtract:
    try:
        return AnalysisExtract.model_validate(json.loads(raw))
    except (json.JSONDecodeError, TypeError, ValidationError) as exc:
        logger.warning("Failed to parse analysis response: %s", raw)
        raise MalformedResponseError("Failed to parse AI response") from exc
