"""
OpenAI vision analyzer — gpt-4o family with structured outputs.

The request pins the reply to FILAMENT_SCHEMA (strict json_schema response
format), so the model can only answer with the five spool fields.
Failed calls are never retried: one photo, one request.
"""
from __future__ import annotations

import logging
import time

import openai

from analyzers.base import (
    EXTRACTION_PROMPT, FILAMENT_SCHEMA,
    Analyzer, MalformedExtraction, UpstreamAPIError, UpstreamEmptyResponse, UpstreamTransportFailure,
    build_data_url, parse_extraction, spool_from_extraction,
)
from openspool import SpoolData

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com"


class OpenAIAnalyzer(Analyzer):

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str = DEFAULT_BASE_URL,
        http_client=None,
    ):
        self.name = "openai"
        self.model_id = model
        self.base_url = base_url.rstrip("/")
        # SDK appends /chat/completions to base_url
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=f"{self.base_url}/v1",
            max_retries=0,
            http_client=http_client,
        )

    @property
    def full_name(self) -> str:
        return f"{self.name}/{self.model_id}"

    async def analyze(self, image_bytes: bytes, content_type: str) -> SpoolData:
        data_url = build_data_url(image_bytes, content_type)
        t0 = time.monotonic()

        try:
            response = await self._client.chat.completions.create(
                model=self.model_id,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": EXTRACTION_PROMPT},
                            {"type": "image_url", "image_url": {"url": data_url}},
                        ],
                    },
                ],
                response_format={"type": "json_schema", "json_schema": FILAMENT_SCHEMA},
            )
        except openai.APIConnectionError as exc:
            raise UpstreamTransportFailure(f"[{self.full_name}] send request: {exc}") from exc
        except openai.APIStatusError as exc:
            raise UpstreamAPIError(exc.status_code, exc.response.text) from exc
        except (openai.APIResponseValidationError, ValueError) as exc:
            # 2xx reply whose body is not a chat completion
            raise MalformedExtraction(f"[{self.full_name}] unreadable response: {exc}") from exc

        latency_ms = int((time.monotonic() - t0) * 1000)
        logger.info("[%s] completion in %dms (%d bytes, %s)",
                    self.full_name, latency_ms, len(image_bytes), content_type)

        if not response.choices:
            raise UpstreamEmptyResponse(f"[{self.full_name}] no choices in response")

        raw = response.choices[0].message.content or ""
        return spool_from_extraction(parse_extraction(raw))
