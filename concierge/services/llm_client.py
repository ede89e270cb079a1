"""Bedrock ``converse`` client used by every model-backed pipeline stage."""

from __future__ import annotations

import logging
from typing import Any

from fastapi.concurrency import run_in_threadpool

from concierge.application.interfaces import LanguageModelInterface
from concierge.config.settings import settings
from concierge.services.aws import create_boto3_client, unpack_api_key

logger = logging.getLogger(__name__)


class LlmInvocationError(RuntimeError):
    """Raised when the Bedrock invocation fails or yields no text."""


def _bedrock_runtime() -> Any:
    bedrock = settings.bedrock
    packed = bedrock.api_key.get_secret_value() if bedrock.api_key else None
    return create_boto3_client(
        "bedrock-runtime",
        region_name=bedrock.region,
        credentials=unpack_api_key(packed),
    )


class BedrockLlmClient(LanguageModelInterface):
    def __init__(self, client: Any = None, *, model_id: str | None = None) -> None:
        self._client = client if client is not None else _bedrock_runtime()
        self._model_id = model_id or settings.bedrock.model_id

    def _converse(self, instructions: str, prompt: str) -> dict[str, Any]:
        return self._client.converse(
            modelId=self._model_id,
            system=[{"text": instructions}],
            messages=[{"role": "user", "content": [{"text": prompt}]}],
            inferenceConfig={
                "maxTokens": settings.bedrock.max_tokens,
                "temperature": settings.bedrock.temperature,
                "topP": settings.bedrock.top_p,
            },
        )

    @staticmethod
    def _text_of(response: dict[str, Any]) -> str:
        blocks = response.get("output", {}).get("message", {}).get("content", [])
        return "\n".join(block["text"] for block in blocks if block.get("text")).strip()

    async def complete(self, instructions: str, prompt: str) -> str:
        """Single non-streaming completion; the full text or ``LlmInvocationError``."""

        logger.debug(
            "Bedrock request model=%s instructions=%d chars prompt=%d chars",
            self._model_id,
            len(instructions),
            len(prompt),
        )
        try:
            response = await run_in_threadpool(self._converse, instructions, prompt)
        except Exception as exc:
            raise LlmInvocationError(f"Bedrock converse failed: {exc}") from exc

        text = self._text_of(response)
        if not text:
            raise LlmInvocationError("Bedrock returned an empty response")
        return text
