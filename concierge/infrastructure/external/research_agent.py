"""HTTP adapter for the remote research agent."""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from concierge.application.interfaces import ResearchDelegateInterface
from concierge.config.settings import settings
from concierge.domain.models import ResearchResult
from concierge.pipelines.conversation.instructions import RESEARCH_AGENT_INSTRUCTIONS

logger = logging.getLogger(__name__)


class ResearchDelegateError(RuntimeError):
    """Raised when the research agent fails or answers with an unusable payload."""


class ResearchAgentClient(ResearchDelegateInterface):
    """Forward a third-person research brief to the browsing agent service.

    Calls can take minutes; the timeout comes from ``RESEARCH_AGENT_TIMEOUT_SECONDS``.
    There is no retry: a failure ends the pipeline run that asked for it.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        config = settings.research_agent
        self._base_url = (base_url or config.base_url).rstrip("/")
        if api_key is None and config.api_key is not None:
            api_key = config.api_key.get_secret_value()
        self._api_key = api_key or ""
        self._timeout = timeout_seconds or config.timeout_seconds
        self._transport = transport

    async def research(
        self, prompt: str, conversation_id: Optional[str] = None
    ) -> ResearchResult:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        payload = {
            "prompt": prompt,
            "conversationId": conversation_id,
            "instructions": RESEARCH_AGENT_INSTRUCTIONS,
        }

        logger.info(
            "Dispatching research request conversation=%s prompt=%d chars",
            conversation_id,
            len(prompt),
        )
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self._base_url}/research", json=payload, headers=headers
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ResearchDelegateError(
                f"Research agent answered {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ResearchDelegateError(f"Research agent request failed: {exc}") from exc

        try:
            result = ResearchResult.model_validate(data)
        except ValidationError as exc:
            raise ResearchDelegateError("Research agent returned an invalid payload") from exc

        logger.info(
            "Research finished conversation=%s sources=%d",
            conversation_id,
            len(result.sources),
        )
        return result


__all__ = ["ResearchAgentClient", "ResearchDelegateError"]
