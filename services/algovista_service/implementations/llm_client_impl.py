"""OpenAI-compatible chat-completions client used by the LLM gateway."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict

import aiohttp
from algovista_service_libs.logging_utils import create_service_logger

from services.algovista_service.config import Settings
from services.algovista_service.exceptions import TransientNetworkError, UpstreamRequestError
from services.algovista_service.metrics import get_metrics
from services.algovista_service.protocols import LLMClientProtocol

logger = create_service_logger("algovista_service.llm_client")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class ChatCompletionsClientImpl(LLMClientProtocol):
    """Performs one POST to the chat-completions endpoint per call.

    Failures are classified here so the retry manager can decide by exception
    class alone: timeouts, connection failures, 429 and 5xx become
    ``TransientNetworkError``; every other non-2xx status or an unexpected
    response envelope becomes ``UpstreamRequestError``.
    """

    def __init__(self, session: aiohttp.ClientSession, settings: Settings):
        """Initialize client.

        Args:
            session: Shared HTTP client session
            settings: Service settings
        """
        self.session = session
        self.settings = settings
        self.endpoint = settings.LLM_API_ENDPOINT
        self.timeout = aiohttp.ClientTimeout(total=settings.LLM_REQUEST_TIMEOUT_SECONDS)
        self._metrics = get_metrics()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.LLM_API_KEY is not None:
            headers["Authorization"] = f"Bearer {self.settings.LLM_API_KEY.get_secret_value()}"
        return headers

    async def complete(self, payload: Dict[str, Any]) -> str | Dict[str, Any]:
        """POST payload and return ``choices[0].message.content``.

        Raises:
            TransientNetworkError: Timeout, connection failure, 429 or 5xx
            UpstreamRequestError: Any other non-2xx status or a malformed envelope
        """
        kind = payload.get("response_format", {}).get("json_schema", {}).get("name", "unknown")
        start_time = time.monotonic()

        try:
            async with self.session.post(
                self.endpoint,
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    error_msg = f"LLM API error: {response.status} - {error_text[:500]}"

                    if response.status in RETRYABLE_STATUS_CODES or response.status >= 500:
                        logger.warning(error_msg)
                        raise TransientNetworkError(error_msg, upstream_status=response.status)

                    logger.error(error_msg)
                    raise UpstreamRequestError(error_msg, upstream_status=response.status)

                try:
                    response_data = await response.json(content_type=None)
                except ValueError as e:
                    raise UpstreamRequestError(
                        f"LLM API returned a non-JSON body: {e}", upstream_status=response.status
                    ) from e

        except asyncio.TimeoutError as e:
            error_msg = (
                f"LLM API request timed out after {self.settings.LLM_REQUEST_TIMEOUT_SECONDS}s"
            )
            logger.warning(error_msg)
            raise TransientNetworkError(error_msg, is_timeout=True) from e
        except aiohttp.ClientError as e:
            error_msg = f"Failed to reach LLM API at {self.endpoint}: {e}"
            logger.warning(error_msg)
            raise TransientNetworkError(error_msg) from e
        finally:
            self._metrics["llm_response_duration_seconds"].labels(kind=kind).observe(
                time.monotonic() - start_time
            )

        return self._extract_content(response_data)

    @staticmethod
    def _extract_content(response_data: Any) -> str | Dict[str, Any]:
        try:
            content = response_data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamRequestError(
                f"Unexpected response structure from LLM API: missing {e}"
            ) from e

        if not isinstance(content, (str, dict)):
            raise UpstreamRequestError(
                f"Unexpected content type from LLM API: {type(content).__name__}"
            )
        return content
