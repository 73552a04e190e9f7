"""
Reasoning service client.

HTTP client for the external text-generation service that writes
natural-language explanation summaries. Every failure mode surfaces as a
ReasoningServiceError so callers have a single branch to fall back on.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from src.config.reasoning_config import ReasoningConfig, get_reasoning_config

logger = logging.getLogger(__name__)


class ReasoningServiceError(Exception):
    """The reasoning service could not produce a summary."""

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


class ReasoningClient:
    """
    Bounded-timeout client for the reasoning service.

    One call per `generate`; no retries.
    """

    def __init__(
        self,
        config: Optional[ReasoningConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize reasoning client.

        Args:
            config: Service configuration (defaults to environment settings)
            transport: Optional httpx transport, used to stub the service in tests
        """
        self.config = config or get_reasoning_config()
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def generate(self, prompt: str, request_id: str = "unknown") -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Deterministic prompt text
            request_id: Correlation id for tracing

        Returns:
            Non-empty generated text

        Raises:
            ReasoningServiceError: Not configured, timeout, transport error,
                non-2xx status, or an empty/malformed body
        """
        if not self.is_configured:
            raise ReasoningServiceError("not_configured", "Reasoning service is not configured")

        payload = {
            "prompt": prompt,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "model": self.config.model,
        }

        try:
            async with httpx.AsyncClient(
                headers=self._headers(),
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self.config.service_url, json=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as e:
            raise ReasoningServiceError(
                "timeout",
                f"Reasoning service timed out after {self.config.timeout_seconds}s",
            ) from e
        except httpx.HTTPStatusError as e:
            raise ReasoningServiceError(
                "http_error",
                f"Reasoning service returned HTTP {e.response.status_code}",
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ReasoningServiceError("transport_error", f"Reasoning service unreachable: {e}") from e
        except ValueError as e:
            raise ReasoningServiceError("invalid_response", "Reasoning service returned invalid JSON") from e
        except Exception as e:
            raise ReasoningServiceError("transport_error", f"Reasoning service call failed: {e}") from e

        text = self._extract_text(body)
        if not text:
            raise ReasoningServiceError("invalid_response", "Reasoning service returned no text")

        logger.info(
            "reasoning_summary_generated",
            extra={
                "request_id": request_id,
                "model": self.config.model,
                "summary_length": len(text),
            },
        )
        return text

    @staticmethod
    def _extract_text(body: Any) -> Optional[str]:
        """Accept {"text"}, {"completion"} or {"content": [{"text"}]} bodies."""
        if not isinstance(body, dict):
            return None

        for key in ("text", "completion"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()

        content = body.get("content")
        if isinstance(content, list):
            parts = [
                block["text"]
                for block in content
                if isinstance(block, dict) and isinstance(block.get("text"), str)
            ]
            joined = "".join(parts).strip()
            if joined:
                return joined

        return None
