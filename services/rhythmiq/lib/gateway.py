# services/rhythmiq/lib/gateway.py
"""
Thin async client for the chat-completions style AI gateway.
"""
import logging
from typing import Dict, List, Optional

import httpx

from . import config
from .errors import GatewayError

logger = logging.getLogger(__name__)


class AIGatewayClient:
    """Posts `{model, messages}` and hands back the first choice's text."""

    def __init__(
        self,
        api_key: str,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = url or config.get_gateway_url()
        self.timeout = timeout if timeout is not None else config.get_gateway_timeout()
        self._transport = transport

    @classmethod
    def from_env(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "AIGatewayClient":
        # Raises ConfigurationError when the credential is absent
        return cls(api_key=config.get_api_key(), transport=transport)

    async def complete(self, model: str, messages: List[Dict[str, str]]) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": model, "messages": messages}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"AI gateway request failed: {e}")
            raise GatewayError(f"AI gateway unreachable: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            logger.error(f"AI API error: {response.status_code} {response.text[:500]}")
            raise GatewayError(
                f"AI API error: {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
            return data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected AI gateway payload: {response.text[:500]}")
            raise GatewayError("AI API returned an unexpected payload") from e
