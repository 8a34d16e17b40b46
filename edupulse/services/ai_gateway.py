import asyncio
from typing import Any, Dict, List, Optional, Union

import aiohttp
from pydantic import BaseModel, Field
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from edupulse.core.config import get_ai_gateway_settings
from edupulse.core.errors import AIGatewayError, ConfigurationError
from edupulse.core.logging import logger

Messages = List[Dict[str, Any]]


class AIGatewayConfig(BaseModel):
    """Connection settings for the OpenAI-compatible model gateway"""
    url: str = Field(..., description="Chat completions endpoint")
    api_key: Optional[str] = Field(None, description="Bearer token for the gateway")
    model: str = Field(..., description="Model identifier")
    timeout: float = Field(60.0, description="Total request timeout in seconds")
    max_attempts: int = Field(3, ge=1, description="Attempts for transient failures")
    backoff_multiplier: float = Field(1.0, ge=0)
    backoff_max: float = Field(10.0, ge=0)


class TransientGatewayError(AIGatewayError):
    """Connection failures, rate limits and 5xx answers; worth retrying"""


class AIGateway:
    """
    Thin client for the model gateway. Callers hand over a prompt (or a
    message list) and optionally an image data URL, and get back the raw
    text of the first choice. The text is never trusted to be JSON here.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = AIGatewayConfig(**(config or get_ai_gateway_settings()))

    @property
    def headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.config.api_key}',
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        }

    @staticmethod
    def build_messages(prompt_or_messages: Union[str, Messages], image: Optional[str] = None) -> Messages:
        if isinstance(prompt_or_messages, str):
            messages = [{"role": "user", "content": prompt_or_messages}]
        else:
            messages = [dict(message) for message in prompt_or_messages]

        if image:
            # Attach the image to the last user turn as a multimodal content list
            for message in reversed(messages):
                if message.get("role") == "user":
                    text = message.get("content") or ""
                    message["content"] = [
                        {"type": "text", "text": text},
                        {"type": "image_url", "image_url": {"url": image}}
                    ]
                    break
            else:
                messages.append({
                    "role": "user",
                    "content": [{"type": "image_url", "image_url": {"url": image}}]
                })
        return messages

    async def chat_complete(
        self,
        prompt_or_messages: Union[str, Messages],
        image: Optional[str] = None
    ) -> str:
        """Send one chat completion and return the reply text."""
        if not self.config.api_key:
            raise ConfigurationError("AI gateway API key is not configured")

        payload = {
            "model": self.config.model,
            "messages": self.build_messages(prompt_or_messages, image)
        }

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(
                multiplier=self.config.backoff_multiplier,
                max=self.config.backoff_max
            ),
            retry=retry_if_exception_type(TransientGatewayError),
            reraise=True
        )
        async for attempt in retrying:
            with attempt:
                data = await self._post(payload)

        return self._extract_content(data)

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.config.url, headers=self.headers, json=payload) as response:
                    if response.status == 429 or response.status >= 500:
                        error_text = await response.text()
                        logger.warning(f"AI gateway transient error {response.status}: {error_text[:500]}")
                        raise TransientGatewayError(
                            f"AI gateway error: {response.status}",
                            details={"status": response.status}
                        )

                    if response.status < 200 or response.status >= 300:
                        error_text = await response.text()
                        logger.error(f"AI gateway error {response.status}: {error_text[:500]}")
                        raise AIGatewayError(
                            f"AI gateway error: {response.status}",
                            details={"status": response.status}
                        )

                    try:
                        return await response.json(content_type=None)
                    except ValueError as e:
                        raise AIGatewayError(f"AI gateway returned invalid JSON: {str(e)}")

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"AI gateway unreachable: {e.__class__.__name__}: {str(e)}")
            raise TransientGatewayError("AI gateway is unreachable")

    @staticmethod
    def _extract_content(data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise AIGatewayError("AI gateway response has no message content")

        if content is None:
            return ""
        if not isinstance(content, str):
            raise AIGatewayError("AI gateway response content is not text")
        return content


_default_gateway: Optional[AIGateway] = None


def get_default_gateway() -> AIGateway:
    global _default_gateway
    if _default_gateway is None:
        _default_gateway = AIGateway()
    return _default_gateway
