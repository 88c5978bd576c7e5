"""Thin Bedrock client wrapper for conversational LLM invocations."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings
from app.services.aws import create_boto3_client

logger = logging.getLogger(__name__)


class LlmInvocationError(RuntimeError):
    """Raised when the Bedrock invocation fails."""


def _decode_bedrock_api_key(secret_value: Optional[str]) -> tuple[str, str] | None:
    """Decode the BEDROCK_API_KEY secret into access/secret key components."""

    if not secret_value:
        return None

    try:
        decoded_bytes = base64.b64decode(secret_value.strip())
    except (binascii.Error, ValueError):
        decoded_bytes = secret_value.encode("utf-8", "ignore")

    filtered = "".join(chr(b) for b in decoded_bytes if 31 < b < 127)
    if ":" not in filtered:
        return None
    access_key, secret_key = filtered.split(":", 1)
    return access_key, secret_key


class BedrockLlmClient:
    """Invoke Amazon Bedrock models with standard configuration."""

    def __init__(self, *, model_id: str | None = None) -> None:
        self._model_id = model_id or settings.bedrock.model_id
        self._client: Any | None = None

    def _get_client(self) -> Any:
        if self._client is None:
            api_key_tuple = None
            if settings.bedrock.api_key:
                api_key_tuple = _decode_bedrock_api_key(
                    settings.bedrock.api_key.get_secret_value()
                )
            self._client = create_boto3_client(
                "bedrock-runtime",
                region_name=settings.bedrock.region,
                aws_access_key_id=api_key_tuple[0] if api_key_tuple else None,
                aws_secret_access_key=api_key_tuple[1] if api_key_tuple else None,
            )
        return self._client

    async def generate(self, system_prompt: str, user_text: str) -> str:
        """Generative contract: return a non-empty reply or raise."""

        reply = await self.invoke(system_prompt=system_prompt, user_prompt=user_text)
        if not reply:
            raise LlmInvocationError("Bedrock returned an empty response.")
        return reply

    async def invoke(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
    ) -> str | None:
        """Run a Bedrock `converse` call and return the aggregate text output."""

        if not self._model_id:
            raise LlmInvocationError("No Bedrock model configured.")

        inference_cfg = {
            "maxTokens": settings.bedrock.max_tokens,
            "temperature": settings.bedrock.temperature,
            "topP": settings.bedrock.top_p,
        }

        def _call() -> str:
            response = self._get_client().converse(
                modelId=self._model_id,
                system=[{"text": system_prompt}],
                messages=[{"role": "user", "content": [{"text": user_prompt}]}],
                inferenceConfig=inference_cfg,
            )
            content_blocks = (
                response.get("output", {})
                .get("message", {})
                .get("content", [])
            )
            texts = [block.get("text", "") for block in content_blocks if block.get("text")]
            return "\n".join(texts).strip()

        try:
            result = await run_in_threadpool(_call)
        except Exception as exc:  # pragma: no cover - external dependency
            raise LlmInvocationError(str(exc)) from exc

        return result or None


__all__ = ["BedrockLlmClient", "LlmInvocationError"]
