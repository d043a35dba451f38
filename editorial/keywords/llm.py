# editorial/keywords/llm.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from openai import OpenAI, APIError

from editorial.app.errors import RequestFailed, ResponseMissingField, ResponseUndecodable
from editorial.app import settings

log = logging.getLogger(__name__)

SERVICE = "openai"


def _env_get(name: str, value: Optional[str]) -> str:
    if not value:
        raise ValueError(f"Missing environment variable: {name}")
    return value


def build_messages(system_prompt: str, user_prompt: str) -> List[Dict[str, str]]:
    return [{"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt}]


def get_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    connect_timeout: float = settings.LLM_CONNECT_TIMEOUT,
    total_timeout: float = settings.LLM_TIMEOUT,
) -> OpenAI:
    # Retries are caller policy; the client itself never retries.
    return OpenAI(
        api_key=_env_get("OPENAI_API_KEY", api_key or settings.OPENAI_API_KEY),
        base_url=base_url or settings.OPENAI_API_BASE,
        timeout=httpx.Timeout(total_timeout, connect=connect_timeout),
        max_retries=0,
    )


class StructuredLLM:
    """
    Chat completion constrained to a JSON schema.

    Fails loudly with one of three errors: the request itself failed, the
    reply is not a JSON object, or the reply has no content.
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: str = settings.DEFAULT_KEYWORD_MODEL,
        temperature: float = 0.0,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = get_client()
        return self._client

    def complete(self, system_prompt: str, user_prompt: str, schema_name: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=build_messages(system_prompt, user_prompt),
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": schema_name, "schema": schema, "strict": True},
                },
            )
        except APIError as e:
            log.warning("LLM request failed (%s): %s", type(e).__name__, e)
            raise RequestFailed(SERVICE, f"{type(e).__name__}: {e}") from e

        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            raise ResponseMissingField(SERVICE, "choices[0].message.content")

        try:
            decoded = json.loads(content)
        except json.JSONDecodeError as e:
            raise ResponseUndecodable(SERVICE, f"content is not JSON: {e}") from e
        if not isinstance(decoded, dict):
            raise ResponseUndecodable(SERVICE, "content is not a JSON object")
        return decoded
