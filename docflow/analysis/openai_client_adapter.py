from typing import Any

import httpx
import openai

from docflow.analysis.client_base import BaseAnalysisClient
from docflow.analysis.exceptions import ProviderNetworkError, ProviderResponseError


class OpenAIClientAdapter(BaseAnalysisClient):
    """Chat client built on the OpenAI-compatible chat completions API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    def create_chat_completion(
        self,
        *,
        task: str,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        messages = [{"role": "user", "content": user_prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})
        request: dict[str, Any] = {
            "model": model,
            "temperature": temperature,
            "messages": messages,
        }
        if json_schema is not None:
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": task, "strict": True, "schema": json_schema},
            }

        try:
            response = self._client.chat.completions.create(**request)
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ProviderNetworkError(f"AI provider network error during {task}: {exc}") from exc
        except openai.APIError as exc:
            raise ProviderNetworkError(f"AI provider API error during {task}: {exc}") from exc

        if not response.choices:
            raise ProviderResponseError(f"AI returned no choices for {task}")
        content = response.choices[0].message.content
        if content is None:
            raise ProviderResponseError(f"AI returned empty response for {task}")
        return content
