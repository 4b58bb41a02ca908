"""OpenAI-compatible chat client for agent suggestions."""

import json
from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI

from recipe_optimizer.errors import AgentResponseError
from recipe_optimizer.services.agent import AgentClient


@dataclass
class OpenAIAgentClient(AgentClient):
    """Agent client backed by the Chat Completions API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, base_url: str, timeout_seconds: float = 30.0
    ) -> "OpenAIAgentClient":
        """Create a client with a managed httpx session."""
        http_client = httpx.AsyncClient(timeout=timeout_seconds)
        return cls(
            client=AsyncOpenAI(
                api_key=api_key, base_url=base_url, http_client=http_client
            )
        )

    async def suggest(  # noqa: PLR0913
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        schema: dict[str, object],
        temperature: float,
        max_tokens: int,
    ) -> dict[str, object]:
        """Call the chat endpoint with a strict JSON schema response format."""
        response = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": "recipe_modification_suggestions",
                    "strict": True,
                    "schema": schema,
                },
            },
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if not response.choices:
            raise AgentResponseError("Agent returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise AgentResponseError("Agent returned an empty response")
        try:
            decoded = json.loads(_strip_code_fence(content))
        except json.JSONDecodeError as exc:
            raise AgentResponseError(f"Agent returned invalid JSON: {exc}") from exc
        if not isinstance(decoded, dict):
            raise AgentResponseError("Agent response is not a JSON object")
        return decoded

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()


def _strip_code_fence(content: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = content.strip()
    if text.startswith("```json"):
        text = text.removeprefix("```json")
    elif text.startswith("```"):
        text = text.removeprefix("```")
    return text.removesuffix("```").strip()
