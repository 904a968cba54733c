"""LLM summarizer used for narrative insights."""
import json
import logging
import time
from typing import Any, Protocol

from openai import OpenAI

from app.core.config import settings

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    """Anything that turns prompts into narrative text or a JSON object."""

    def complete_text(self, system_prompt: str, user_prompt: str) -> str: ...

    def complete_json(self, system_prompt: str, user_prompt: str) -> dict[str, Any]: ...


class SummarizerError(Exception):
    """Raised when the language model call fails or returns nothing usable."""
    pass


class OpenAISummarizer:
    """Summarizer backed by an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        client: OpenAI | None = None,
    ):
        self.model = model or settings.LLM_MODEL
        self._api_key = api_key or settings.OPENAI_API_KEY
        self._base_url = base_url or settings.LLM_BASE_URL
        self._client = client

    @property
    def client(self) -> OpenAI:
        """Lazy-load the OpenAI client."""
        if self._client is None:
            self._client = OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=settings.LLM_TIMEOUT,
                max_retries=1,
            )
            logger.info(f"Initialized OpenAI client with model: {self.model}")
        return self._client

    def _chat(self, system_prompt: str, user_prompt: str, response_format: dict | None = None) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if response_format:
            kwargs["response_format"] = response_format

        started = time.time()
        try:
            response = self.client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error(f"Chat completion error: {e}")
            raise SummarizerError(f"Chat completion failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        logger.info(f"LLM response in {time.time() - started:.2f}s, {len(content or '')} chars")
        if not content:
            raise SummarizerError("Empty response from language model")
        return content

    def complete_text(self, system_prompt: str, user_prompt: str) -> str:
        return self._chat(system_prompt, user_prompt).strip()

    def complete_json(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        """Chat completion in JSON mode, recovering fenced or embedded objects."""
        text = self._chat(system_prompt, user_prompt, response_format={"type": "json_object"})
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            snippet = extract_json_snippet(text)
            if snippet:
                try:
                    return json.loads(snippet)
                except json.JSONDecodeError:
                    pass
            logger.debug(f"Unparseable response (first 500 chars): {text[:500]}")
            raise SummarizerError(f"Language model returned invalid JSON: {e}") from e


def extract_json_snippet(text: str) -> str | None:
    """Attempt to recover a JSON object from a free-form response."""
    if not text:
        return None

    fence = "```"
    if fence in text:
        first = text.find(fence)
        second = text.find(fence, first + len(fence))
        if second != -1:
            snippet = text[first + len(fence):second].strip()
            if snippet.lower().startswith("json"):
                snippet = snippet[4:].lstrip()
            if snippet:
                return snippet

    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        return text[first_brace:last_brace + 1].strip()

    return None
