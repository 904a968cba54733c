"""Tests for the OpenAI-backed summarizer."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from app.domains.insights.summarizer import OpenAISummarizer, SummarizerError, extract_json_snippet


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def openai_client():
    return MagicMock()


@pytest.fixture
def summarizer(openai_client):
    return OpenAISummarizer(api_key="test", model="test-model", client=openai_client)


class TestOpenAISummarizer:

    def test_complete_text(self, summarizer, openai_client):
        openai_client.chat.completions.create.return_value = completion("  A summary.\n")

        assert summarizer.complete_text("system", "user") == "A summary."
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert "response_format" not in kwargs

    def test_complete_json_uses_json_mode(self, summarizer, openai_client):
        openai_client.chat.completions.create.return_value = completion('{"headline": "ok"}')

        assert summarizer.complete_json("system", "user") == {"headline": "ok"}
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}

    def test_complete_json_recovers_fenced_object(self, summarizer, openai_client):
        openai_client.chat.completions.create.return_value = completion(
            'Here you go:\n```json\n{"headline": "ok"}\n```'
        )

        assert summarizer.complete_json("system", "user") == {"headline": "ok"}

    def test_invalid_json_raises(self, summarizer, openai_client):
        openai_client.chat.completions.create.return_value = completion("no json here")

        with pytest.raises(SummarizerError):
            summarizer.complete_json("system", "user")

    def test_empty_response_raises(self, summarizer, openai_client):
        openai_client.chat.completions.create.return_value = completion(None)

        with pytest.raises(SummarizerError):
            summarizer.complete_text("system", "user")

    def test_api_error_raises(self, summarizer, openai_client):
        openai_client.chat.completions.create.side_effect = RuntimeError("timeout")

        with pytest.raises(SummarizerError):
            summarizer.complete_text("system", "user")


class TestExtractJsonSnippet:

    def test_embedded_braces(self):
        assert extract_json_snippet('prefix {"a": 1} suffix') == '{"a": 1}'

    def test_nothing_to_extract(self):
        assert extract_json_snippet("") is None
        assert extract_json_snippet("plain text") is None
