import asyncio
import json

import httpx
import pytest

from voicetest.errors import GeminiError
from voicetest.gemini_client import GeminiClient


def _client_with(handler, **kwargs):
	client = GeminiClient("test-key", **kwargs)
	client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
	return client


def test_requires_api_key(patch_settings):
	patch_settings(gemini_api_key=None)
	with pytest.raises(GeminiError):
		GeminiClient()


def test_generate_json_sends_schema_and_returns_text(patch_settings):
	patch_settings(gemini_provider="ai_studio", openrouter_api_key=None)
	seen = {}

	def handler(request):
		seen["key"] = request.url.params.get("key")
		seen["body"] = json.loads(request.content)
		return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "[]"}]}}]})

	async def scenario():
		client = _client_with(handler)
		try:
			return await client.generate_json("prompt", {"type": "ARRAY"})
		finally:
			await client.aclose()

	assert asyncio.run(scenario()) == "[]"
	assert seen["key"] == "test-key"
	assert seen["body"]["generationConfig"]["responseSchema"] == {"type": "ARRAY"}
	assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"


def test_http_error_without_fallback_raises(patch_settings):
	patch_settings(gemini_provider="ai_studio", openrouter_api_key=None)

	async def scenario():
		client = _client_with(lambda request: httpx.Response(503, text="overloaded"))
		try:
			await client.generate("prompt")
		finally:
			await client.aclose()

	with pytest.raises(GeminiError):
		asyncio.run(scenario())
