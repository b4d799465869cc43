from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from .errors import GeminiError
from .settings import settings

logger = logging.getLogger(__name__)


def _endpoint(provider: str, model: str) -> Tuple[str, bool]:
	"""Return (url, key_in_query) for the configured provider."""
	if provider == "vertex":
		region = settings.vertex_region
		project = settings.vertex_project or "placeholder-project"
		return (
			f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}"
			f"/locations/{region}/publishers/google/models/{model}:generateContent",
			False,
		)
	# AI Studio (Generative Language API) takes the key as a query parameter
	return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent", True


def _candidate_text(data: Dict[str, Any]) -> str:
	parts = data["candidates"][0]["content"]["parts"]
	text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
	if not text.strip():
		raise KeyError("empty candidate")
	return text


class GeminiClient:
	"""Thin async client for generateContent, with an optional OpenRouter fallback.

	One instance per call site; callers close it with aclose().
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise GeminiError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		url, self._key_in_query = _endpoint(settings.gemini_provider, self.model)
		self.base_url = base_url or url
		timeout = timeout or settings.gemini_timeout_seconds
		self._client = httpx.AsyncClient(timeout=timeout)
		self._openrouter_key = settings.openrouter_api_key
		self._openrouter: Optional[httpx.AsyncClient] = (
			httpx.AsyncClient(timeout=timeout) if self._openrouter_key else None
		)

	async def generate(self, prompt: str) -> str:
		return await self._post({"contents": [{"parts": [{"text": prompt}]}]}, prompt)

	async def generate_json(self, prompt: str, schema: Dict[str, Any]) -> str:
		"""Ask for a JSON document constrained by an OpenAPI-style response schema.

		The OpenRouter fallback cannot enforce the schema, so callers must still
		parse the result tolerantly.
		"""
		payload = {
			"contents": [{"parts": [{"text": prompt}]}],
			"generationConfig": {"responseMimeType": "application/json", "responseSchema": schema},
		}
		return await self._post(payload, prompt)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._openrouter is not None:
			await self._openrouter.aclose()

	async def _post(self, payload: Dict[str, Any], prompt: str) -> str:
		if self._key_in_query:
			params, headers = {"key": self.api_key}, {}
		else:
			params, headers = {}, {"x-goog-api-key": self.api_key}
		error: Exception
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPError as e:
			error = e
		else:
			try:
				return _candidate_text(r.json())
			except (ValueError, KeyError, IndexError, TypeError):
				error = GeminiError(f"Unexpected Gemini response: {r.text[:500]}")

		logger.warning("Gemini call to %s failed: %s", self.model, error)
		if self._openrouter is None:
			raise GeminiError(f"Gemini call failed: {error}") from error
		return await self._via_openrouter(prompt, error)

	async def _via_openrouter(self, prompt: str, primary_error: Exception) -> str:
		headers = {
			"Authorization": f"Bearer {self._openrouter_key}",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		payload = {"model": settings.openrouter_model, "messages": [{"role": "user", "content": prompt}]}
		try:
			r = await self._openrouter.post(settings.openrouter_base_url, headers=headers, json=payload)
			r.raise_for_status()
			return r.json()["choices"][0]["message"]["content"]
		except Exception as e:
			raise GeminiError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from e
