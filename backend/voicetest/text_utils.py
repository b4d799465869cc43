from __future__ import annotations
import json
import re
from typing import Any


def extract_json(text: str) -> Any:
	"""Extract a JSON value from LLM response text.

	Tries the whole text first, then a fenced ```json block, then the first
	array or object embedded in the text.

	Raises:
		ValueError: If no valid JSON can be extracted from the text
	"""
	text = (text or "").strip()
	try:
		return json.loads(text)
	except Exception:
		pass
	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
	if code_block:
		try:
			return json.loads(code_block.group(1))
		except Exception:
			pass
	for pattern in (r"\[[\s\S]*\]", r"\{[\s\S]*\}"):
		match = re.search(pattern, text)
		if match:
			try:
				return json.loads(match.group(0))
			except Exception:
				continue
	raise ValueError("Failed to parse JSON from Gemini output")


def dedupe_transcript(text: str) -> str:
	"""Collapse repeated 1–3 word phrases and extra whitespace in a transcript.

	Speech recognition often produces repeated phrases due to interim/final
	result overlap.
	"""
	s = re.sub(r"\s+", " ", text or "").strip()
	if not s:
		return s
	patterns = [
		(r"\b(\w+\s+\w+\s+\w+)(?:\s+\1\b)+", r"\1"),
		(r"\b(\w+\s+\w+)(?:\s+\1\b)+", r"\1"),
		(r"\b(\w+)(?:\s+\1\b)+", r"\1"),
	]
	for pat, rep in patterns:
		s = re.sub(pat, rep, s, flags=re.IGNORECASE)
	return re.sub(r"\s+", " ", s).strip()
