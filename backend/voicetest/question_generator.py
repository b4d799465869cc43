from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from .gemini_client import GeminiClient
from .schemas import Difficulty, Question
from .text_utils import extract_json

logger = logging.getLogger(__name__)


QUESTIONS_SCHEMA: Dict[str, Any] = {
	"type": "ARRAY",
	"items": {
		"type": "OBJECT",
		"properties": {
			"question": {"type": "STRING"},
			"answer": {"type": "STRING"},
		},
		"required": ["question", "answer"],
	},
}


def _build_questions_prompt(topic: str, difficulty: str, count: int) -> str:
	return (
		f'Generate {count} aptitude questions for a voice test on the topic "{topic}" with {difficulty} difficulty. '
		"The questions should be clear and concise. "
		"The answers should be simple, one-or-two-word answers that are easy to say.\n\n"
		'Return ONLY a JSON array of objects with keys "question" (string) and "answer" (string).'
	)


def _parse_questions(raw: str, count: int) -> List[Question]:
	data = extract_json(raw)
	if isinstance(data, dict):
		# Some models wrap the array: {"questions": [...]}
		data = data.get("questions") or []
	if not isinstance(data, list):
		raise ValueError("Question payload is not a list")
	questions: List[Question] = []
	for entry in data:
		if not isinstance(entry, dict):
			continue
		try:
			questions.append(Question(
				prompt=str(entry.get("question") or ""),
				expected_answer=str(entry.get("answer") or ""),
			))
		except ValidationError:
			logger.debug("Dropping malformed question entry: %r", entry)
	return questions[:count]


class QuestionGenerator:
	"""Fetches a fixed question sequence for one session from Gemini."""

	def __init__(self, client_factory: Optional[Callable[[], GeminiClient]] = None) -> None:
		self._client_factory = client_factory or GeminiClient

	async def generate(self, topic: str, difficulty: Difficulty | str, count: int) -> List[Question]:
		"""Return up to `count` questions, or an empty list on any failure."""
		level = difficulty.value if isinstance(difficulty, Difficulty) else str(difficulty)
		try:
			client = self._client_factory()
		except Exception as e:
			logger.warning("Question generation unavailable: %s", e)
			return []
		try:
			raw = await client.generate_json(_build_questions_prompt(topic, level, count), QUESTIONS_SCHEMA)
			questions = _parse_questions(raw, count)
		except Exception as e:
			logger.warning("Error generating voice test questions: %s", e)
			return []
		finally:
			await client.aclose()
		logger.info("Generated %d/%d questions for %r (%s)", len(questions), count, topic, level)
		return questions
