"""
Spoken answer evaluation.

Gemini judges the spoken answer against the expected one, tolerating
small variations ("forty five" vs "45", "the answer is ..."). When the call
fails for any reason a local substring check takes over, so a caller always
gets a result.
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Optional

from .gemini_client import GeminiClient
from .schemas import EvaluationResult
from .text_utils import extract_json

logger = logging.getLogger(__name__)


EVALUATION_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"isCorrect": {"type": "BOOLEAN"},
		"feedback": {"type": "STRING"},
	},
	"required": ["isCorrect", "feedback"],
}


def _build_evaluation_prompt(question: str, expected_answer: str, spoken_answer: str) -> str:
	return f"""
Question: "{question}"
Correct Answer: "{expected_answer}"
User's Spoken Answer: "{spoken_answer}"

Is the user's spoken answer correct? Be flexible with minor variations (e.g., 'forty five' vs '45', extra words like 'the answer is...'). Respond in JSON format with two keys: "isCorrect" (boolean) and "feedback" (a brief string explaining why, or just confirming correctness).
""".strip()


def fallback_evaluate(expected_answer: str, spoken_answer: str) -> EvaluationResult:
	"""Case-insensitive containment of the expected answer in what was said."""
	expected = (expected_answer or "").strip().lower()
	spoken = (spoken_answer or "").lower()
	if expected and expected in spoken:
		return EvaluationResult(is_correct=True, feedback="Correct!", source="fallback")
	return EvaluationResult(
		is_correct=False,
		feedback=f'Sorry, an error occurred during evaluation. The expected answer is similar to "{expected_answer}".',
		source="fallback",
	)


def _parse_evaluation(raw: str) -> EvaluationResult:
	data = extract_json(raw)
	if not isinstance(data, dict):
		raise ValueError("Evaluation payload is not an object")
	is_correct = data.get("isCorrect")
	if not isinstance(is_correct, bool):
		raise ValueError(f"isCorrect must be a boolean, got {is_correct!r}")
	feedback = str(data.get("feedback") or "").strip() or ("Correct!" if is_correct else "That's not quite right.")
	return EvaluationResult(is_correct=is_correct, feedback=feedback, source="evaluator")


class AnswerEvaluator:
	def __init__(self, client_factory: Optional[Callable[[], GeminiClient]] = None) -> None:
		self._client_factory = client_factory or GeminiClient

	async def evaluate(self, question: str, expected_answer: str, spoken_answer: str) -> EvaluationResult:
		try:
			client = self._client_factory()
		except Exception as e:
			logger.warning("AI evaluation unavailable, using fallback: %s", e)
			return fallback_evaluate(expected_answer, spoken_answer)
		try:
			raw = await client.generate_json(
				_build_evaluation_prompt(question, expected_answer, spoken_answer),
				EVALUATION_SCHEMA,
			)
			return _parse_evaluation(raw)
		except Exception as e:
			# Full fallback when the evaluator call fails entirely
			logger.warning("Error evaluating answer, using fallback: %s", e)
			return fallback_evaluate(expected_answer, spoken_answer)
		finally:
			await client.aclose()
