from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .settings import settings


class Difficulty(str, Enum):
	EASY = "Easy"
	MEDIUM = "Medium"
	HARD = "Hard"


class Phase(str, Enum):
	"""Lifecycle of one voice test session."""
	SETUP = "setup"
	LOADING = "loading"
	IN_PROGRESS = "in-progress"
	EVALUATING = "evaluating"
	FINISHED = "finished"


class SessionConfig(BaseModel):
	"""Setup choices; frozen once the session starts."""
	model_config = ConfigDict(frozen=True)

	topic: str = Field(default_factory=lambda: settings.default_topic)
	difficulty: Difficulty = Difficulty.MEDIUM
	question_count: int = Field(default_factory=lambda: settings.default_questions)

	@field_validator("topic")
	@classmethod
	def _topic_not_blank(cls, value: str) -> str:
		value = (value or "").strip()
		if not value:
			raise ValueError("topic must not be blank")
		return value

	@model_validator(mode="after")
	def _count_in_bounds(self) -> "SessionConfig":
		if not settings.min_questions <= self.question_count <= settings.max_questions:
			raise ValueError(
				f"question_count must be between {settings.min_questions} and {settings.max_questions}"
			)
		return self


class Question(BaseModel):
	model_config = ConfigDict(frozen=True)

	prompt: str
	expected_answer: str

	@field_validator("prompt", "expected_answer")
	@classmethod
	def _not_blank(cls, value: str) -> str:
		value = (value or "").strip()
		if not value:
			raise ValueError("must not be blank")
		return value


class Transcript(BaseModel):
	text: str = ""
	is_final: bool = False


class EvaluationResult(BaseModel):
	is_correct: bool
	feedback: str
	timed_out: bool = False
	# evaluator | fallback | timeout | no-answer
	source: str = "evaluator"


class SessionSnapshot(BaseModel):
	"""What a client needs to render the current session. Never carries the expected answer."""
	phase: Phase
	topic: Optional[str] = None
	difficulty: Optional[Difficulty] = None
	question_index: int = 0
	question_number: int = 0
	question_count: int = 0
	prompt: Optional[str] = None
	score: int = 0
	time_limit: int
	time_remaining: int
	awaiting_answer: bool = False
	is_listening: bool = False
	is_speaking: bool = False
	transcript: Transcript = Field(default_factory=Transcript)
	evaluation: Optional[EvaluationResult] = None
	can_listen: bool = False
	can_retry: bool = False
	can_advance: bool = False
	is_last_question: bool = False
	end_requested: bool = False
	voice_enabled: bool = True
	voice_unavailable_reason: Optional[str] = None
	status_text: str = ""


class SessionOutcome(BaseModel):
	"""Final result handed to the caller for persistence."""
	session_id: str
	topic: str
	difficulty: Difficulty
	score: int
	total_questions: int
	completed: bool
	finished_at: datetime
