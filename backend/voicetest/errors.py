from __future__ import annotations


class VoiceTestError(Exception):
	"""Base class for voice test failures surfaced to callers."""


class InvalidTransition(VoiceTestError):
	def __init__(self, current: str, target: str) -> None:
		super().__init__(f"Illegal phase change {current} -> {target}")
		self.current = current
		self.target = target


class VoiceUnavailableError(VoiceTestError):
	"""Speech recognition or synthesis is not supported by the client platform."""


class QuestionGenerationError(VoiceTestError):
	"""The question generator returned no usable questions."""


class GeminiError(RuntimeError):
	"""Gemini call failed and no fallback provider produced a response."""
