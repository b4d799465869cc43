import asyncio
from typing import List, Optional

import pytest

from voicetest.controller import SessionController
from voicetest.schemas import EvaluationResult, Question, SessionConfig
from voicetest.settings import settings
from voicetest.speech.base import Recognizer, SpeechCapabilities, Synthesizer

TICK = 0.01

QUESTIONS = [
	Question(prompt="What is the capital of France?", expected_answer="Paris"),
	Question(prompt="What is 7 times 8?", expected_answer="56"),
	Question(prompt="What is the opposite of hot?", expected_answer="Cold"),
]


class FakeRecognizer(Recognizer):
	def __init__(self) -> None:
		self.started: List[int] = []
		self.stops = 0
		self.closed = False

	def start(self, pass_id: int) -> None:
		self.started.append(pass_id)

	def stop(self) -> None:
		self.stops += 1

	def close(self) -> None:
		self.closed = True


class FakeSynthesizer(Synthesizer):
	def __init__(self) -> None:
		self.spoken: List[tuple] = []
		self.cancels = 0

	def speak(self, text: str, *, utterance_id: int, rate: float, lang: str) -> None:
		self.spoken.append((text, utterance_id))

	def cancel(self) -> None:
		self.cancels += 1

	@property
	def last_utterance(self) -> int:
		return self.spoken[-1][1]


class FakeGenerator:
	def __init__(self, questions=None, gate: Optional[asyncio.Event] = None) -> None:
		self.questions = list(QUESTIONS if questions is None else questions)
		self.gate = gate
		self.calls: List[tuple] = []

	async def generate(self, topic, difficulty, count):
		self.calls.append((topic, difficulty, count))
		if self.gate is not None:
			await self.gate.wait()
		return self.questions[:count]


class FakeEvaluator:
	"""Marks an answer correct when the expected answer appears in it."""

	def __init__(self, gate: Optional[asyncio.Event] = None) -> None:
		self.gate = gate
		self.calls: List[tuple] = []

	async def evaluate(self, question, expected_answer, spoken_answer):
		self.calls.append((question, expected_answer, spoken_answer))
		if self.gate is not None:
			await self.gate.wait()
		if expected_answer.lower() in spoken_answer.lower():
			return EvaluationResult(is_correct=True, feedback="Correct!")
		return EvaluationResult(is_correct=False, feedback="That's not quite right.")


class Rig:
	"""A controller wired to fake speech engines and fake AI services."""

	def __init__(self, *, generator=None, evaluator=None, time_limit: int = 30, capabilities=None) -> None:
		self.recognizers: List[FakeRecognizer] = []
		self.synths: List[FakeSynthesizer] = []
		self.generator = generator or FakeGenerator()
		self.evaluator = evaluator or FakeEvaluator()
		caps = capabilities or SpeechCapabilities(self._make_recognizer, self._make_synthesizer)
		self.controller = SessionController(
			self.generator, self.evaluator, caps,
			time_limit=time_limit, tick_seconds=TICK,
		)
		self.snapshots = []
		self.outcomes = []
		self.controller.subscribe(self.snapshots.append)
		self.controller.on_finished(self.outcomes.append)

	def _make_recognizer(self) -> FakeRecognizer:
		self.recognizers.append(FakeRecognizer())
		return self.recognizers[-1]

	def _make_synthesizer(self) -> FakeSynthesizer:
		self.synths.append(FakeSynthesizer())
		return self.synths[-1]

	@property
	def recognizer(self) -> FakeRecognizer:
		return self.recognizers[-1]

	@property
	def synth(self) -> FakeSynthesizer:
		return self.synths[-1]

	async def start(self, count: int = 3, topic: str = "General Knowledge") -> bool:
		return await self.controller.start(SessionConfig(topic=topic, question_count=count))

	def finish_reading(self) -> None:
		self.controller.playback.handle_end(self.synth.last_utterance)

	def say(self, text: str) -> None:
		capture = self.controller.capture
		capture.handle_results([(text, True)], capture.pass_id)

	async def answer(self, text: str) -> None:
		assert self.controller.listen()
		self.say(text)
		await self.controller.drain()


@pytest.fixture
def rig_factory():
	return Rig


@pytest.fixture
def patch_settings(monkeypatch):
	def _patch(**values):
		for name, value in values.items():
			monkeypatch.setattr(settings, name, value)
	return _patch
