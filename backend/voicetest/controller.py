"""
Voice Test Session Controller
=============================

Drives one timed, voice-driven aptitude test: questions are read aloud,
the countdown starts once the reading finishes, the spoken answer is
captured and judged, and the user then retries, moves on, or ends.

Phases: setup -> loading -> in-progress <-> evaluating -> finished -> setup.
Every phase change goes through `_transition`, which only allows the
edges in `_TRANSITIONS`. Inside in-progress, `awaiting_answer` marks the
window in which the countdown runs and an answer is accepted.

Both ways out of that window (the countdown reaching zero and a final
transcript) go through `_finalize_attempt`, which acts once per attempt.
Callbacks from the timer, recognizer, synthesizer and evaluator are checked
against the controller's state at the moment they arrive, so anything
arriving after a cancel, advance, retry or end is ignored.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from .errors import InvalidTransition, QuestionGenerationError, VoiceUnavailableError
from .evaluator import AnswerEvaluator, fallback_evaluate
from .question_generator import QuestionGenerator
from .schemas import (
	EvaluationResult,
	Phase,
	Question,
	SessionConfig,
	SessionOutcome,
	SessionSnapshot,
	Transcript,
)
from .settings import settings
from .speech.base import SpeechCapabilities
from .speech.capture import SpeechCaptureAdapter
from .speech.playback import SpeechPlaybackAdapter
from .text_utils import dedupe_transcript
from .timer import CountdownTimer

logger = logging.getLogger(__name__)


TIME_UP_FEEDBACK = "Time's up! You need to be quicker."
NO_ANSWER_FEEDBACK = "No answer was detected. Please speak clearly and try again."

_ENDABLE: FrozenSet[Phase] = frozenset({Phase.LOADING, Phase.IN_PROGRESS, Phase.EVALUATING})

_TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
	Phase.SETUP: frozenset({Phase.LOADING}),
	Phase.LOADING: frozenset({Phase.IN_PROGRESS, Phase.SETUP, Phase.FINISHED}),
	# in-progress -> in-progress is the advance/retry self-loop
	Phase.IN_PROGRESS: frozenset({Phase.IN_PROGRESS, Phase.EVALUATING, Phase.FINISHED}),
	Phase.EVALUATING: frozenset({Phase.IN_PROGRESS, Phase.FINISHED}),
	Phase.FINISHED: frozenset({Phase.SETUP}),
}


class _SessionState:
	"""Mutable state of a running session. Only the controller writes it."""

	def __init__(self, config: SessionConfig, questions: Tuple[Question, ...], time_limit: int) -> None:
		self.session_id: str = uuid.uuid4().hex
		self.config = config
		self.questions = questions
		self.index: int = 0
		self.score: int = 0
		self.scored: Set[int] = set()
		self.time_remaining: int = time_limit
		self.transcript = Transcript()
		self.evaluation: Optional[EvaluationResult] = None
		self.awaiting_answer: bool = False
		self.attempt: int = 0

	@property
	def current(self) -> Question:
		return self.questions[self.index]

	@property
	def is_last(self) -> bool:
		return self.index >= len(self.questions) - 1


class SessionController:
	def __init__(
		self,
		generator: QuestionGenerator,
		evaluator: AnswerEvaluator,
		capabilities: SpeechCapabilities,
		*,
		time_limit: Optional[int] = None,
		tick_seconds: Optional[float] = None,
		speech_rate: Optional[float] = None,
		speech_lang: Optional[str] = None,
	) -> None:
		self.generator = generator
		self.evaluator = evaluator
		self.capabilities = capabilities
		self.time_limit = int(time_limit if time_limit is not None else settings.question_time_limit)
		if self.time_limit < 1:
			raise ValueError("time_limit must be at least 1 second")
		self.speech_rate = speech_rate if speech_rate is not None else settings.speech_rate
		self.speech_lang = speech_lang if speech_lang is not None else settings.speech_lang
		self.timer = CountdownTimer(
			self._on_timeout,
			on_tick=self._on_tick,
			tick_seconds=tick_seconds if tick_seconds is not None else settings.timer_tick_seconds,
		)
		self._phase = Phase.SETUP
		self._config: Optional[SessionConfig] = None
		self._state: Optional[_SessionState] = None
		self._capture: Optional[SpeechCaptureAdapter] = None
		self._playback: Optional[SpeechPlaybackAdapter] = None
		self._evaluation_task: Optional[asyncio.Task] = None
		self._end_requested = False
		self._outcome: Optional[SessionOutcome] = None
		self._listeners: List[Callable[[SessionSnapshot], None]] = []
		self._finished_listeners: List[Callable[[SessionOutcome], None]] = []
		if not capabilities.voice_enabled:
			logger.warning("Voice test disabled: %s", capabilities.unavailable_reason)

	# ---------- read side ----------

	@property
	def phase(self) -> Phase:
		return self._phase

	@property
	def capture(self) -> Optional[SpeechCaptureAdapter]:
		return self._capture

	@property
	def playback(self) -> Optional[SpeechPlaybackAdapter]:
		return self._playback

	@property
	def outcome(self) -> Optional[SessionOutcome]:
		return self._outcome

	@property
	def score(self) -> int:
		return self._state.score if self._state else 0

	@property
	def question_index(self) -> int:
		return self._state.index if self._state else 0

	@property
	def evaluation(self) -> Optional[EvaluationResult]:
		return self._state.evaluation if self._state else None

	@property
	def awaiting_answer(self) -> bool:
		return bool(self._state and self._state.awaiting_answer)

	def subscribe(self, listener: Callable[[SessionSnapshot], None]) -> None:
		self._listeners.append(listener)

	def on_finished(self, listener: Callable[[SessionOutcome], None]) -> None:
		self._finished_listeners.append(listener)

	def snapshot(self) -> SessionSnapshot:
		state = self._state
		config = self._config
		shows_question = state is not None and self._phase in (Phase.IN_PROGRESS, Phase.EVALUATING)
		if state is not None:
			question_count = len(state.questions)
		elif self._outcome is not None:
			question_count = self._outcome.total_questions
		else:
			question_count = config.question_count if config else 0
		return SessionSnapshot(
			phase=self._phase,
			topic=config.topic if config else None,
			difficulty=config.difficulty if config else None,
			question_index=state.index if state else 0,
			question_number=state.index + 1 if state else 0,
			question_count=question_count,
			prompt=state.current.prompt if shows_question else None,
			score=state.score if state else 0,
			time_limit=self.time_limit,
			time_remaining=state.time_remaining if state else self.time_limit,
			awaiting_answer=bool(state and state.awaiting_answer),
			is_listening=bool(self._capture and self._capture.listening),
			is_speaking=bool(self._playback and self._playback.speaking),
			transcript=state.transcript.model_copy() if state else Transcript(),
			evaluation=state.evaluation if state else None,
			can_listen=self._can_listen(),
			can_retry=self._can_retry(),
			can_advance=self._can_advance(),
			is_last_question=bool(shows_question and state.is_last),
			end_requested=self._end_requested,
			voice_enabled=self.capabilities.voice_enabled,
			voice_unavailable_reason=self.capabilities.unavailable_reason,
			status_text=self._status_text(),
		)

	def _status_text(self) -> str:
		state = self._state
		if self._phase is Phase.SETUP:
			if not self.capabilities.voice_enabled:
				return f"Voice test unavailable: {self.capabilities.unavailable_reason}"
			return "Choose a topic to begin"
		if self._phase is Phase.LOADING:
			return "Generating your voice test..."
		if self._phase is Phase.FINISHED:
			return "Test Finished!"
		if self._phase is Phase.EVALUATING:
			return "Evaluating..."
		if self._capture is not None and self._capture.listening:
			return "Listening..."
		if state is not None and state.evaluation is not None:
			return "Check your result below"
		if state is not None and state.time_remaining == 0:
			return "Time's up!"
		if state is not None and not state.awaiting_answer:
			return "Reading question..."
		return "Tap to Speak"

	# ---------- user actions ----------

	async def start(self, config: SessionConfig) -> bool:
		"""Fetch questions and present the first one.

		Raises:
			VoiceUnavailableError: speech is not supported; the controller stays in setup
			QuestionGenerationError: no questions came back; the controller is back in setup
		"""
		if self._phase is not Phase.SETUP:
			return self._reject("start")
		if not self.capabilities.voice_enabled:
			raise VoiceUnavailableError(self.capabilities.unavailable_reason)
		self._config = config
		self._transition(Phase.LOADING)
		try:
			questions = await self.generator.generate(config.topic, config.difficulty, config.question_count)
		except Exception as e:
			logger.warning("Question generator failed: %s", e)
			questions = []
		if self._phase is not Phase.LOADING or self._config is not config:
			# Ended while loading; nothing to start
			return False
		if not questions:
			self._config = None
			self._transition(Phase.SETUP)
			raise QuestionGenerationError("Failed to generate questions. Please try again.")

		self._state = _SessionState(config, tuple(questions), self.time_limit)
		self._open_speech()
		logger.info(
			"Session %s started: %d questions on %r (%s)",
			self._state.session_id, len(questions), config.topic, config.difficulty.value,
		)
		self._transition(Phase.IN_PROGRESS)
		self._present_question()
		return True

	def speak_again(self) -> bool:
		"""Read the current question again. A replay never touches the countdown."""
		state = self._state
		if (
			self._phase is not Phase.IN_PROGRESS
			or state is None
			or self._playback is None
			or (self._capture is not None and self._capture.listening)
		):
			return self._reject("speak_again")
		if state.awaiting_answer or state.evaluation is not None:
			self._playback.speak(state.current.prompt)
			self._notify()
		else:
			# First reading still playing: restart it and keep its completion hook
			self._present_question()
		return True

	def listen(self) -> bool:
		"""Tap-to-answer: open one listening pass."""
		if not self._can_listen():
			return self._reject("listen")
		self._playback.cancel()
		self._state.transcript = Transcript()
		self._capture.start()
		self._notify()
		return True

	def retry(self) -> bool:
		"""Try the same question again after an incorrect answer, with a fresh countdown."""
		if not self._can_retry():
			return self._reject("retry")
		state = self._state
		self._playback.cancel()
		state.transcript = Transcript()
		state.evaluation = None
		self._transition(Phase.IN_PROGRESS)
		self._open_attempt()
		if self._capture is not None and not self._capture.listening:
			self._capture.start()
			self._notify()
		return True

	def advance(self) -> bool:
		"""Move to the next question, or finish after the last one."""
		if not self._can_advance():
			return self._reject("advance")
		state = self._state
		self._halt()
		state.transcript = Transcript()
		state.evaluation = None
		state.awaiting_answer = False
		if state.is_last:
			self._finish(completed=True)
			return True
		state.index += 1
		self._transition(Phase.IN_PROGRESS)
		self._present_question()
		return True

	def request_end(self) -> bool:
		if self._phase not in _ENDABLE:
			return self._reject("request_end")
		self._end_requested = True
		self._notify()
		return True

	def cancel_end(self) -> bool:
		if not self._end_requested:
			return self._reject("cancel_end")
		self._end_requested = False
		self._notify()
		return True

	def confirm_end(self) -> bool:
		"""End the test early. Only valid after request_end()."""
		if not self._end_requested or self._phase not in _ENDABLE:
			return self._reject("confirm_end")
		self._finish(completed=False)
		return True

	def reset(self) -> bool:
		"""Back to setup from the results screen, dropping every trace of the session."""
		if self._phase is not Phase.FINISHED:
			return self._reject("reset")
		self.timer.stop()
		self._close_speech()
		self._state = None
		self._config = None
		self._outcome = None
		self._end_requested = False
		self._transition(Phase.SETUP)
		return True

	async def drain(self) -> None:
		"""Wait until an in-flight evaluation (if any) has settled."""
		task = self._evaluation_task
		if task is not None and not task.done():
			await asyncio.wait([task])

	def close(self) -> None:
		"""Tear down on disconnect: ends a running session and releases speech engines."""
		if self._phase in _ENDABLE:
			self._finish(completed=False)
		self.timer.stop()
		self._close_speech()

	# ---------- guards ----------

	def _can_listen(self) -> bool:
		state = self._state
		return (
			self._phase is Phase.IN_PROGRESS
			and state is not None
			and state.awaiting_answer
			and state.evaluation is None
			and state.time_remaining > 0
			and self._capture is not None
			and not self._capture.listening
		)

	def _can_retry(self) -> bool:
		state = self._state
		return (
			self._phase is Phase.IN_PROGRESS
			and state is not None
			and state.evaluation is not None
			and not state.evaluation.is_correct
			and not state.evaluation.timed_out
			and state.time_remaining > 0
		)

	def _can_advance(self) -> bool:
		state = self._state
		return self._phase is Phase.IN_PROGRESS and state is not None and state.evaluation is not None

	def _reject(self, action: str) -> bool:
		logger.info("Rejected %s in phase %s", action, self._phase.value)
		return False

	# ---------- question flow ----------

	def _present_question(self) -> None:
		state = self._state
		state.transcript = Transcript()
		state.evaluation = None
		state.awaiting_answer = False
		state.time_remaining = self.time_limit
		index = state.index
		self._playback.speak(state.current.prompt, on_done=lambda: self._on_question_read(index))
		self._notify()

	def _on_question_read(self, index: int) -> None:
		state = self._state
		if (
			self._phase is not Phase.IN_PROGRESS
			or state is None
			or state.index != index
			or state.awaiting_answer
			or state.evaluation is not None
		):
			return
		self._open_attempt()

	def _open_attempt(self) -> None:
		state = self._state
		state.attempt += 1
		state.awaiting_answer = True
		state.time_remaining = self.time_limit
		self.timer.start(self.time_limit)
		self._notify()

	def _on_tick(self, remaining: int) -> None:
		state = self._state
		if state is None or not state.awaiting_answer:
			return
		state.time_remaining = remaining
		self._notify()

	def _on_timeout(self) -> None:
		self._finalize_attempt(timed_out=True)

	def _on_interim(self, text: str) -> None:
		state = self._state
		if self._phase is not Phase.IN_PROGRESS or state is None or not state.awaiting_answer:
			return
		# interim results overlap; only the live display is collapsed
		state.transcript = Transcript(text=dedupe_transcript(text), is_final=False)
		self._notify()

	def _on_final_transcript(self, text: str) -> None:
		self._finalize_attempt(timed_out=False, spoken=text)

	def _on_capture_error(self, error: str) -> None:
		# The pass produced nothing; the user may listen again or the countdown runs out.
		self._notify()

	def _on_capture_end(self, silent: bool) -> None:
		self._notify()

	def _finalize_attempt(self, *, timed_out: bool, spoken: str = "") -> bool:
		state = self._state
		if self._phase is not Phase.IN_PROGRESS or state is None or not state.awaiting_answer:
			logger.debug("Ignoring %s: no open attempt", "timeout" if timed_out else "final transcript")
			return False
		state.awaiting_answer = False
		self.timer.stop()
		state.time_remaining = self.timer.remaining
		if self._capture is not None:
			self._capture.stop()
		if not timed_out:
			state.transcript = Transcript(text=spoken, is_final=True)
		attempt = state.attempt
		self._transition(Phase.EVALUATING)

		answer = (spoken or "").strip()
		if timed_out:
			self._commit(attempt, EvaluationResult(
				is_correct=False, feedback=TIME_UP_FEEDBACK, timed_out=True, source="timeout",
			))
		elif not answer:
			self._commit(attempt, EvaluationResult(
				is_correct=False, feedback=NO_ANSWER_FEEDBACK, source="no-answer",
			))
		else:
			self._evaluation_task = asyncio.ensure_future(self._evaluate(attempt, state.current, answer))
		return True

	async def _evaluate(self, attempt: int, question: Question, answer: str) -> None:
		try:
			result = await self.evaluator.evaluate(question.prompt, question.expected_answer, answer)
		except Exception:
			logger.exception("Evaluator raised; applying local fallback")
			result = fallback_evaluate(question.expected_answer, answer)
		self._commit(attempt, result)

	def _commit(self, attempt: int, result: EvaluationResult) -> None:
		state = self._state
		if self._phase is not Phase.EVALUATING or state is None or state.attempt != attempt:
			logger.debug("Discarding evaluation for stale attempt %s", attempt)
			return
		if result.is_correct and state.index not in state.scored:
			state.scored.add(state.index)
			state.score += 1
		state.evaluation = result
		self._evaluation_task = None
		self._transition(Phase.IN_PROGRESS)

	# ---------- lifecycle helpers ----------

	def _finish(self, *, completed: bool) -> None:
		self._halt()
		if self._evaluation_task is not None and not self._evaluation_task.done():
			self._evaluation_task.cancel()
		self._evaluation_task = None
		self._end_requested = False
		state = self._state
		config = self._config
		if state is not None:
			state.awaiting_answer = False
		self._outcome = SessionOutcome(
			session_id=state.session_id if state else uuid.uuid4().hex,
			topic=config.topic,
			difficulty=config.difficulty,
			score=state.score if state else 0,
			total_questions=len(state.questions) if state else 0,
			completed=completed,
			finished_at=datetime.now(timezone.utc),
		)
		self._close_speech()
		logger.info(
			"Session %s finished: %d/%d (%s)",
			self._outcome.session_id, self._outcome.score, self._outcome.total_questions,
			"completed" if completed else "ended early",
		)
		self._transition(Phase.FINISHED)
		for listener in list(self._finished_listeners):
			listener(self._outcome)

	def _halt(self) -> None:
		self.timer.stop()
		if self._capture is not None:
			self._capture.stop()
		if self._playback is not None:
			self._playback.cancel()

	def _open_speech(self) -> None:
		self._capture = SpeechCaptureAdapter(
			self.capabilities.create_recognizer(),
			on_interim=self._on_interim,
			on_final=self._on_final_transcript,
			on_error=self._on_capture_error,
			on_start=self._notify,
			on_end=self._on_capture_end,
		)
		self._playback = SpeechPlaybackAdapter(
			self.capabilities.create_synthesizer(),
			rate=self.speech_rate,
			lang=self.speech_lang,
			on_change=self._notify,
		)

	def _close_speech(self) -> None:
		if self._capture is not None:
			self._capture.close()
			self._capture = None
		if self._playback is not None:
			self._playback.close()
			self._playback = None

	def _transition(self, target: Phase) -> None:
		if target not in _TRANSITIONS[self._phase]:
			raise InvalidTransition(self._phase.value, target.value)
		logger.debug("Phase %s -> %s", self._phase.value, target.value)
		self._phase = target
		self._notify()

	def _notify(self) -> None:
		if not self._listeners:
			return
		snap = self.snapshot()
		for listener in list(self._listeners):
			listener(snap)
