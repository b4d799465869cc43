from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from .base import Synthesizer

logger = logging.getLogger(__name__)


class SpeechPlaybackAdapter:
	"""Speaks one utterance at a time on top of a Synthesizer.

	speak() preempts whatever is playing. The completion callback of an
	utterance runs once, when the platform reports its audio ended; a
	preempted or cancelled utterance never calls back.
	"""

	def __init__(
		self,
		synthesizer: Synthesizer,
		*,
		rate: float = 0.9,
		lang: str = "en-US",
		on_change: Optional[Callable[[], None]] = None,
	) -> None:
		self._synthesizer = synthesizer
		self.rate = rate
		self.lang = lang
		self._on_change = on_change
		self._utterance_id = 0
		self._pending: Optional[Tuple[int, Optional[Callable[[], None]]]] = None

	@property
	def speaking(self) -> bool:
		return self._pending is not None

	def speak(self, text: str, on_done: Optional[Callable[[], None]] = None) -> int:
		self.cancel()
		self._utterance_id += 1
		self._pending = (self._utterance_id, on_done)
		self._synthesizer.speak(text, utterance_id=self._utterance_id, rate=self.rate, lang=self.lang)
		return self._utterance_id

	def cancel(self) -> None:
		if self._pending is None:
			return
		self._pending = None
		self._synthesizer.cancel()

	def close(self) -> None:
		self.cancel()
		self._synthesizer.close()

	def handle_end(self, utterance_id: Optional[int] = None) -> None:
		if self._pending is None:
			return
		current_id, on_done = self._pending
		if utterance_id is not None and utterance_id != current_id:
			return
		self._pending = None
		if self._on_change is not None:
			self._on_change()
		if on_done is not None:
			on_done()

	def handle_error(self, error: str, utterance_id: Optional[int] = None) -> None:
		# The audio is over either way; treat it like a normal end so the question flow continues.
		if self._pending is not None and (utterance_id is None or utterance_id == self._pending[0]):
			logger.info("Speech synthesis error on utterance %s: %s", self._pending[0], error)
		self.handle_end(utterance_id)
