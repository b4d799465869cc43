from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Tuple

from .base import Recognizer

logger = logging.getLogger(__name__)


class SpeechCaptureAdapter:
	"""Single-pass listening on top of a Recognizer.

	A pass emits any number of interim transcripts and then exactly one of:
	a final transcript, an error, or a silent stop. Events for a pass other
	than the open one (or after stop()) are ignored.
	"""

	def __init__(
		self,
		recognizer: Recognizer,
		*,
		on_interim: Callable[[str], None],
		on_final: Callable[[str], None],
		on_error: Callable[[str], None],
		on_start: Optional[Callable[[], None]] = None,
		on_end: Optional[Callable[[bool], None]] = None,
	) -> None:
		self._recognizer = recognizer
		self._on_interim = on_interim
		self._on_final = on_final
		self._on_error = on_error
		self._on_start = on_start
		self._on_end = on_end
		self._pass_id = 0
		self._active = False
		self._settled = False
		recognizer.bind(self)

	@property
	def recognizer(self) -> Recognizer:
		return self._recognizer

	@property
	def listening(self) -> bool:
		return self._active

	@property
	def pass_id(self) -> int:
		return self._pass_id

	def start(self) -> bool:
		if self._active:
			logger.debug("Ignoring start: pass %s still open", self._pass_id)
			return False
		self._pass_id += 1
		self._active = True
		self._settled = False
		self._recognizer.start(self._pass_id)
		return True

	def stop(self) -> None:
		if not self._active:
			return
		self._active = False
		self._recognizer.stop()

	def close(self) -> None:
		self.stop()
		self._recognizer.close()

	def _is_current(self, pass_id: Optional[int]) -> bool:
		return self._active and (pass_id is None or pass_id == self._pass_id)

	def handle_start(self, pass_id: Optional[int] = None) -> None:
		if self._is_current(pass_id) and self._on_start is not None:
			self._on_start()

	def handle_results(self, results: Iterable[Tuple[str, bool]], pass_id: Optional[int] = None) -> None:
		if not self._is_current(pass_id) or self._settled:
			return
		final_parts = []
		interim_parts = []
		has_final = False
		for text, is_final in results:
			has_final = has_final or bool(is_final)
			(final_parts if is_final else interim_parts).append(text or "")
		if has_final:
			# A blank final result still closes the pass; the caller judges it as no answer.
			self._settled = True
			self._on_final("".join(final_parts).strip())
			return
		interim_text = "".join(interim_parts)
		if interim_text.strip():
			self._on_interim(interim_text)

	def handle_error(self, error: str, pass_id: Optional[int] = None) -> None:
		if not self._is_current(pass_id):
			return
		self._active = False
		if self._settled:
			return
		self._settled = True
		logger.info("Speech recognition error on pass %s: %s", self._pass_id, error)
		self._on_error(error)

	def handle_end(self, pass_id: Optional[int] = None) -> None:
		if not self._is_current(pass_id):
			return
		self._active = False
		silent = not self._settled
		self._settled = True
		if self._on_end is not None:
			self._on_end(silent)
