"""Platform speech engine interfaces.

An engine only issues requests to the platform. Everything the platform
reports back (results, errors, end of audio) is delivered to the owning
adapter through its ``handle_*`` methods.
"""

from __future__ import annotations

from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
	from .capture import SpeechCaptureAdapter


class Recognizer:
	"""Speech-to-text engine running one non-continuous listening pass at a time."""

	sink: Optional["SpeechCaptureAdapter"] = None

	def bind(self, sink: "SpeechCaptureAdapter") -> None:
		self.sink = sink

	def start(self, pass_id: int) -> None:
		"""Begin a listening pass tagged with pass_id."""
		raise NotImplementedError

	def stop(self) -> None:
		"""Ask the platform to end the current pass early."""
		raise NotImplementedError

	def close(self) -> None:
		"""Release resources."""
		pass


class Synthesizer:
	"""Text-to-speech engine."""

	def speak(self, text: str, *, utterance_id: int, rate: float, lang: str) -> None:
		raise NotImplementedError

	def cancel(self) -> None:
		"""Drop whatever is currently being spoken."""
		raise NotImplementedError

	def close(self) -> None:
		pass


class SpeechCapabilities:
	"""What one client platform can do, and how to build its engines."""

	def __init__(
		self,
		recognizer_factory: Optional[Callable[[], Recognizer]] = None,
		synthesizer_factory: Optional[Callable[[], Synthesizer]] = None,
		*,
		unavailable_reason: Optional[str] = None,
	) -> None:
		self._recognizer_factory = recognizer_factory
		self._synthesizer_factory = synthesizer_factory
		if unavailable_reason is None:
			if recognizer_factory is None:
				unavailable_reason = "Speech recognition is not supported on this device."
			elif synthesizer_factory is None:
				unavailable_reason = "Speech synthesis is not supported on this device."
		self.unavailable_reason = unavailable_reason

	@property
	def voice_enabled(self) -> bool:
		return self.unavailable_reason is None

	def create_recognizer(self) -> Recognizer:
		if self._recognizer_factory is None:
			raise RuntimeError(self.unavailable_reason or "no recognizer")
		return self._recognizer_factory()

	def create_synthesizer(self) -> Synthesizer:
		if self._synthesizer_factory is None:
			raise RuntimeError(self.unavailable_reason or "no synthesizer")
		return self._synthesizer_factory()
