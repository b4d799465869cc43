"""Engines that delegate to the Web Speech API of the connected browser.

Requests go out as JSON commands on the client's channel; the browser's
events come back over the same WebSocket and are routed to the adapters.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from .base import Recognizer, SpeechCapabilities, Synthesizer


class ClientChannel:
	"""Outbound message queue for one connected client."""

	def __init__(self) -> None:
		self._queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()

	def send(self, message: Dict[str, Any]) -> None:
		self._queue.put_nowait(message)

	async def receive(self) -> Dict[str, Any]:
		return await self._queue.get()

	def empty(self) -> bool:
		return self._queue.empty()


def command(name: str, **fields: Any) -> Dict[str, Any]:
	return {"type": "command", "command": name, **fields}


class BrowserRecognizer(Recognizer):
	def __init__(self, channel: ClientChannel, *, lang: str) -> None:
		self.channel = channel
		self.lang = lang

	def start(self, pass_id: int) -> None:
		self.channel.send(command(
			"start_listening",
			pass_id=pass_id,
			lang=self.lang,
			continuous=False,
			interim_results=True,
		))

	def stop(self) -> None:
		self.channel.send(command("stop_listening"))


class BrowserSynthesizer(Synthesizer):
	def __init__(self, channel: ClientChannel) -> None:
		self.channel = channel

	def speak(self, text: str, *, utterance_id: int, rate: float, lang: str) -> None:
		self.channel.send(command("speak", utterance_id=utterance_id, text=text, rate=rate, lang=lang))

	def cancel(self) -> None:
		self.channel.send(command("cancel_speech"))


def browser_capabilities(channel: ClientChannel, *, recognition: bool, synthesis: bool, lang: str) -> SpeechCapabilities:
	return SpeechCapabilities(
		(lambda: BrowserRecognizer(channel, lang=lang)) if recognition else None,
		(lambda: BrowserSynthesizer(channel)) if synthesis else None,
		unavailable_reason=None if recognition and synthesis else (
			"Speech recognition is not supported in this browser."
			if not recognition
			else "Speech synthesis is not supported in this browser."
		),
	)
