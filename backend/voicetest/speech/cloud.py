"""Server-side recognition with Google Cloud Speech-to-Text.

The browser only records: it is told to start/stop recording and uploads
the clip as base64. Transcription runs off the event loop.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import speech_v1p1beta1 as speech

from .base import Recognizer, SpeechCapabilities
from .browser import BrowserSynthesizer, ClientChannel, command

logger = logging.getLogger(__name__)


class CloudRecognizer(Recognizer):
	def __init__(self, channel: ClientChannel, client: Any, *, lang: str, max_seconds: int) -> None:
		self.channel = channel
		self.client = client
		self.lang = lang
		self.max_seconds = max_seconds
		self._pass_id: Optional[int] = None

	def start(self, pass_id: int) -> None:
		self._pass_id = pass_id
		self.channel.send(command("start_recording", pass_id=pass_id, max_seconds=self.max_seconds))

	def stop(self) -> None:
		self._pass_id = None
		self.channel.send(command("stop_recording"))

	def _config(self) -> "speech.RecognitionConfig":
		return speech.RecognitionConfig(
			encoding=speech.RecognitionConfig.AudioEncoding.WEBM_OPUS,
			sample_rate_hertz=48000,
			language_code=self.lang,
			model="default",
			enable_automatic_punctuation=True,
			profanity_filter=True,
		)

	async def transcribe(self, audio_base64: str, pass_id: int) -> None:
		"""Transcribe one uploaded clip and report the outcome to the adapter."""
		sink = self.sink
		if sink is None or pass_id != self._pass_id:
			logger.debug("Dropping audio for stale pass %s", pass_id)
			return
		try:
			audio_content = base64.b64decode(audio_base64 or "", validate=True)
		except (binascii.Error, ValueError):
			sink.handle_error("audio-capture", pass_id)
			return
		if not audio_content:
			sink.handle_error("no-speech", pass_id)
			return

		audio = speech.RecognitionAudio(content=audio_content)
		try:
			response = await asyncio.to_thread(self.client.recognize, config=self._config(), audio=audio)
		except GoogleAPIError as e:
			logger.warning("Cloud speech recognition failed: %s", e)
			sink.handle_error("recognition-failed", pass_id)
			return

		text = " ".join(
			r.alternatives[0].transcript.strip() for r in response.results if r.alternatives
		).strip()
		if text:
			sink.handle_results([(text, True)], pass_id)
		sink.handle_end(pass_id)


def cloud_capabilities(channel: ClientChannel, *, synthesis: bool, lang: str, max_seconds: int) -> SpeechCapabilities:
	try:
		client = speech.SpeechClient()
	except Exception as e:
		logger.warning("Cloud speech recognition unavailable: %s", e)
		return SpeechCapabilities(unavailable_reason=f"Cloud speech recognition unavailable: {e}")
	return SpeechCapabilities(
		lambda: CloudRecognizer(channel, client, lang=lang, max_seconds=max_seconds),
		(lambda: BrowserSynthesizer(channel)) if synthesis else None,
	)
