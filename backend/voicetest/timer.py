"""Per-question countdown driven by the running asyncio loop.

Every start() opens a new generation; ticks scheduled for an older
generation are dropped, so stop() and restart never let a cancelled
countdown fire its timeout.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CountdownTimer:
	def __init__(
		self,
		on_timeout: Callable[[], None],
		*,
		on_tick: Optional[Callable[[int], None]] = None,
		tick_seconds: float = 1.0,
	) -> None:
		if tick_seconds <= 0:
			raise ValueError("tick_seconds must be positive")
		self._on_timeout = on_timeout
		self._on_tick = on_tick
		self.tick_seconds = tick_seconds
		self.remaining: int = 0
		self._generation = 0
		self._handle: Optional[asyncio.TimerHandle] = None

	@property
	def running(self) -> bool:
		return self._handle is not None

	def start(self, duration_seconds: int) -> None:
		duration = int(duration_seconds)
		if duration < 1:
			raise ValueError("duration_seconds must be at least 1")
		self.stop()
		self.remaining = duration
		self._schedule(self._generation)

	def stop(self) -> None:
		# Keeps `remaining` so callers can tell how much time was left.
		if self._handle is not None:
			self._handle.cancel()
			self._handle = None
		self._generation += 1

	def _schedule(self, generation: int) -> None:
		loop = asyncio.get_running_loop()
		self._handle = loop.call_later(self.tick_seconds, self._tick, generation)

	def _tick(self, generation: int) -> None:
		if generation != self._generation or self._handle is None:
			return
		self.remaining = max(0, self.remaining - 1)
		if self._on_tick is not None:
			self._on_tick(self.remaining)
		# on_tick may have stopped or restarted us
		if generation != self._generation:
			return
		if self.remaining > 0:
			self._schedule(generation)
			return
		self._handle = None
		self._generation += 1
		logger.debug("Countdown reached zero")
		self._on_timeout()
