import logging
import sys

from .settings import settings


def configure_logging(level: str | None = None) -> logging.Logger:
	"""Install a single stdout handler on the package logger."""
	logger = logging.getLogger("voicetest")
	logger.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))

	# Clear any existing handlers to prevent duplicate logs during hot-reloads.
	if logger.hasHandlers():
		logger.handlers.clear()

	handler = logging.StreamHandler(sys.stdout)
	handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
	logger.addHandler(handler)
	logger.propagate = False
	return logger
