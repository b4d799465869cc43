from fastapi import FastAPI

from .logging_config import configure_logging
from .settings import settings
from .routers import voice_test

logger = configure_logging()

app = FastAPI(title="Voice Test API")
app.include_router(voice_test.router)


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


@app.on_event("startup")
async def startup_event():
	logger.info(
		"Voice test ready: recognizer=%s, time limit %ss, Gemini %s",
		settings.recognizer_backend,
		settings.question_time_limit,
		"configured" if settings.gemini_api_key else "not configured (local evaluation fallback)",
	)
