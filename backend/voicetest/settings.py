from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


TOPICS: List[str] = ["Quantitative Aptitude", "Verbal Ability", "General Knowledge"]


class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	gemini_timeout_seconds: float = Field(default=30.0, validation_alias="GEMINI_TIMEOUT_SECONDS")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="AptiPro Voice Test", validation_alias="OPENROUTER_TITLE")

	# Per-question countdown
	question_time_limit: int = Field(default=30, ge=1, validation_alias="QUESTION_TIME_LIMIT")
	timer_tick_seconds: float = Field(default=1.0, gt=0, validation_alias="TIMER_TICK_SECONDS")

	# Speech
	speech_lang: str = Field(default="en-US", validation_alias="SPEECH_LANG")
	speech_rate: float = Field(default=0.9, gt=0, validation_alias="SPEECH_RATE")
	# "browser" (Web Speech API in the client) or "cloud" (Google Speech-to-Text on the server)
	recognizer_backend: str = Field(default="browser", validation_alias="RECOGNIZER_BACKEND")
	cloud_max_record_seconds: int = Field(default=15, ge=1, validation_alias="CLOUD_MAX_RECORD_SECONDS")

	# Session setup bounds
	min_questions: int = Field(default=2, ge=1, validation_alias="VOICE_TEST_MIN_QUESTIONS")
	max_questions: int = Field(default=12, ge=1, validation_alias="VOICE_TEST_MAX_QUESTIONS")
	default_questions: int = Field(default=5, ge=1, validation_alias="VOICE_TEST_DEFAULT_QUESTIONS")
	default_topic: str = Field(default=TOPICS[0], validation_alias="VOICE_TEST_DEFAULT_TOPIC")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
