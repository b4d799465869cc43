import asyncio

from voicetest.errors import GeminiError
from voicetest.question_generator import QuestionGenerator, _build_questions_prompt, _parse_questions
from voicetest.schemas import Difficulty


class ScriptedClient:
	def __init__(self, reply=None, error=None):
		self.reply = reply
		self.error = error
		self.prompts = []
		self.closed = False

	async def generate_json(self, prompt, schema):
		self.prompts.append(prompt)
		if self.error is not None:
			raise self.error
		return self.reply

	async def aclose(self):
		self.closed = True


def test_prompt_names_topic_difficulty_and_count():
	prompt = _build_questions_prompt("Verbal Ability", "Hard", 4)
	assert "Generate 4 aptitude questions" in prompt
	assert '"Verbal Ability"' in prompt
	assert "Hard difficulty" in prompt


def test_parse_drops_malformed_entries_and_truncates():
	raw = """Here you go:
	[{"question": "What is 2 + 2?", "answer": "4"},
	 {"question": "", "answer": "x"},
	 "junk",
	 {"question": "Synonym of big?", "answer": "Large"},
	 {"question": "Capital of Japan?", "answer": "Tokyo"}]"""
	questions = _parse_questions(raw, 2)
	assert [q.expected_answer for q in questions] == ["4", "Large"]


def test_parse_accepts_wrapped_list():
	questions = _parse_questions('{"questions": [{"question": "Q?", "answer": "A"}]}', 5)
	assert questions[0].prompt == "Q?"


def test_generate_returns_questions():
	client = ScriptedClient(reply='[{"question": "What is 3 x 3?", "answer": "9"}]')
	generator = QuestionGenerator(client_factory=lambda: client)
	questions = asyncio.run(generator.generate("Quantitative Aptitude", Difficulty.EASY, 1))
	assert len(questions) == 1
	assert questions[0].expected_answer == "9"
	assert "Easy difficulty" in client.prompts[0]
	assert client.closed


def test_generate_returns_empty_on_failure():
	failing = ScriptedClient(error=GeminiError("Gemini call failed"))
	assert asyncio.run(QuestionGenerator(client_factory=lambda: failing).generate("General Knowledge", "Medium", 3)) == []
	assert failing.closed

	garbage = ScriptedClient(reply="I cannot help with that")
	assert asyncio.run(QuestionGenerator(client_factory=lambda: garbage).generate("General Knowledge", "Medium", 3)) == []

	def no_key():
		raise GeminiError("GEMINI_API_KEY is not configured")

	assert asyncio.run(QuestionGenerator(client_factory=no_key).generate("General Knowledge", "Medium", 3)) == []
