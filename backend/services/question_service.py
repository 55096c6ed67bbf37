"""
Question Service: quiz questions from Gemini with a built-in fallback set.

generate_questions() never fails: any UpstreamFailure (missing API key, API
error, invalid JSON, wrong shape) is logged and replaced by the fixed fallback
questions, cycled to the requested count. Callers are never told that
generation failed.

Individual entries from the model are normalized rather than rejected:
  - question text that is not a string → "Missing Question"
  - options that are not exactly 4      → "Option A".."Option D"
  - correct index not an int in 0..3    → 0
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from config import settings
from models.errors import UpstreamFailure
from models.games import Question
from models.room import QuizSettings

logger = logging.getLogger(__name__)


_DEFAULT_OPTIONS = ["Option A", "Option B", "Option C", "Option D"]

_FALLBACK_QUESTIONS: List[Dict[str, Any]] = [
    {
        "question": "What is the capital of France?",
        "options": ["London", "Berlin", "Paris", "Madrid"],
        "correctAnswer": 2,
    },
    {
        "question": "Which planet is known as the Red Planet?",
        "options": ["Venus", "Mars", "Jupiter", "Saturn"],
        "correctAnswer": 1,
    },
    {
        "question": "Who painted the Mona Lisa?",
        "options": ["Van Gogh", "Picasso", "Da Vinci", "Monet"],
        "correctAnswer": 2,
    },
    {
        "question": "Which element has the chemical symbol 'O'?",
        "options": ["Gold", "Oxygen", "Osmium", "Oganesson"],
        "correctAnswer": 1,
    },
    {
        "question": "In which year did World War II end?",
        "options": ["1943", "1944", "1945", "1946"],
        "correctAnswer": 2,
    },
]


def fallback_questions(count: int) -> List[Question]:
    return [
        _normalize(_FALLBACK_QUESTIONS[i % len(_FALLBACK_QUESTIONS)])
        for i in range(count)
    ]


def _normalize(raw: Any) -> Question:
    raw = raw if isinstance(raw, dict) else {}
    text = raw.get("question")
    options = raw.get("options")
    correct = raw.get("correctAnswer")
    return Question(
        question=text if isinstance(text, str) else "Missing Question",
        options=(
            [str(o) for o in options]
            if isinstance(options, list) and len(options) == 4
            else list(_DEFAULT_OPTIONS)
        ),
        # bool is an int subclass; True/False are not valid indexes
        correct_answer=(
            correct
            if isinstance(correct, int) and not isinstance(correct, bool) and 0 <= correct <= 3
            else 0
        ),
    )


def parse_questions(text: Optional[str], count: int) -> List[Question]:
    """Parse a model reply into at most `count` questions. Raises UpstreamFailure."""
    if not text:
        raise UpstreamFailure("Empty response from question model")
    text = text.strip()
    # Strip optional markdown code fences (```json ... ```)
    if text.startswith("```"):
        text = re.sub(r"^```[a-zA-Z]*\n?", "", text)
        text = re.sub(r"\n?```$", "", text.strip())
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise UpstreamFailure(f"Question model returned invalid JSON: {exc}")
    if not isinstance(payload, list):
        raise UpstreamFailure("Question model response is not an array")
    if not payload:
        raise UpstreamFailure("Question model returned no questions")
    return [_normalize(q) for q in payload[:count]]


def build_prompt(count: int, quiz_settings: QuizSettings) -> str:
    return (
        f"Generate exactly {count} multiple choice quiz questions.\n\n"
        f"Topic: {quiz_settings.category}\n"
        f"Difficulty: {quiz_settings.difficulty}\n"
        f"Language: {quiz_settings.language}\n\n"
        "STRICT RULES:\n"
        "- Return ONLY valid JSON\n"
        "- No explanations\n"
        "- No markdown\n"
        "- No extra text\n\n"
        "JSON format:\n"
        '[{"question": "string", "options": ["string", "string", "string", "string"], '
        '"correctAnswer": 0}]'
    )


class QuestionGenerator:
    """Gemini-backed question oracle. One client per generator, created lazily."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = settings.gemini_api_key if api_key is None else api_key
        self.model = model or settings.quiz_model
        self._client: Optional[genai.Client] = None

    def _get_client(self) -> genai.Client:
        if not self.api_key:
            raise UpstreamFailure("GEMINI_API_KEY not set")
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _call_model(self, prompt: str) -> Optional[str]:
        """Return raw text from a single generate_content call. Raises UpstreamFailure."""
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=0.7,
                    top_p=0.9,
                    max_output_tokens=4096,
                    response_mime_type="application/json",
                ),
            )
        except Exception as exc:
            raise UpstreamFailure(f"Gemini call failed: {exc}")
        return response.text

    async def generate_questions(
        self, count: int, quiz_settings: Optional[QuizSettings] = None
    ) -> List[Question]:
        quiz_settings = quiz_settings or QuizSettings()
        try:
            raw = await self._call_model(build_prompt(count, quiz_settings))
            questions = parse_questions(raw, count)
            logger.info(
                "[questions] Generated %d questions (%s / %s / %s)",
                len(questions), quiz_settings.category,
                quiz_settings.difficulty, quiz_settings.language,
            )
            return questions
        except UpstreamFailure as exc:
            logger.warning("[questions] %s, using fallback set", exc.message)
            return fallback_questions(count)
