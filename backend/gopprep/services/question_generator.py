"""
AI question generator - drafts multiple choice questions with Gemini.

Constructed once at start-up and passed to the admin routes. Without an API
key the generator is "not configured" and every call raises
``NotConfiguredError``.
"""

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

import google.generativeai as genai
from pydantic import ValidationError as PydanticValidationError

from ..config.settings import settings
from ..errors import NotConfiguredError, ValidationError
from ..models import Category, Difficulty, Language, QuestionCreate

logger = logging.getLogger(__name__)


class QuestionGenerator(Protocol):
    @property
    def is_configured(self) -> bool:
        ...

    async def generate(
        self,
        category: str,
        subject: str,
        count: int,
        difficulty: str,
        language: str = "English",
        topic: Optional[str] = None
    ) -> List[QuestionCreate]:
        ...


class GeminiQuestionGenerator:
    """Generates exam questions through the Gemini API."""

    SYSTEM_PROMPT = (
        "You are an expert question generator for government exams. Generate "
        "high-quality multiple choice questions in the exact JSON format requested. "
        "Always return a JSON object with a \"questions\" key containing an array of questions."
    )

    LANGUAGE_INSTRUCTIONS = {
        "Hindi": "Generate all questions, options, and explanations in Hindi language only.",
        "English": "Generate all questions, options, and explanations in English language only.",
        "Both": (
            "Generate each question with both English and Hindi versions. For each question, "
            "provide question_text (English), question_text_hindi (Hindi), options (English), "
            "options_hindi (Hindi), explanation (English), and explanation_hindi (Hindi)."
        ),
    }

    def __init__(self, api_key: str = "", model_name: str = settings.GEMINI_MODEL):
        self.api_key = api_key
        self.model_name = model_name
        self.model = None
        if self.api_key:
            genai.configure(api_key=self.api_key)
            self.model = genai.GenerativeModel(
                model_name=self.model_name,
                system_instruction=self.SYSTEM_PROMPT
            )

    @property
    def is_configured(self) -> bool:
        return self.model is not None

    def build_prompt(
        self,
        category: str,
        subject: str,
        count: int,
        difficulty: str,
        language: str,
        topic: Optional[str] = None
    ) -> str:
        subject_line = f"{subject} ({topic})" if topic else subject
        bilingual = language == Language.BOTH.value
        example = {
            "question_text": "...",
            "options": [{"option_label": label, "option_text": "..."} for label in "ABCD"],
            "correct_answer": "A",
            "explanation": "...",
            "subject": subject,
            "marks": 1,
        }
        if bilingual:
            example["question_text_hindi"] = "..."
            example["options_hindi"] = example["options"]
            example["explanation_hindi"] = "..."

        return (
            f"Generate {count} multiple choice questions for {category} exam on {subject_line} "
            f"topic with {difficulty} difficulty. {self.LANGUAGE_INSTRUCTIONS[language]}\n\n"
            f"Return a JSON object with a \"questions\" key containing an array with this exact structure:\n\n"
            f"{json.dumps({'questions': [example]}, indent=2, ensure_ascii=False)}\n\n"
            f"Make sure each question has exactly 4 options labeled A, B, C, D. "
            f"The correct_answer must be one of these labels."
        )

    async def generate(
        self,
        category: str,
        subject: str,
        count: int,
        difficulty: str,
        language: str = "English",
        topic: Optional[str] = None
    ) -> List[QuestionCreate]:
        if not self.is_configured:
            raise NotConfiguredError("AI question generation is not configured (GEMINI_API_KEY not set)")

        self._validate_request(category, subject, count, difficulty, language)
        prompt = self.build_prompt(category, subject, count, difficulty, language, topic)

        # The SDK call is blocking; keep it off the event loop
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: self.model.generate_content(
                prompt,
                generation_config={
                    "temperature": settings.LLM_TEMPERATURE,
                    "response_mime_type": "application/json",
                }
            )
        )

        items = parse_questions_payload(response.text)
        logger.info(f"Gemini returned {len(items)} questions for {category}/{subject}")
        return [
            to_question(item, index, category, subject, difficulty, language, topic)
            for index, item in enumerate(items)
        ]

    @staticmethod
    def _validate_request(category: str, subject: str, count: int, difficulty: str, language: str) -> None:
        if not subject:
            raise ValidationError("Subject is required")
        if category not in {c.value for c in Category}:
            raise ValidationError("Category must be SSC, Banking, or HSSC")
        if difficulty not in {d.value for d in Difficulty}:
            raise ValidationError("Difficulty must be Easy, Medium, or Hard")
        if language not in {lang.value for lang in Language}:
            raise ValidationError("Language must be Hindi, English, or Both")
        if not 1 <= count <= settings.MAX_AI_QUESTIONS:
            raise ValidationError(f"Count must be between 1 and {settings.MAX_AI_QUESTIONS}")


def parse_questions_payload(content: str) -> List[Dict[str, Any]]:
    """
    Extract the question list from a model response.

    Accepts ``{"questions": [...]}``, a bare array, or text containing a JSON
    array.
    """
    try:
        parsed = json.loads(content)
        if isinstance(parsed, dict) and isinstance(parsed.get("questions"), list):
            return parsed["questions"]
        if isinstance(parsed, list):
            return parsed
    except json.JSONDecodeError:
        pass

    match = re.search(r"\[[\s\S]*\]", content or "")
    if not match:
        raise ValidationError("No questions array found in AI response")
    try:
        questions = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValidationError(f"AI response is not valid JSON: {e.msg}")
    if not isinstance(questions, list):
        raise ValidationError("No questions array found in AI response")
    return questions


def to_question(
    item: Dict[str, Any],
    index: int,
    category: str,
    subject: str,
    difficulty: str,
    language: str,
    topic: Optional[str] = None
) -> QuestionCreate:
    """Validate one generated item into a ``QuestionCreate``."""
    if not isinstance(item, dict):
        raise ValidationError(f"Question {index + 1} is not an object")
    data = {
        "question_text": item.get("question_text") or item.get("questionText"),
        "options": item.get("options"),
        "correct_answer": item.get("correct_answer") or item.get("correctAnswer"),
        "explanation": item.get("explanation"),
        "category": category,
        "subject": item.get("subject") or subject,
        "topic": topic,
        "marks": item.get("marks") or 1,
        "difficulty": difficulty,
        "language": language,
        "is_ai_generated": True,
    }
    if language in (Language.HINDI.value, Language.BOTH.value):
        data["question_text_hindi"] = item.get("question_text_hindi") or item.get("questionTextHindi")
        data["options_hindi"] = item.get("options_hindi") or item.get("optionsHindi")
        data["explanation_hindi"] = item.get("explanation_hindi") or item.get("explanationHindi")

    for key in ("options", "options_hindi"):
        if data.get(key):
            data[key] = [
                {
                    "option_label": o.get("option_label") or o.get("optionLabel"),
                    "option_text": o.get("option_text") or o.get("optionText"),
                } if isinstance(o, dict) else o
                for o in data[key]
            ]

    try:
        return QuestionCreate(**data)
    except PydanticValidationError as e:
        raise ValidationError(f"Question {index + 1} is invalid: {e.errors()[0].get('msg')}")
