# app/services/generation_service.py
import json
import logging
import re
from typing import Optional

from openai import OpenAI
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..schemas.assessment_schemas import GeneratedTest, QuestionCreate, QuestionType, TestCreate
from .errors import GenerationError
from .settings_service import GradingConfig
from .test_service import TestService

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*")

CATEGORIES = [
    "Cognitive",
    "Analytical",
    "Verbal Reasoning",
    "Numerical Reasoning",
    "Problem Solving",
    "Technical Skills",
    "Situational Judgment",
    "Creativity Assessment",
]


def option_id(index: int) -> str:
    return chr(ord("A") + index)


class GenerationService:
    """Drafts a whole test from a free-form request with an OpenAI chat model."""

    def __init__(self, db: Session, config: GradingConfig, client=None):
        self.db = db
        self.config = config
        self.client = client or OpenAI(api_key=config.api_key)

    def generate_format(self) -> str:
        return """{
  "title": "string (required)",
  "description": "string (optional)",
  "category": "string (optional)",
  "duration_minutes": number (optional),
  "questions": [
    {
      "type": "mcq",
      "content": "question text",
      "options": ["first option", "second option", "third option", "fourth option"],
      "correct_answer": 0,
      "points": 1
    },
    {
      "type": "freetext",
      "content": "question text",
      "points": 5
    },
    {
      "type": "timed",
      "content": "task description",
      "time_limit_seconds": 120,
      "points": 5
    }
  ]
}"""

    def generate_prompt(self, request: str) -> str:
        """Generate a structured prompt for the LLM from the recruiter's request."""
        return f"""Generate a candidate assessment test as JSON following this exact structure:

{self.generate_format()}

Question types:
- mcq: Multiple choice with an options array and correct_answer (0-based index)
- freetext: Open-ended response
- timed: Time-limited task with time_limit_seconds

Best practices:
- Mix different question types for comprehensive assessment
- Use clear, unambiguous question content
- Set reasonable time limits (60-180 seconds for timed questions)
- Assign higher points to more complex questions
- Order questions from easier to harder

Categories: {", ".join(CATEGORIES)}

Return ONLY valid JSON. No markdown, no code blocks, no explanations.

User request: {request}"""

    def _parse_question(self, raw: dict) -> QuestionCreate:
        question = {
            "type": raw.get("type"),
            "content": raw.get("content"),
            "points": raw.get("points", 1),
        }
        if raw.get("type") == QuestionType.MCQ.value:
            options = raw.get("options") or []
            question["options"] = [{"id": option_id(i), "text": str(text)} for i, text in enumerate(options)]
            correct = raw.get("correct_answer")
            if isinstance(correct, int) and not isinstance(correct, bool) and 0 <= correct < len(options):
                question["correct_answer"] = option_id(correct)
        elif raw.get("type") == QuestionType.TIMED.value:
            question["time_limit_seconds"] = raw.get("time_limit_seconds")
        return QuestionCreate.model_validate(question)

    def _parse_test_content(self, content: Optional[str], request: str) -> TestCreate:
        """Parse the generated JSON into a test draft.

        MCQ options come back as plain strings; they get letter ids and the
        correct index becomes the matching id.
        """
        cleaned = _CODE_FENCE.sub("", content or "").strip()
        if not cleaned:
            raise GenerationError("No response from AI model")

        try:
            data = json.loads(cleaned)
        except ValueError as e:
            raise GenerationError(f"Failed to parse AI response as JSON: {e}") from e

        if not isinstance(data, dict) or not data.get("title") or not data.get("questions"):
            raise GenerationError("Generated test is missing required fields (title or questions)")

        try:
            return TestCreate(
                title=data["title"],
                description=data.get("description"),
                requirements=request,
                tags=[data["category"]] if data.get("category") else [],
                duration_minutes=data.get("duration_minutes"),
                questions=[self._parse_question(q) for q in data["questions"]],
            )
        except (AttributeError, TypeError, ValidationError) as e:
            raise GenerationError(f"Generated test is invalid: {e}") from e

    def generate_test(self, request: str, save: bool = False) -> GeneratedTest:
        """Ask the model for a test; optionally store it as a new test."""
        logger.info(f"Generating test for request: {request[:100]}")
        response = self.client.chat.completions.create(
            model=self.config.model,
            messages=[
                {
                    "role": "system",
                    "content": "You are a cognitive assessment test generator for hiring teams.",
                },
                {"role": "user", "content": self.generate_prompt(request)},
            ],
            temperature=0.7,
            max_tokens=4096,
        )

        test = self._parse_test_content(response.choices[0].message.content, request)
        result = GeneratedTest(test=test, message=f"Generated test with {len(test.questions)} questions")

        if save:
            db_test = TestService(self.db).create_test(test)
            result.saved_test_id = db_test.id
        return result
