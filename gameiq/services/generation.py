"""AI question generation: prompt in, exactly N validated question records out.

The text service itself is a black box behind ``TextGenerator``; this module
only builds the prompt and refuses anything that is not exactly the requested
number of well-formed questions. There is no partial import.
"""
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from gameiq.core.errors import ExternalGenerationError
from gameiq.models.question import QuizQuestion
from gameiq.schemas.question import QuestionRecordSchema

logger = logging.getLogger(__name__)

MAX_EXAMPLE_SCENARIOS = 5


@dataclass(frozen=True)
class GeneratedText:
    text: str
    input_tokens: int
    output_tokens: int


class TextGenerator(Protocol):
    async def generate(self, system_prompt: str, user_prompt: str) -> GeneratedText:
        ...


@dataclass(frozen=True)
class GeneratedQuestions:
    records: list[QuestionRecordSchema]
    input_tokens: int
    output_tokens: int


def build_system_prompt(sport: str, position: str, count: int, existing: Sequence[QuizQuestion]) -> str:
    examples = "\n".join(f"Example: {q.scenario}" for q in existing[:MAX_EXAMPLE_SCENARIOS])
    return f"""You are an expert {sport} coach specializing in {position} training. Generate exactly {count} new quiz questions that test game situations, decision-making, and tactical awareness.

SPORT: {sport}
POSITION: {position}

EXISTING QUESTION EXAMPLES (DO NOT DUPLICATE):
{examples or "(none)"}

REQUIREMENTS:
1. Generate exactly {count} questions
2. Each question must have exactly 4 multiple choice options (A, B, C, D)
3. Vary difficulty levels (beginner, intermediate, advanced)
4. DO NOT duplicate any existing scenarios

RESPONSE FORMAT - Return ONLY a JSON array, no markdown:
[
  {{
    "id": "unique_id_1",
    "categoryHint": "category_name",
    "scenario": "Detailed game situation...",
    "question": "What should you do in this situation?",
    "options": [
      {{"id": "A", "text": "Option A"}},
      {{"id": "B", "text": "Option B"}},
      {{"id": "C", "text": "Option C"}},
      {{"id": "D", "text": "Option D"}}
    ],
    "correct": "B",
    "explanation": "Why this is correct...",
    "difficulty": "intermediate",
    "tags": ["tag1", "tag2"]
  }}
]"""


def extract_json_array(text: str) -> str:
    start = text.find("[")
    end = text.rfind("]") + 1
    if start == -1 or end <= start:
        raise ExternalGenerationError("No JSON array found in generator response")
    return text[start:end]


def parse_generated_questions(text: str, expected_count: int) -> list[QuestionRecordSchema]:
    """Strictly parse generator output; any defect fails the whole batch."""
    try:
        raw = json.loads(extract_json_array(text))
    except json.JSONDecodeError as e:
        raise ExternalGenerationError(f"Generator returned invalid JSON: {e}") from e

    if not isinstance(raw, list):
        raise ExternalGenerationError("Generator response is not a JSON array")
    if len(raw) != expected_count:
        raise ExternalGenerationError(f"Expected {expected_count} questions, got {len(raw)}")

    records = []
    for index, item in enumerate(raw, start=1):
        try:
            records.append(QuestionRecordSchema.model_validate(item))
        except ValidationError as e:
            raise ExternalGenerationError(f"Question {index} is malformed: {e.errors()[0]['msg']}") from e

    ids = [r.id for r in records]
    if len(set(ids)) != len(ids):
        raise ExternalGenerationError("Generator returned duplicate question ids")
    return records


class QuestionGenerator:
    def __init__(self, text_generator: TextGenerator):
        self.text_generator = text_generator

    async def generate(
        self,
        sport: str,
        position: str,
        count: int,
        existing: Sequence[QuizQuestion] = (),
    ) -> GeneratedQuestions:
        system_prompt = build_system_prompt(sport, position, count, existing)
        user_prompt = (
            f"Generate exactly {count} new quiz questions for {sport} {position} training. "
            "Return only a valid JSON array with no markdown formatting."
        )
        logger.info("Requesting %d generated questions for %s/%s", count, sport, position)
        try:
            response = await self.text_generator.generate(system_prompt, user_prompt)
        except ExternalGenerationError:
            raise
        except Exception as e:
            logger.exception("Text generator failed for %s/%s", sport, position)
            raise ExternalGenerationError(f"Text generation failed: {type(e).__name__}: {e}") from e
        try:
            records = parse_generated_questions(response.text, count)
        except ExternalGenerationError as e:
            raise ExternalGenerationError(str(e), response.input_tokens, response.output_tokens) from e
        return GeneratedQuestions(
            records=records,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )
